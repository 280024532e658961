"""
Unit tests for raw → canonical entity mappers
"""

import pytest
from datetime import date, datetime
from pipeline.mapping import (
    TeamMemberMapper,
    ContactMapper,
    OrganizationMapper,
    ClientGroupMapper,
    WorkStatusMapper,
    WorkItemMapper,
    TaskMapper,
    NoteMapper,
    TimesheetEntryMapper,
    InvoiceMapper,
    parse_tax_year,
)
from pipeline.entities import explode_time_entries, explode_work_statuses
from core.exceptions import MappingError

SYNCED_AT = datetime(2024, 5, 1, 12, 0, 0)
APP_URL = "https://app2.karbonhq.com/tenant#"


class TestTeamMemberMapper:

    def test_full_name_from_first_and_last(self):
        record = TeamMemberMapper().map({"UserKey": "u1", "FirstName": "Jane", "LastName": "Doe"}, SYNCED_AT)
        assert record.full_name == "Jane Doe"

    def test_full_name_prefers_full_name(self):
        record = TeamMemberMapper().map(
            {"UserKey": "u1", "FullName": "Dr. Jane Doe", "FirstName": "Jane", "LastName": "Doe"}
        )
        assert record.full_name == "Dr. Jane Doe"

    def test_identity_falls_back_to_id(self):
        record = TeamMemberMapper().map({"Id": "abc-123", "Name": "Ann Lee"}, SYNCED_AT)
        assert record.external_key == "abc-123"
        assert record.full_name == "Ann Lee"
        assert record.first_name == "Ann"
        assert record.last_name == "Lee"

    def test_no_identity_maps_to_none(self):
        assert TeamMemberMapper().map({"FullName": "Nobody"}) is None

    def test_email_normalized_and_defaults(self):
        record = TeamMemberMapper().map({"UserKey": "u1", "EmailAddress": " Jane@Firm.COM "}, SYNCED_AT)
        assert record.email == "jane@firm.com"
        assert record.is_active is True
        assert record.last_synced_at == SYNCED_AT

    def test_deep_link(self):
        record = TeamMemberMapper(APP_URL + "/").map({"UserKey": "u1"}, SYNCED_AT)
        assert record.karbon_url == f"{APP_URL}/team/u1"

    def test_no_deep_link_without_app_url(self):
        assert TeamMemberMapper().map({"UserKey": "u1"}).karbon_url is None


class TestContactMapper:

    RAW = {
        "ContactKey": "c1",
        "FirstName": "Jane",
        "MiddleName": "Q",
        "LastName": "Doe",
        "ContactType": "Prospect",
        "AccountingDetail": {
            "BirthDate": "1980-06-15T00:00:00Z",
            "RegistrationNumbers": [
                {"Type": "SSN", "RegistrationNumber": "123-45-6789"},
            ],
        },
        "BusinessCards": [
            {"IsPrimaryCard": False, "EmailAddresses": ["old@example.com"]},
            {
                "IsPrimaryCard": True,
                "EmailAddresses": ["jane@example.com", "jq@example.com"],
                "PhoneNumbers": [
                    {"Label": "Work", "Number": "555-0100"},
                    {"Label": "Mobile", "Number": "555-0101"},
                ],
                "Addresses": [
                    {"Label": "Mailing", "AddressLines": "PO Box 1", "City": "Dallas"},
                ],
            },
        ],
        "LastModifiedDateTime": "2024-02-01T10:00:00Z",
    }

    def test_name_and_classification(self):
        record = ContactMapper().map(self.RAW, SYNCED_AT)
        assert record.full_name == "Jane Q Doe"
        assert record.is_prospect is True
        assert record.contact_type == "Prospect"
        assert record.status == "Active"

    def test_primary_card_values(self):
        record = ContactMapper().map(self.RAW, SYNCED_AT)
        assert record.primary_email == "jane@example.com"
        assert record.secondary_email == "jq@example.com"
        assert record.phone_mobile == "555-0101"
        assert record.phone_work == "555-0100"
        # no Primary label: falls back to the first number
        assert record.phone_primary == "555-0100"
        assert record.phone_fax is None

    def test_addresses(self):
        record = ContactMapper().map(self.RAW, SYNCED_AT)
        assert record.mailing_city == "Dallas"
        # physical falls back to the only address on the card
        assert record.city == "Dallas"

    def test_accounting_detail(self):
        record = ContactMapper().map(self.RAW, SYNCED_AT)
        assert record.date_of_birth == date(1980, 6, 15)
        assert record.ssn_last_four == "6789"
        assert record.karbon_modified_at == datetime(2024, 2, 1, 10, 0, 0)

    def test_individual_defaults(self):
        record = ContactMapper().map({"ContactKey": "c2"}, SYNCED_AT)
        assert record.contact_type == "Individual"
        assert record.entity_type == "Individual"
        assert record.is_prospect is False
        assert record.full_name is None


class TestOrganizationMapper:

    def test_names(self):
        record = OrganizationMapper().map({"OrganizationKey": "o1", "OrganizationName": "Acme LLC"}, SYNCED_AT)
        assert record.name == "Acme LLC"
        assert record.full_name == "Acme LLC"

    def test_full_name_wins_for_name(self):
        raw = {"OrganizationKey": "o1", "FullName": "Acme Holdings LLC", "OrganizationName": "Acme"}
        record = OrganizationMapper().map(raw, SYNCED_AT)
        assert record.name == "Acme Holdings LLC"
        assert record.full_name == "Acme Holdings LLC"

    def test_name_placeholder(self):
        record = OrganizationMapper().map({"OrganizationKey": "o2"}, SYNCED_AT)
        assert record.name == "Organization o2"

    def test_gst_registration(self):
        raw = {
            "OrganizationKey": "o1",
            "Name": "Acme",
            "AccountingDetail": {"RegistrationNumbers": [{"Type": "GST Number", "RegistrationNumber": "G-1"}]},
        }
        record = OrganizationMapper().map(raw, SYNCED_AT)
        assert record.gst_number == "G-1"
        assert record.gst_registered is True

    def test_invalid_fiscal_month_is_mapping_error(self):
        raw = {"OrganizationKey": "o1", "Name": "Acme", "AccountingDetail": {"FiscalYearEndMonth": 13}}
        with pytest.raises(MappingError) as exc_info:
            OrganizationMapper().map(raw, SYNCED_AT)
        assert exc_info.value.context["external_key"] == "o1"
        assert any("fiscal_year_end_month" in e for e in exc_info.value.context["field_errors"])


class TestClientGroupMapper:

    def test_defaults(self):
        record = ClientGroupMapper(APP_URL).map({"ClientGroupKey": "g1"}, SYNCED_AT)
        assert record.name == "Group g1"
        assert record.restriction_level == "Public"
        assert record.karbon_url == f"{APP_URL}/client-groups/g1"


class TestWorkStatusMapper:

    def test_exploded_statuses(self):
        tenant = {"WorkStatuses": [
            {"WorkStatusKey": "ws1", "PrimaryStatusName": "In Progress", "SecondaryStatusName": "Waiting"},
            {"WorkStatusKey": "ws2", "PrimaryStatusName": "Completed"},
        ]}
        records = [WorkStatusMapper().map(r, SYNCED_AT) for r in explode_work_statuses(tenant)]

        assert [r.name for r in records] == ["In Progress - Waiting", "Completed"]
        assert [r.display_order for r in records] == [0, 1]
        assert records[0].is_active is True
        assert records[1].is_active is False
        assert records[1].is_default_filter is False


class TestTaxYear:

    def test_title_year(self):
        assert parse_tax_year({"Title": "2024 Tax Return"}) == 2024

    def test_no_signal(self):
        assert parse_tax_year({"Title": "Monthly bookkeeping"}) is None

    def test_explicit_tax_year_wins(self):
        assert parse_tax_year({"TaxYear": 2022, "Title": "2024 Tax Return"}) == 2022

    def test_year_end_before_title(self):
        assert parse_tax_year({"YearEnd": "2023-12-31T00:00:00Z", "Title": "2024 Return"}) == 2023

    def test_out_of_range_year_end_ignored(self):
        assert parse_tax_year({"YearEnd": "1999-12-31", "PeriodEnd": "2021-06-30"}) == 2021


class TestWorkItemMapper:

    def test_fees_and_budget(self):
        raw = {
            "WorkItemKey": "w1",
            "Title": "2024 Tax Return",
            "FeeSettings": {"FeeType": "Fixed", "FeeValue": 1500},
            "Budget": {"BudgetedHours": 2.5},
        }
        record = WorkItemMapper().map(raw, SYNCED_AT)
        assert record.tax_year == 2024
        assert record.fixed_fee_amount == 1500.0
        assert record.hourly_rate is None
        assert record.budget_minutes == 150
        assert record.priority == "Normal"
        assert record.is_billable is True


class TestTaskMapper:

    def test_data_fields_before_top_level(self):
        raw = {
            "IntegrationTaskKey": "t1",
            "Title": "Outer",
            "Data": {"Title": "Inner", "IsBlocking": True},
            "WorkItemKey": "w1",
        }
        record = TaskMapper().map(raw, SYNCED_AT)
        assert record.title == "Inner"
        assert record.is_blocking is True
        assert record.task_data == {"Title": "Inner", "IsBlocking": True}


class TestNoteMapper:

    RAW = {
        "NoteKey": "n1",
        "Subject": "Engagement letter",
        "Body": "Signed copy attached",
        "NoteType": "Note",
        "IsPinned": True,
        "AuthorKey": "u1",
        "AuthorName": "Jane Doe",
        "AssigneeEmailAddress": "ann@firm.com",
        "DueDate": "2024-04-15T17:30:00Z",
        "Comments": [{"Body": "Thanks"}],
        "WorkItemKey": "w1",
        "LastModifiedDateTime": "2024-04-01T09:00:00.12Z",
    }

    def test_fields(self):
        record = NoteMapper(APP_URL).map(self.RAW, SYNCED_AT)
        assert record.external_key == "n1"
        assert record.subject == "Engagement letter"
        assert record.is_pinned is True
        assert record.author_name == "Jane Doe"
        assert record.assignee_email == "ann@firm.com"
        assert record.work_item_key == "w1"
        assert record.comments == [{"Body": "Thanks"}]
        assert record.karbon_url == f"{APP_URL}/notes/n1"

    def test_due_date_keeps_only_the_day(self):
        record = NoteMapper().map(self.RAW, SYNCED_AT)
        assert record.due_date == date(2024, 4, 15)
        assert record.todo_date is None

    def test_short_fraction_timestamp(self):
        record = NoteMapper().map(self.RAW, SYNCED_AT)
        assert record.karbon_modified_at == datetime(2024, 4, 1, 9, 0, 0, 120000)

    def test_defaults(self):
        record = NoteMapper().map({"NoteKey": "n2"}, SYNCED_AT)
        assert record.is_pinned is False
        assert record.subject is None

    def test_no_note_key_is_skipped(self):
        assert NoteMapper().map({"Subject": "orphan"}) is None


class TestTimesheetEntryMapper:

    TIMESHEET = {
        "TimesheetKey": "ts1",
        "UserKey": "u1",
        "Status": "Submitted",
        "StartDate": "2024-03-04T00:00:00Z",
        "TimeEntries": [
            {"Date": "2024-03-04T00:00:00Z", "Minutes": 90, "WorkItemKey": "w1", "HourlyRate": 100},
            {"Minutes": 30},
        ],
    }

    def test_composite_keys(self):
        entries = list(explode_time_entries(self.TIMESHEET))
        records = [TimesheetEntryMapper().map(e, SYNCED_AT) for e in entries]

        assert records[0].external_key == "ts1-2024-03-04-w1-0"
        # undated entries inherit the week start for the column, not the key
        assert records[1].external_key == "ts1-nodate-nowi-1"
        assert records[1].date == date(2024, 3, 4)

    def test_parent_values(self):
        entry = next(iter(explode_time_entries(self.TIMESHEET)))
        record = TimesheetEntryMapper(APP_URL).map(entry, SYNCED_AT)
        assert record.user_key == "u1"
        assert record.timesheet_status == "Submitted"
        assert record.billed_amount == 150.0
        assert record.karbon_url == f"{APP_URL}/timesheets/ts1"

    def test_source_entry_key_wins(self):
        entry = {"TimeEntryKey": "te-9", "Minutes": 15, "Timesheet": {"TimesheetKey": "ts1"}, "EntryIndex": 0}
        assert TimesheetEntryMapper().map(entry).external_key == "te-9"

    def test_negative_minutes_rejected(self):
        entry = {"TimeEntryKey": "te-1", "Minutes": -5}
        with pytest.raises(MappingError):
            TimesheetEntryMapper().map(entry)


class TestInvoiceMapper:

    def test_amount_due_derived(self):
        record = InvoiceMapper().map({"InvoiceKey": "i1", "TotalAmount": 500, "AmountPaid": 200}, SYNCED_AT)
        assert record.amount_due == 300.0
        assert record.currency == "USD"

    def test_invoice_number_as_identity(self):
        record = InvoiceMapper(APP_URL).map({"InvoiceNumber": "INV-7", "PaymentDate": "2024-04-02"}, SYNCED_AT)
        assert record.external_key == "INV-7"
        assert record.paid_date == date(2024, 4, 2)
        # deep links need the source key
        assert record.karbon_url is None
