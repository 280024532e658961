"""
Mappers for time entries (/Timesheets) and invoices (/Invoices)
"""

from typing import Any, Dict, Optional
from pipeline.mapping.base import EntityMapper
from pipeline.mapping.fields import (
    Field,
    lookup,
    to_bool,
    to_date,
    to_datetime,
    to_float,
    to_int,
    to_list,
    to_str,
)
from schemas.canonical import TimesheetEntryRecord, InvoiceRecord


# ============================================================================
# Time entries
# ============================================================================

def timesheet_entry_key(record: Dict[str, Any]) -> str:
    """
    Deterministic key for entries the source does not key.

    "<timesheet key>-<entry date>-<work item key>-<position in timesheet>"
    """
    parent_key = to_str(lookup(record, "Timesheet.TimesheetKey")) or "ts"
    day = to_date(record.get("Date"))
    work_item = to_str(record.get("WorkItemKey")) or "nowi"
    index = record.get("EntryIndex", 0)
    return f"{parent_key}-{day.isoformat() if day else 'nodate'}-{work_item}-{index}"


def _billed_amount(record: Dict[str, Any]) -> Optional[float]:
    rate = to_float(record.get("HourlyRate"))
    minutes = to_int(record.get("Minutes"))
    if rate and minutes:
        return rate * minutes / 60
    return None


class TimesheetEntryMapper(EntityMapper):
    """
    Entries arrive exploded: each carries its weekly timesheet under
    "Timesheet" and its position under "EntryIndex".
    """
    entity_type = "timesheets"
    schema = TimesheetEntryRecord
    url_path = "timesheets"
    url_key = Field("timesheet_key", ["Timesheet.TimesheetKey"], to_str)

    key = Field("external_key", ["TimeEntryKey", timesheet_entry_key], to_str)
    fields = [
        Field("date", ["Date", "Timesheet.StartDate"], to_date),
        Field("minutes", ["Minutes"], to_int, default=0),
        Field("description", ["TaskTypeName", "Description"], to_str),
        Field("is_billable", ["IsBillable"], to_bool, default=True),
        Field("billing_status", ["BillingStatus", "Timesheet.Status"], to_str),
        Field("hourly_rate", ["HourlyRate"], to_float),
        Field("billed_amount", [_billed_amount]),

        Field("user_key", ["UserKey", "Timesheet.UserKey"], to_str),
        Field("user_name", ["UserName", "Timesheet.UserName"], to_str),
        Field("work_item_key", ["WorkItemKey"], to_str),
        Field("work_item_title", ["WorkItemTitle"], to_str),
        Field("client_key", ["ClientKey"], to_str),
        Field("client_name", ["ClientName"], to_str),
        Field("task_key", ["TaskTypeKey", "TaskKey"], to_str),

        Field("role_name", ["RoleName"], to_str),
        Field("task_type_name", ["TaskTypeName"], to_str),
        Field("timesheet_key", ["Timesheet.TimesheetKey"], to_str),
        Field("timesheet_status", ["Timesheet.Status", "Status"], to_str),

        Field("karbon_created_at", ["Timesheet.StartDate", "CreatedDate"], to_datetime),
        Field("karbon_modified_at", ["Timesheet.EndDate", "LastModifiedDateTime"], to_datetime),
    ]


# ============================================================================
# Invoices
# ============================================================================

def _amount_due(record: Dict[str, Any]) -> float:
    total = to_float(record.get("TotalAmount")) or to_float(record.get("Amount")) or 0.0
    paid = to_float(record.get("AmountPaid")) or 0.0
    return total - paid


class InvoiceMapper(EntityMapper):
    entity_type = "invoices"
    schema = InvoiceRecord
    url_path = "invoices"
    url_key = Field("invoice_key", ["InvoiceKey"], to_str)

    key = Field("external_key", ["InvoiceKey", "InvoiceNumber"], to_str)
    fields = [
        Field("invoice_number", ["InvoiceNumber"], to_str),
        Field("invoice_date", ["InvoiceDate"], to_date),
        Field("due_date", ["DueDate"], to_date),
        Field("paid_date", ["PaidDate", "PaymentDate"], to_date),
        Field("status", ["Status"], to_str),

        Field("subtotal", ["SubTotal", "Subtotal"], to_float, default=0.0),
        Field("tax_amount", ["TaxAmount"], to_float, default=0.0),
        Field("total_amount", ["TotalAmount", "Amount"], to_float, default=0.0),
        Field("amount_paid", ["AmountPaid"], to_float, default=0.0),
        Field("amount_due", ["AmountDue", _amount_due], to_float, default=0.0),
        Field("currency", ["Currency"], to_str, default="USD"),

        Field("client_key", ["ClientKey"], to_str),
        Field("client_name", ["ClientName"], to_str),
        Field("work_item_key", ["WorkItemKey"], to_str),
        Field("work_item_title", ["WorkItemTitle"], to_str),

        Field("line_items", ["LineItems"], to_list),
        Field("payment_method", ["PaymentMethod"], to_str),
        Field("notes", ["Notes"], to_str),

        Field("karbon_created_at", ["CreatedDate", "CreatedDateTime"], to_datetime),
        Field("karbon_modified_at", ["LastModifiedDateTime"], to_datetime),
    ]
