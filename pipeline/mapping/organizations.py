"""
Mappers for business clients (/Organizations) and client groups (/ClientGroups)
"""

from pipeline.mapping.base import EntityMapper
from pipeline.mapping.fields import (
    Field,
    to_datetime,
    to_dict,
    to_int,
    to_list,
    to_str,
)
from pipeline.mapping.people import (
    address_fields,
    card_email,
    card_value,
    phone,
    physical_address,
    registration_number,
)
from schemas.canonical import OrganizationRecord, ClientGroupRecord


class OrganizationMapper(EntityMapper):
    entity_type = "organizations"
    schema = OrganizationRecord
    url_path = "organizations"

    key = Field("external_key", ["OrganizationKey"], to_str)
    fields = [
        Field("name", [
            "FullName",
            "OrganizationName",
            "Name",
            lambda r: f"Organization {r.get('OrganizationKey')}",
        ], to_str),
        Field("full_name", ["FullName", "OrganizationName", "Name"], to_str),
        Field("legal_name", ["LegalName"], to_str),
        Field("trading_name", ["TradingName"], to_str),
        Field("description", ["Description"], to_str),

        Field("entity_type", ["AccountingDetail.EntityType", "ContactType"], to_str, default="Organization"),
        Field("contact_type", ["ContactType"], to_str),
        Field("restriction_level", ["RestrictionLevel"], to_str),
        Field("user_defined_identifier", ["UserDefinedIdentifier"], to_str),
        Field("industry", ["Industry"], to_str),
        Field("line_of_business", ["LineOfBusiness"], to_str),

        Field("primary_email", ["EmailAddress", card_email(0)], to_str),
        Field("phone", ["PhoneNumber", phone("Primary", fallback=True)], to_str),
        Field("website", [card_value("WebSites")], to_str),
        Field("linkedin_url", [card_value("LinkedInLink")], to_str),

        *address_fields("", physical_address),

        Field("ein", [registration_number("EIN", "Employer")], to_str),
        Field("gst_number", [registration_number("GST")], to_str),
        Field("gst_registered", [lambda r: registration_number("GST")(r) is not None], default=False),
        Field("fiscal_year_end_month", ["AccountingDetail.FiscalYearEndMonth"], to_int),
        Field("fiscal_year_end_day", ["AccountingDetail.FiscalYearEndDay"], to_int),
        Field("base_currency", ["AccountingDetail.BaseCurrency"], to_str),

        Field("client_owner_key", ["ClientOwnerKey"], to_str),
        Field("client_manager_key", ["ClientManagerKey"], to_str),
        Field("client_partner_key", ["ClientPartnerKey"], to_str),
        Field("parent_organization_key", ["ParentOrganizationKey"], to_str),

        Field("custom_fields", ["CustomFieldValues", "CustomFields"], to_dict),

        Field("karbon_created_at", ["CreatedDateTime"], to_datetime),
        Field("karbon_modified_at", ["LastModifiedDateTime"], to_datetime),
    ]


class ClientGroupMapper(EntityMapper):
    entity_type = "client_groups"
    schema = ClientGroupRecord
    url_path = "client-groups"

    key = Field("external_key", ["ClientGroupKey"], to_str)
    fields = [
        Field("name", [
            "FullName",
            "Name",
            lambda r: f"Group {r.get('ClientGroupKey')}",
        ], to_str),
        Field("description", ["EntityDescription", "Description"], to_str),
        Field("group_type", ["ContactType", "GroupType"], to_str),
        Field("contact_type", ["ContactType"], to_str),

        Field("primary_contact_key", ["PrimaryContactKey"], to_str),
        Field("primary_contact_name", ["PrimaryContactName"], to_str),
        Field("client_owner_key", ["ClientOwner", "ClientOwnerKey"], to_str),
        Field("client_owner_name", ["ClientOwnerName"], to_str),
        Field("client_manager_key", ["ClientManager", "ClientManagerKey"], to_str),
        Field("client_manager_name", ["ClientManagerName"], to_str),

        Field("members", ["Members"], to_list),
        Field("restriction_level", ["RestrictionLevel"], to_str, default="Public"),
        Field("user_defined_identifier", ["UserDefinedIdentifier"], to_str),

        Field("karbon_created_at", ["CreatedDate", "CreatedDateTime"], to_datetime),
        Field("karbon_modified_at", ["LastModifiedDateTime"], to_datetime),
    ]
