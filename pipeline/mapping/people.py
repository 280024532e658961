"""
Mappers for people: firm staff (/Users) and individual clients (/Contacts)
"""

from typing import Any, Callable, Dict, List, Optional
from pipeline.mapping.base import EntityMapper
from pipeline.mapping.fields import (
    Field,
    as_list,
    join_names,
    lookup,
    pick_labelled,
    to_bool,
    to_date,
    to_datetime,
    to_dict,
    to_list,
    to_str,
)
from schemas.canonical import TeamMemberRecord, ContactRecord

Getter = Callable[[Dict[str, Any]], Any]


# ============================================================================
# Shared helpers (also used by the organization mapper)
# ============================================================================

def nested(getter: Getter, path: str) -> Getter:
    """Candidate reading a dotted path inside a derived sub-object"""
    return lambda record: lookup(getter(record), path)


def primary_card(record: Dict[str, Any]) -> Dict[str, Any]:
    """The business card flagged primary, else the first one"""
    cards = [
        c for c in as_list(record.get("BusinessCards") or record.get("BusinessCard"))
        if isinstance(c, dict)
    ]
    for card in cards:
        if card.get("IsPrimaryCard"):
            return card
    return cards[0] if cards else {}


def physical_address(record: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return pick_labelled(primary_card(record).get("Addresses"), "Physical", fallback=True)


def mailing_address(record: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return pick_labelled(primary_card(record).get("Addresses"), "Mailing")


def phone(*labels: str, fallback: bool = False) -> Getter:
    def number(record: Dict[str, Any]) -> Any:
        entry = pick_labelled(primary_card(record).get("PhoneNumbers"), *labels, fallback=fallback)
        return entry.get("Number") if entry else None
    return number


def card_email(position: int) -> Getter:
    def email(record: Dict[str, Any]) -> Any:
        addresses = as_list(primary_card(record).get("EmailAddresses"))
        if len(addresses) <= position:
            return None
        item = addresses[position]
        if isinstance(item, dict):
            return item.get("Address") or item.get("EmailAddress")
        return item
    return email


def address_fields(prefix: str, select: Getter) -> List[Field]:
    return [
        Field(f"{prefix}address_line1", [nested(select, "AddressLines"), nested(select, "Street")], to_str),
        Field(f"{prefix}address_line2", [nested(select, "AddressLine2")], to_str),
        Field(f"{prefix}city", [nested(select, "City")], to_str),
        Field(f"{prefix}state", [nested(select, "StateProvinceCounty"), nested(select, "State")], to_str),
        Field(f"{prefix}zip_code", [nested(select, "ZipCode"), nested(select, "PostalCode")], to_str),
        Field(f"{prefix}country", [nested(select, "CountryCode"), nested(select, "Country")], to_str),
    ]


def registration_number(*markers: str) -> Getter:
    """First AccountingDetail registration number whose Type mentions a marker"""
    def find(record: Dict[str, Any]) -> Any:
        for reg in as_list(lookup(record, "AccountingDetail.RegistrationNumbers")):
            if not isinstance(reg, dict):
                continue
            reg_type = str(reg.get("Type") or "")
            if any(marker in reg_type for marker in markers):
                return reg.get("RegistrationNumber")
        return None
    return find


def card_value(path: str) -> Getter:
    return nested(primary_card, path)


# ============================================================================
# Team members
# ============================================================================

def _name_token(first: bool) -> Getter:
    def split(record: Dict[str, Any]) -> Optional[str]:
        words = str(record.get("Name") or "").split()
        if not words:
            return None
        return words[0] if first else " ".join(words[1:]) or None
    return split


class TeamMemberMapper(EntityMapper):
    entity_type = "users"
    schema = TeamMemberRecord
    url_path = "team"

    key = Field("external_key", ["UserKey", "MemberKey", "Id"], to_str)
    fields = [
        Field("full_name", [
            "FullName",
            lambda r: join_names(r.get("FirstName"), r.get("LastName")),
            "Name",
        ], to_str),
        Field("first_name", ["FirstName", _name_token(first=True)], to_str),
        Field("last_name", ["LastName", _name_token(first=False)], to_str),
        Field("email", ["EmailAddress", "Email"], to_str),
        Field("title", ["Title", "JobTitle"], to_str),
        Field("role", ["Role", "UserRole"], to_str),
        Field("department", ["Department"], to_str),
        Field("phone_number", ["PhoneNumber", "WorkPhone"], to_str),
        Field("mobile_number", ["MobileNumber", "Mobile"], to_str),
        Field("avatar_url", ["AvatarUrl", "ProfileImageUrl"], to_str),
        Field("timezone", ["TimeZone", "Timezone"], to_str),
        Field("start_date", ["StartDate"], to_date),
        Field("is_active", ["IsActive"], to_bool, default=True),
    ]


# ============================================================================
# Contacts
# ============================================================================

def _ssn_last_four(record: Dict[str, Any]) -> Optional[str]:
    number = registration_number("SSN", "Social")(record)
    digits = str(number or "").strip()
    return digits[-4:] or None


class ContactMapper(EntityMapper):
    """
    Individual clients.

    Phones and addresses come from the primary business card. The
    physical address and primary phone fall back to the first entry;
    mailing, mobile, work and fax only match their own label.
    """
    entity_type = "contacts"
    schema = ContactRecord
    url_path = "contacts"

    key = Field("external_key", ["ContactKey"], to_str)
    fields = [
        Field("first_name", ["FirstName"], to_str),
        Field("middle_name", ["MiddleName"], to_str),
        Field("last_name", ["LastName"], to_str),
        Field("preferred_name", ["PreferredName"], to_str),
        Field("salutation", ["Salutation"], to_str),
        Field("prefix", ["Prefix"], to_str),
        Field("suffix", ["Suffix"], to_str),
        Field("full_name", [
            "FullName",
            lambda r: join_names(r.get("FirstName"), r.get("MiddleName"), r.get("LastName")),
        ], to_str),

        Field("contact_type", ["ContactType"], to_str, default="Individual"),
        Field("entity_type", ["AccountingDetail.EntityType"], to_str, default="Individual"),
        Field("status", ["Status"], to_str, default="Active"),
        Field("restriction_level", ["RestrictionLevel"], to_str),
        Field("is_prospect", [lambda r: r.get("ContactType") == "Prospect"], default=False),
        Field("avatar_url", ["AvatarUrl"], to_str),

        Field("primary_email", ["EmailAddress", card_email(0)], to_str),
        Field("secondary_email", [card_email(1)], to_str),
        Field("phone_primary", ["PhoneNumber", phone("Primary", fallback=True)], to_str),
        Field("phone_mobile", [phone("Mobile")], to_str),
        Field("phone_work", [phone("Work")], to_str),
        Field("phone_fax", [phone("Fax")], to_str),
        Field("website", [card_value("WebSites")], to_str),
        Field("linkedin_url", [card_value("LinkedInLink")], to_str),

        *address_fields("", physical_address),
        *address_fields("mailing_", mailing_address),

        Field("date_of_birth", ["AccountingDetail.BirthDate"], to_date),
        Field("ein", [registration_number("EIN", "Employer")], to_str),
        Field("ssn_last_four", [_ssn_last_four], to_str),
        Field("occupation", ["Occupation", "AccountingDetail.Occupation"], to_str),
        Field("employer", ["Employer"], to_str),

        Field("client_owner_key", ["ClientOwnerKey"], to_str),
        Field("client_manager_key", ["ClientManagerKey"], to_str),
        Field("client_partner_key", ["ClientPartnerKey"], to_str),

        Field("user_defined_identifier", ["UserDefinedIdentifier"], to_str),
        Field("tags", ["Tags"], to_list),
        Field("custom_fields", ["CustomFields"], to_dict),
        Field("notes", ["AccountingDetail.Notes.Body", "Notes"], to_str),

        Field("karbon_created_at", ["CreatedDateTime"], to_datetime),
        Field("karbon_modified_at", ["LastModifiedDateTime"], to_datetime),
    ]
