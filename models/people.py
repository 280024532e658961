from sqlalchemy import Column, String, Text, Date, DateTime, Boolean
from models.base import Base, CanonicalMixin, JSONType


class TeamMember(CanonicalMixin, Base):
    """
    Firm staff, replicated from Karbon /Users.

    external_key: UserKey, MemberKey or Id (whichever the record carries).
    """
    __tablename__ = "team_members"

    first_name = Column(String(200), nullable=True)
    last_name = Column(String(200), nullable=True)
    full_name = Column(String(400), nullable=True, index=True)
    email = Column(String(320), nullable=True, index=True)
    title = Column(String(200), nullable=True)
    role = Column(String(200), nullable=True)
    department = Column(String(200), nullable=True)
    phone_number = Column(String(64), nullable=True)
    mobile_number = Column(String(64), nullable=True)
    avatar_url = Column(String(2048), nullable=True)
    timezone = Column(String(100), nullable=True)
    start_date = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


class Contact(CanonicalMixin, Base):
    """
    Individual clients, replicated from Karbon /Contacts.

    Address and phone columns are flattened from the primary business
    card by label (Physical / Mailing, Mobile / Work / Fax).
    """
    __tablename__ = "contacts"

    # Names
    first_name = Column(String(200), nullable=True)
    middle_name = Column(String(200), nullable=True)
    last_name = Column(String(200), nullable=True)
    preferred_name = Column(String(200), nullable=True)
    salutation = Column(String(50), nullable=True)
    prefix = Column(String(50), nullable=True)
    suffix = Column(String(50), nullable=True)
    full_name = Column(String(400), nullable=True, index=True)

    # Classification
    contact_type = Column(String(100), nullable=True)
    entity_type = Column(String(100), nullable=True)
    status = Column(String(100), nullable=True)
    restriction_level = Column(String(100), nullable=True)
    is_prospect = Column(Boolean, nullable=False, default=False)
    avatar_url = Column(String(2048), nullable=True)

    # Contact channels
    primary_email = Column(String(320), nullable=True, index=True)
    secondary_email = Column(String(320), nullable=True)
    phone_primary = Column(String(64), nullable=True)
    phone_mobile = Column(String(64), nullable=True)
    phone_work = Column(String(64), nullable=True)
    phone_fax = Column(String(64), nullable=True)
    website = Column(String(2048), nullable=True)
    linkedin_url = Column(String(2048), nullable=True)

    # Physical address
    address_line1 = Column(String(500), nullable=True)
    address_line2 = Column(String(500), nullable=True)
    city = Column(String(200), nullable=True)
    state = Column(String(200), nullable=True)
    zip_code = Column(String(32), nullable=True)
    country = Column(String(100), nullable=True)

    # Mailing address
    mailing_address_line1 = Column(String(500), nullable=True)
    mailing_address_line2 = Column(String(500), nullable=True)
    mailing_city = Column(String(200), nullable=True)
    mailing_state = Column(String(200), nullable=True)
    mailing_zip_code = Column(String(32), nullable=True)
    mailing_country = Column(String(100), nullable=True)

    # Accounting detail
    date_of_birth = Column(Date, nullable=True)
    ein = Column(String(64), nullable=True)
    ssn_last_four = Column(String(4), nullable=True)
    occupation = Column(String(200), nullable=True)
    employer = Column(String(200), nullable=True)

    # References to team_members.external_key
    client_owner_key = Column(String(255), nullable=True, index=True)
    client_manager_key = Column(String(255), nullable=True)
    client_partner_key = Column(String(255), nullable=True)

    user_defined_identifier = Column(String(200), nullable=True)
    tags = Column(JSONType, nullable=True)
    custom_fields = Column(JSONType, nullable=True)
    notes = Column(Text, nullable=True)

    karbon_created_at = Column(DateTime, nullable=True)
    karbon_modified_at = Column(DateTime, nullable=True)
