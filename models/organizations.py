from sqlalchemy import Column, String, Text, Integer, DateTime, Boolean
from models.base import Base, CanonicalMixin, JSONType


class Organization(CanonicalMixin, Base):
    """Business clients, replicated from Karbon /Organizations."""
    __tablename__ = "organizations"

    name = Column(String(400), nullable=False, index=True)
    full_name = Column(String(400), nullable=True)
    legal_name = Column(String(400), nullable=True)
    trading_name = Column(String(400), nullable=True)
    description = Column(Text, nullable=True)

    entity_type = Column(String(100), nullable=True)
    contact_type = Column(String(100), nullable=True)
    restriction_level = Column(String(100), nullable=True)
    user_defined_identifier = Column(String(200), nullable=True)
    industry = Column(String(200), nullable=True)
    line_of_business = Column(String(200), nullable=True)

    primary_email = Column(String(320), nullable=True)
    phone = Column(String(64), nullable=True)
    website = Column(String(2048), nullable=True)
    linkedin_url = Column(String(2048), nullable=True)

    address_line1 = Column(String(500), nullable=True)
    address_line2 = Column(String(500), nullable=True)
    city = Column(String(200), nullable=True)
    state = Column(String(200), nullable=True)
    zip_code = Column(String(32), nullable=True)
    country = Column(String(100), nullable=True)

    # Registration and accounting
    ein = Column(String(64), nullable=True)
    gst_number = Column(String(64), nullable=True)
    gst_registered = Column(Boolean, nullable=False, default=False)
    fiscal_year_end_month = Column(Integer, nullable=True)
    fiscal_year_end_day = Column(Integer, nullable=True)
    base_currency = Column(String(8), nullable=True)

    # References to team_members / organizations external_key
    client_owner_key = Column(String(255), nullable=True, index=True)
    client_manager_key = Column(String(255), nullable=True)
    client_partner_key = Column(String(255), nullable=True)
    parent_organization_key = Column(String(255), nullable=True)

    custom_fields = Column(JSONType, nullable=True)

    karbon_created_at = Column(DateTime, nullable=True)
    karbon_modified_at = Column(DateTime, nullable=True)


class ClientGroup(CanonicalMixin, Base):
    """
    Households and related-entity groupings, replicated from Karbon /ClientGroups.

    members holds the raw member references (contact / organization keys).
    """
    __tablename__ = "client_groups"

    name = Column(String(400), nullable=False, index=True)
    description = Column(Text, nullable=True)
    group_type = Column(String(100), nullable=True)
    contact_type = Column(String(100), nullable=True)

    primary_contact_key = Column(String(255), nullable=True)
    primary_contact_name = Column(String(400), nullable=True)
    client_owner_key = Column(String(255), nullable=True)
    client_owner_name = Column(String(400), nullable=True)
    client_manager_key = Column(String(255), nullable=True)
    client_manager_name = Column(String(400), nullable=True)

    members = Column(JSONType, nullable=True)
    restriction_level = Column(String(100), nullable=True)
    user_defined_identifier = Column(String(200), nullable=True)

    karbon_created_at = Column(DateTime, nullable=True)
    karbon_modified_at = Column(DateTime, nullable=True)
