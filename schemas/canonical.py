"""
Pydantic schemas for canonical records with validation

One schema per entity type. Field names match the target table columns
exactly; unknown fields are rejected so a mapping typo fails loudly.
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Any
from datetime import date, datetime

# "date" is also a timesheet column name
DateType = date


class CanonicalRecord(BaseModel):
    """
    Fields every canonical record carries.

    Ensures:
    - external_key is present and trimmed
    - audit timestamps are set by the mapper, not the source
    """

    external_key: str = Field(..., min_length=1, max_length=255)
    karbon_url: Optional[str] = Field(None, max_length=2048)
    last_synced_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @validator("external_key", pre=True)
    def clean_external_key(cls, v):
        """Keys are opaque strings; numbers are stringified"""
        if v is None:
            raise ValueError("external_key is required")
        v = str(v).strip()
        if not v:
            raise ValueError("external_key cannot be empty after stripping")
        return v

    class Config:
        extra = "forbid"


class SourceStampedRecord(CanonicalRecord):
    """Records whose source payload carries created/modified timestamps"""
    karbon_created_at: Optional[datetime] = None
    karbon_modified_at: Optional[datetime] = None


class TeamMemberRecord(CanonicalRecord):
    """Firm staff member (/Users)"""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: Optional[str] = Field(None, max_length=400)
    email: Optional[str] = Field(None, max_length=320)
    title: Optional[str] = None
    role: Optional[str] = None
    department: Optional[str] = None
    phone_number: Optional[str] = None
    mobile_number: Optional[str] = None
    avatar_url: Optional[str] = None
    timezone: Optional[str] = None
    start_date: Optional[date] = None
    is_active: bool = True

    @validator("email")
    def normalize_email(cls, v):
        return v.strip().lower() if v else v


class WorkStatusRecord(CanonicalRecord):
    """Workflow status (/TenantSettings WorkStatuses)"""
    name: str = Field(..., min_length=1, max_length=400)
    description: Optional[str] = None
    status_type: Optional[str] = None
    primary_status_name: Optional[str] = None
    secondary_status_name: Optional[str] = None
    work_type_keys: Optional[List[Any]] = None
    display_order: Optional[int] = None
    is_active: bool = True
    is_default_filter: bool = True


class ContactRecord(SourceStampedRecord):
    """Individual client (/Contacts)"""
    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    last_name: Optional[str] = None
    preferred_name: Optional[str] = None
    salutation: Optional[str] = None
    prefix: Optional[str] = None
    suffix: Optional[str] = None
    full_name: Optional[str] = Field(None, max_length=400)

    contact_type: Optional[str] = None
    entity_type: Optional[str] = None
    status: Optional[str] = None
    restriction_level: Optional[str] = None
    is_prospect: bool = False
    avatar_url: Optional[str] = None

    primary_email: Optional[str] = Field(None, max_length=320)
    secondary_email: Optional[str] = Field(None, max_length=320)
    phone_primary: Optional[str] = None
    phone_mobile: Optional[str] = None
    phone_work: Optional[str] = None
    phone_fax: Optional[str] = None
    website: Optional[str] = None
    linkedin_url: Optional[str] = None

    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None

    mailing_address_line1: Optional[str] = None
    mailing_address_line2: Optional[str] = None
    mailing_city: Optional[str] = None
    mailing_state: Optional[str] = None
    mailing_zip_code: Optional[str] = None
    mailing_country: Optional[str] = None

    date_of_birth: Optional[date] = None
    ein: Optional[str] = None
    ssn_last_four: Optional[str] = Field(None, max_length=4)
    occupation: Optional[str] = None
    employer: Optional[str] = None

    client_owner_key: Optional[str] = None
    client_manager_key: Optional[str] = None
    client_partner_key: Optional[str] = None

    user_defined_identifier: Optional[str] = None
    tags: Optional[List[Any]] = None
    custom_fields: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None


class OrganizationRecord(SourceStampedRecord):
    """Business client (/Organizations)"""
    name: str = Field(..., min_length=1, max_length=400)
    full_name: Optional[str] = Field(None, max_length=400)
    legal_name: Optional[str] = None
    trading_name: Optional[str] = None
    description: Optional[str] = None

    entity_type: Optional[str] = None
    contact_type: Optional[str] = None
    restriction_level: Optional[str] = None
    user_defined_identifier: Optional[str] = None
    industry: Optional[str] = None
    line_of_business: Optional[str] = None

    primary_email: Optional[str] = Field(None, max_length=320)
    phone: Optional[str] = None
    website: Optional[str] = None
    linkedin_url: Optional[str] = None

    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None

    ein: Optional[str] = None
    gst_number: Optional[str] = None
    gst_registered: bool = False
    fiscal_year_end_month: Optional[int] = Field(None, ge=1, le=12)
    fiscal_year_end_day: Optional[int] = Field(None, ge=1, le=31)
    base_currency: Optional[str] = None

    client_owner_key: Optional[str] = None
    client_manager_key: Optional[str] = None
    client_partner_key: Optional[str] = None
    parent_organization_key: Optional[str] = None

    custom_fields: Optional[Dict[str, Any]] = None


class ClientGroupRecord(SourceStampedRecord):
    """Household or related-entity grouping (/ClientGroups)"""
    name: str = Field(..., min_length=1, max_length=400)
    description: Optional[str] = None
    group_type: Optional[str] = None
    contact_type: Optional[str] = None

    primary_contact_key: Optional[str] = None
    primary_contact_name: Optional[str] = None
    client_owner_key: Optional[str] = None
    client_owner_name: Optional[str] = None
    client_manager_key: Optional[str] = None
    client_manager_name: Optional[str] = None

    members: Optional[List[Any]] = None
    restriction_level: Optional[str] = None
    user_defined_identifier: Optional[str] = None


class WorkItemRecord(SourceStampedRecord):
    """Client engagement (/WorkItems)"""
    client_key: Optional[str] = None
    client_type: Optional[str] = None
    client_name: Optional[str] = None
    client_group_key: Optional[str] = None
    client_group_name: Optional[str] = None
    assignee_key: Optional[str] = None
    assignee_name: Optional[str] = None
    client_owner_key: Optional[str] = None
    client_manager_key: Optional[str] = None
    client_partner_key: Optional[str] = None
    work_status_key: Optional[str] = None

    title: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    work_type: Optional[str] = None
    workflow_status: Optional[str] = None
    primary_status: Optional[str] = None
    secondary_status: Optional[str] = None
    user_defined_identifier: Optional[str] = None
    priority: Optional[str] = None

    start_date: Optional[date] = None
    due_date: Optional[date] = None
    completed_date: Optional[date] = None
    year_end: Optional[date] = None
    tax_year: Optional[int] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    internal_due_date: Optional[date] = None
    regulatory_deadline: Optional[date] = None
    client_deadline: Optional[date] = None
    extension_date: Optional[date] = None

    work_template_key: Optional[str] = None
    work_template_name: Optional[str] = None
    fee_type: Optional[str] = None
    estimated_fee: Optional[float] = None
    fixed_fee_amount: Optional[float] = None
    hourly_rate: Optional[float] = None

    budget_hours: Optional[float] = None
    budget_minutes: Optional[int] = None
    budget_amount: Optional[float] = None
    actual_hours: Optional[float] = None
    actual_amount: Optional[float] = None

    todo_count: int = 0
    completed_todo_count: int = 0
    has_blocking_todos: bool = False

    is_recurring: bool = False
    is_billable: bool = True
    is_internal: bool = False

    tags: Optional[List[Any]] = None
    custom_fields: Optional[Dict[str, Any]] = None
    related_work_keys: Optional[List[Any]] = None


class TaskRecord(SourceStampedRecord):
    """Integration task attached to a work item (/IntegrationTasks)"""
    task_definition_key: Optional[str] = None
    title: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[date] = None
    completed_date: Optional[date] = None

    assignee_key: Optional[str] = None
    assignee_name: Optional[str] = None
    assignee_email: Optional[str] = None

    work_item_key: Optional[str] = None
    contact_key: Optional[str] = None

    is_blocking: bool = False
    estimated_minutes: Optional[int] = None
    actual_minutes: Optional[int] = None
    task_data: Optional[Dict[str, Any]] = None


class NoteRecord(SourceStampedRecord):
    """Note on a work item (/WorkItems(key)/Notes)"""
    subject: Optional[str] = Field(None, max_length=500)
    body: Optional[str] = None
    note_type: Optional[str] = None
    is_pinned: bool = False

    author_key: Optional[str] = None
    author_name: Optional[str] = None
    assignee_email: Optional[str] = None
    due_date: Optional[date] = None
    todo_date: Optional[date] = None

    timelines: Optional[List[Any]] = None
    comments: Optional[List[Any]] = None

    work_item_key: Optional[str] = None
    work_item_title: Optional[str] = None
    contact_key: Optional[str] = None
    contact_name: Optional[str] = None


class TimesheetEntryRecord(SourceStampedRecord):
    """One time entry flattened out of a weekly timesheet (/Timesheets)"""
    date: Optional[DateType] = None
    minutes: int = Field(0, ge=0)
    description: Optional[str] = None
    is_billable: bool = True
    billing_status: Optional[str] = None
    hourly_rate: Optional[float] = None
    billed_amount: Optional[float] = None

    user_key: Optional[str] = None
    user_name: Optional[str] = None
    work_item_key: Optional[str] = None
    work_item_title: Optional[str] = None
    client_key: Optional[str] = None
    client_name: Optional[str] = None
    task_key: Optional[str] = None

    role_name: Optional[str] = None
    task_type_name: Optional[str] = None
    timesheet_key: Optional[str] = None
    timesheet_status: Optional[str] = None


class InvoiceRecord(SourceStampedRecord):
    """Client invoice (/Invoices)"""
    invoice_number: Optional[str] = None
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    paid_date: Optional[date] = None
    status: Optional[str] = None

    subtotal: float = 0
    tax_amount: float = 0
    total_amount: float = 0
    amount_paid: float = 0
    amount_due: float = 0
    currency: str = Field("USD", min_length=1, max_length=8)

    client_key: Optional[str] = None
    client_name: Optional[str] = None
    work_item_key: Optional[str] = None
    work_item_title: Optional[str] = None

    line_items: Optional[List[Any]] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None
