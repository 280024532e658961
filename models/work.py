from sqlalchemy import Column, String, Text, Integer, Float, Date, DateTime, Boolean
from models.base import Base, CanonicalMixin, JSONType


class WorkStatus(CanonicalMixin, Base):
    """Workflow statuses, exploded out of Karbon /TenantSettings."""
    __tablename__ = "work_statuses"

    name = Column(String(400), nullable=False)
    description = Column(Text, nullable=True)
    status_type = Column(String(100), nullable=True)
    primary_status_name = Column(String(200), nullable=True)
    secondary_status_name = Column(String(200), nullable=True)
    work_type_keys = Column(JSONType, nullable=True)
    display_order = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_default_filter = Column(Boolean, nullable=False, default=True)


class WorkItem(CanonicalMixin, Base):
    """
    Client engagements (tax returns, bookkeeping periods...), from Karbon /WorkItems.

    tax_year is derived heuristically and can be wrong or missing; see
    pipeline.mapping.work.parse_tax_year.
    """
    __tablename__ = "work_items"

    # References
    client_key = Column(String(255), nullable=True, index=True)
    client_type = Column(String(100), nullable=True)
    client_name = Column(String(400), nullable=True)
    client_group_key = Column(String(255), nullable=True, index=True)
    client_group_name = Column(String(400), nullable=True)
    assignee_key = Column(String(255), nullable=True, index=True)
    assignee_name = Column(String(400), nullable=True)
    client_owner_key = Column(String(255), nullable=True)
    client_manager_key = Column(String(255), nullable=True)
    client_partner_key = Column(String(255), nullable=True)
    work_status_key = Column(String(255), nullable=True)

    # Description
    title = Column(String(500), nullable=True, index=True)
    description = Column(Text, nullable=True)
    work_type = Column(String(200), nullable=True, index=True)
    workflow_status = Column(String(200), nullable=True)
    primary_status = Column(String(200), nullable=True, index=True)
    secondary_status = Column(String(200), nullable=True)
    user_defined_identifier = Column(String(200), nullable=True)
    priority = Column(String(50), nullable=True)

    # Dates
    start_date = Column(Date, nullable=True)
    due_date = Column(Date, nullable=True, index=True)
    completed_date = Column(Date, nullable=True)
    year_end = Column(Date, nullable=True)
    tax_year = Column(Integer, nullable=True, index=True)
    period_start = Column(Date, nullable=True)
    period_end = Column(Date, nullable=True)
    internal_due_date = Column(Date, nullable=True)
    regulatory_deadline = Column(Date, nullable=True)
    client_deadline = Column(Date, nullable=True)
    extension_date = Column(Date, nullable=True)

    # Template and fees
    work_template_key = Column(String(255), nullable=True)
    work_template_name = Column(String(400), nullable=True)
    fee_type = Column(String(50), nullable=True)
    estimated_fee = Column(Float, nullable=True)
    fixed_fee_amount = Column(Float, nullable=True)
    hourly_rate = Column(Float, nullable=True)

    # Budget and actuals
    budget_hours = Column(Float, nullable=True)
    budget_minutes = Column(Integer, nullable=True)
    budget_amount = Column(Float, nullable=True)
    actual_hours = Column(Float, nullable=True)
    actual_amount = Column(Float, nullable=True)

    todo_count = Column(Integer, nullable=False, default=0)
    completed_todo_count = Column(Integer, nullable=False, default=0)
    has_blocking_todos = Column(Boolean, nullable=False, default=False)

    is_recurring = Column(Boolean, nullable=False, default=False)
    is_billable = Column(Boolean, nullable=False, default=True)
    is_internal = Column(Boolean, nullable=False, default=False)

    tags = Column(JSONType, nullable=True)
    custom_fields = Column(JSONType, nullable=True)
    related_work_keys = Column(JSONType, nullable=True)

    karbon_created_at = Column(DateTime, nullable=True)
    karbon_modified_at = Column(DateTime, nullable=True)


class KarbonTask(CanonicalMixin, Base):
    """Integration tasks attached to work items, from Karbon /IntegrationTasks."""
    __tablename__ = "karbon_tasks"

    task_definition_key = Column(String(255), nullable=True)
    title = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)
    status = Column(String(100), nullable=True)
    priority = Column(String(50), nullable=True)
    due_date = Column(Date, nullable=True)
    completed_date = Column(Date, nullable=True)

    assignee_key = Column(String(255), nullable=True)
    assignee_name = Column(String(400), nullable=True)
    assignee_email = Column(String(320), nullable=True)

    # References to work_items / contacts external_key
    work_item_key = Column(String(255), nullable=True, index=True)
    contact_key = Column(String(255), nullable=True)

    is_blocking = Column(Boolean, nullable=False, default=False)
    estimated_minutes = Column(Integer, nullable=True)
    actual_minutes = Column(Integer, nullable=True)
    task_data = Column(JSONType, nullable=True)

    karbon_created_at = Column(DateTime, nullable=True)
    karbon_modified_at = Column(DateTime, nullable=True)


class Note(CanonicalMixin, Base):
    """Notes attached to work items, fetched per work item from Karbon /WorkItems(key)/Notes."""
    __tablename__ = "karbon_notes"

    subject = Column(String(500), nullable=True)
    body = Column(Text, nullable=True)
    note_type = Column(String(100), nullable=True)
    is_pinned = Column(Boolean, nullable=False, default=False)

    author_key = Column(String(255), nullable=True)
    author_name = Column(String(400), nullable=True)
    assignee_email = Column(String(320), nullable=True)
    due_date = Column(Date, nullable=True)
    todo_date = Column(Date, nullable=True)

    timelines = Column(JSONType, nullable=True)
    comments = Column(JSONType, nullable=True)

    # References to work_items / contacts external_key
    work_item_key = Column(String(255), nullable=True, index=True)
    work_item_title = Column(String(500), nullable=True)
    contact_key = Column(String(255), nullable=True, index=True)
    contact_name = Column(String(400), nullable=True)

    karbon_created_at = Column(DateTime, nullable=True)
    karbon_modified_at = Column(DateTime, nullable=True)
