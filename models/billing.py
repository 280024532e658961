from sqlalchemy import Column, String, Text, Integer, Float, Date, DateTime, Boolean
from models.base import Base, CanonicalMixin, JSONType


class TimesheetEntry(CanonicalMixin, Base):
    """
    Individual time entries flattened out of weekly Karbon /Timesheets.

    Entries without their own key get a composite external_key:
    "<timesheet key>-<date>-<work item key>-<index>".
    """
    __tablename__ = "karbon_timesheets"

    date = Column(Date, nullable=True, index=True)
    minutes = Column(Integer, nullable=False, default=0)
    description = Column(Text, nullable=True)
    is_billable = Column(Boolean, nullable=False, default=True)
    billing_status = Column(String(100), nullable=True)
    hourly_rate = Column(Float, nullable=True)
    billed_amount = Column(Float, nullable=True)

    # References
    user_key = Column(String(255), nullable=True, index=True)
    user_name = Column(String(400), nullable=True)
    work_item_key = Column(String(255), nullable=True, index=True)
    work_item_title = Column(String(500), nullable=True)
    client_key = Column(String(255), nullable=True)
    client_name = Column(String(400), nullable=True)
    task_key = Column(String(255), nullable=True)

    role_name = Column(String(200), nullable=True)
    task_type_name = Column(String(200), nullable=True)
    timesheet_key = Column(String(255), nullable=True)
    timesheet_status = Column(String(100), nullable=True)

    karbon_created_at = Column(DateTime, nullable=True)
    karbon_modified_at = Column(DateTime, nullable=True)


class Invoice(CanonicalMixin, Base):
    """Client invoices, from Karbon /Invoices. external_key: InvoiceKey, else InvoiceNumber."""
    __tablename__ = "karbon_invoices"

    invoice_number = Column(String(100), nullable=True, index=True)
    invoice_date = Column(Date, nullable=True, index=True)
    due_date = Column(Date, nullable=True)
    paid_date = Column(Date, nullable=True)
    status = Column(String(100), nullable=True)

    subtotal = Column(Float, nullable=False, default=0)
    tax_amount = Column(Float, nullable=False, default=0)
    total_amount = Column(Float, nullable=False, default=0)
    amount_paid = Column(Float, nullable=False, default=0)
    amount_due = Column(Float, nullable=False, default=0)
    currency = Column(String(8), nullable=False, default="USD")

    # References
    client_key = Column(String(255), nullable=True, index=True)
    client_name = Column(String(400), nullable=True)
    work_item_key = Column(String(255), nullable=True, index=True)
    work_item_title = Column(String(500), nullable=True)

    line_items = Column(JSONType, nullable=True)
    payment_method = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    karbon_created_at = Column(DateTime, nullable=True)
    karbon_modified_at = Column(DateTime, nullable=True)
