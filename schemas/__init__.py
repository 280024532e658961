"""
Pydantic schemas for data validation and serialization.

This package defines Pydantic models used across the sync pipeline:

Schemas:
    canonical: One validated record schema per entity type; field names
        match the target table columns
    api: Sync status API response models

Features:
    - Automatic data validation
    - Type coercion and conversion
    - Unknown fields rejected on canonical records
    - OpenAPI schema generation for FastAPI

Usage:
    from schemas.canonical import ContactRecord
    from schemas.api import SyncRunResponse, SyncHealthResponse

Example:
    record = ContactRecord(external_key="c1", full_name="Jane Doe")

    # Pydantic validates types and required fields
    assert record.external_key == "c1"
"""

__all__ = [
    "CanonicalRecord",
    "TeamMemberRecord",
    "ContactRecord",
    "OrganizationRecord",
    "ClientGroupRecord",
    "WorkStatusRecord",
    "WorkItemRecord",
    "TaskRecord",
    "NoteRecord",
    "TimesheetEntryRecord",
    "InvoiceRecord",
    "SyncRunResponse",
    "SyncHealthResponse",
    "HealthCheckResponse",
]
