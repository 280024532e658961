"""
Raw → canonical mappers, one per entity type.

Each mapper is a declarative list of Field specs (ordered candidate
lookups plus a transform) interpreted by the resolver in
pipeline.mapping.fields, followed by pydantic validation against the
entity's schema in schemas.canonical.
"""

from pipeline.mapping.base import EntityMapper
from pipeline.mapping.people import TeamMemberMapper, ContactMapper
from pipeline.mapping.organizations import OrganizationMapper, ClientGroupMapper
from pipeline.mapping.work import WorkStatusMapper, WorkItemMapper, TaskMapper, NoteMapper, parse_tax_year
from pipeline.mapping.billing import TimesheetEntryMapper, InvoiceMapper

__all__ = [
    "EntityMapper",
    "TeamMemberMapper",
    "ContactMapper",
    "OrganizationMapper",
    "ClientGroupMapper",
    "WorkStatusMapper",
    "WorkItemMapper",
    "TaskMapper",
    "NoteMapper",
    "TimesheetEntryMapper",
    "InvoiceMapper",
    "parse_tax_year",
]
