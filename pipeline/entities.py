"""
Entity registry: what to fetch, how to map it, where to write it, and in which order
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Type
from pipeline.mapping import (
    EntityMapper,
    TeamMemberMapper,
    WorkStatusMapper,
    ContactMapper,
    OrganizationMapper,
    ClientGroupMapper,
    WorkItemMapper,
    TaskMapper,
    NoteMapper,
    TimesheetEntryMapper,
    InvoiceMapper,
)
from pipeline.mapping.fields import Field, as_list, to_str
from models.base import Base
from models.people import TeamMember, Contact
from models.organizations import Organization, ClientGroup
from models.work import WorkStatus, WorkItem, KarbonTask, Note
from models.billing import TimesheetEntry, Invoice

Exploder = Callable[[Dict[str, Any]], Iterable[Dict[str, Any]]]


def explode_work_statuses(tenant_settings: Dict[str, Any]) -> Iterable[Dict[str, Any]]:
    """/TenantSettings is one object; its WorkStatuses are the records"""
    for index, status in enumerate(as_list(tenant_settings.get("WorkStatuses"))):
        if isinstance(status, dict):
            yield {**status, "DisplayOrder": index}


def explode_time_entries(timesheet: Dict[str, Any]) -> Iterable[Dict[str, Any]]:
    """Flatten a weekly timesheet into its entries, each carrying the parent and its position"""
    parent = {k: v for k, v in timesheet.items() if k != "TimeEntries"}
    for index, entry in enumerate(as_list(timesheet.get("TimeEntries"))):
        if isinstance(entry, dict):
            yield {**entry, "Timesheet": parent, "EntryIndex": index}


@dataclass(frozen=True)
class FanOut:
    """
    Fetch a child endpoint once per row already stored in a parent table.

    The definition's endpoint is a template with a {key} placeholder, and
    every fetched record gets the parent key under key_field.
    """
    parent: Type[Base]
    key_field: str


@dataclass(frozen=True)
class EntityDefinition:
    """
    Static description of one entity type.

    Attributes:
        name: Registry name, also the entity_type in sync_log
        endpoint: Karbon list endpoint
        model: Target table
        mapper_class: Raw → canonical mapper
        depends_on: Entity names whose rows this entity references
        params: Fixed query options ($expand, $orderby)
        explode: Turns one fetched record into the records to map
        secondary_identity: Extra dedup signal (email for users)
        incremental: Whether the endpoint accepts a LastModifiedDateTime filter
        fan_out: Per-parent fetch, for endpoints scoped to one parent row
    """
    name: str
    endpoint: str
    model: Type[Base]
    mapper_class: Type[EntityMapper]
    depends_on: Tuple[str, ...] = ()
    params: Dict[str, str] = field(default_factory=dict)
    explode: Optional[Exploder] = None
    secondary_identity: Optional[Field] = None
    incremental: bool = True
    conflict_key: str = "external_key"
    fan_out: Optional[FanOut] = None

    @property
    def table_name(self) -> str:
        return self.model.__tablename__

    def expand(self, records: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if self.explode is None:
            return list(records)
        flattened = []
        for record in records:
            if isinstance(record, dict):
                flattened.extend(self.explode(record))
        return flattened


USER_EMAIL = Field("email", ["EmailAddress", "Email"], to_str)

ENTITIES: List[EntityDefinition] = [
    EntityDefinition(
        name="users",
        endpoint="/Users",
        model=TeamMember,
        mapper_class=TeamMemberMapper,
        secondary_identity=USER_EMAIL,
        incremental=False,
    ),
    EntityDefinition(
        name="work_statuses",
        endpoint="/TenantSettings",
        model=WorkStatus,
        mapper_class=WorkStatusMapper,
        explode=explode_work_statuses,
        incremental=False,
    ),
    EntityDefinition(
        name="contacts",
        endpoint="/Contacts",
        model=Contact,
        mapper_class=ContactMapper,
        params={"$expand": "BusinessCards,AccountingDetail", "$orderby": "FullName asc"},
    ),
    EntityDefinition(
        name="organizations",
        endpoint="/Organizations",
        model=Organization,
        mapper_class=OrganizationMapper,
        params={"$expand": "BusinessCards,AccountingDetail", "$orderby": "OrganizationName asc"},
    ),
    EntityDefinition(
        name="client_groups",
        endpoint="/ClientGroups",
        model=ClientGroup,
        mapper_class=ClientGroupMapper,
        depends_on=("contacts", "organizations"),
        params={"$expand": "BusinessCard,ClientTeam", "$orderby": "FullName asc"},
    ),
    EntityDefinition(
        name="work_items",
        endpoint="/WorkItems",
        model=WorkItem,
        mapper_class=WorkItemMapper,
        depends_on=("users", "work_statuses", "contacts", "organizations", "client_groups"),
        params={"$orderby": "Title asc"},
    ),
    EntityDefinition(
        name="tasks",
        endpoint="/IntegrationTasks",
        model=KarbonTask,
        mapper_class=TaskMapper,
        depends_on=("work_items",),
    ),
    EntityDefinition(
        name="notes",
        endpoint="/WorkItems({key})/Notes",
        model=Note,
        mapper_class=NoteMapper,
        depends_on=("work_items",),
        fan_out=FanOut(parent=WorkItem, key_field="WorkItemKey"),
        incremental=False,
    ),
    EntityDefinition(
        name="timesheets",
        endpoint="/Timesheets",
        model=TimesheetEntry,
        mapper_class=TimesheetEntryMapper,
        depends_on=("users", "work_items"),
        params={"$expand": "TimeEntries", "$orderby": "StartDate desc"},
        explode=explode_time_entries,
        incremental=False,
    ),
    EntityDefinition(
        name="invoices",
        endpoint="/Invoices",
        model=Invoice,
        mapper_class=InvoiceMapper,
        depends_on=("contacts", "organizations", "work_items"),
        params={"$orderby": "InvoiceDate desc"},
    ),
]


def get_entity(name: str) -> EntityDefinition:
    for definition in ENTITIES:
        if definition.name == name:
            return definition
    raise KeyError(f"Unknown entity type: {name}")


def dependency_order(definitions: Sequence[EntityDefinition]) -> List[EntityDefinition]:
    """
    Topologically sort entity types so every entity follows its dependencies.

    Kahn's algorithm, stable with respect to the input order: at each step
    the earliest listed entity whose dependencies are placed goes next.
    Dependencies outside the given set are ignored.

    Raises:
        ValueError: on a dependency cycle
    """
    names = {d.name for d in definitions}
    pending = list(definitions)
    placed: List[EntityDefinition] = []
    done = set()

    while pending:
        for definition in pending:
            if all(dep in done or dep not in names for dep in definition.depends_on):
                break
        else:
            cycle = ", ".join(d.name for d in pending)
            raise ValueError(f"Dependency cycle among entity types: {cycle}")

        pending.remove(definition)
        placed.append(definition)
        done.add(definition.name)

    return placed
