"""
Mappers for workflow statuses, work items and integration tasks
"""

import re
from typing import Any, Dict, Optional
from pipeline.mapping.base import EntityMapper
from pipeline.mapping.fields import (
    Field,
    lookup,
    to_bool,
    to_date,
    to_datetime,
    to_dict,
    to_float,
    to_int,
    to_list,
    to_str,
)
from schemas.canonical import WorkStatusRecord, WorkItemRecord, TaskRecord, NoteRecord

_TITLE_YEAR = re.compile(r"\b(20\d{2})\b")


# ============================================================================
# Work statuses
# ============================================================================

def _status_name(record: Dict[str, Any]) -> Optional[str]:
    primary = to_str(record.get("PrimaryStatusName"))
    secondary = to_str(record.get("SecondaryStatusName"))
    if primary and secondary:
        return f"{primary} - {secondary}"
    return primary or secondary


def _is_open_status(record: Dict[str, Any]) -> bool:
    primary = str(record.get("PrimaryStatusName") or "").lower()
    return "completed" not in primary and "cancelled" not in primary


class WorkStatusMapper(EntityMapper):
    """Statuses exploded out of /TenantSettings; DisplayOrder is their position."""
    entity_type = "work_statuses"
    schema = WorkStatusRecord

    key = Field("external_key", ["WorkStatusKey"], to_str)
    fields = [
        Field("name", [_status_name, lambda r: f"Status {r.get('DisplayOrder', 0)}"], to_str),
        Field("description", ["SecondaryStatusName"], to_str),
        Field("status_type", ["PrimaryStatusName"], to_str),
        Field("primary_status_name", ["PrimaryStatusName"], to_str),
        Field("secondary_status_name", ["SecondaryStatusName"], to_str),
        Field("work_type_keys", ["WorkTypeKeys"], to_list),
        Field("display_order", ["DisplayOrder"], to_int),
        Field("is_active", [_is_open_status], default=True),
        Field("is_default_filter", [_is_open_status], default=True),
    ]


# ============================================================================
# Work items
# ============================================================================

def _explicit_tax_year(record: Dict[str, Any]) -> Optional[int]:
    year = to_int(record.get("TaxYear"))
    return year if year and year > 0 else None


def _year_of(source: str):
    def year(record: Dict[str, Any]) -> Optional[int]:
        day = to_date(record.get(source))
        if day is not None and 2000 < day.year < 2100:
            return day.year
        return None
    return year


def _title_year(record: Dict[str, Any]) -> Optional[int]:
    match = _TITLE_YEAR.search(str(record.get("Title") or ""))
    return int(match.group(1)) if match else None


TAX_YEAR = Field("tax_year", [
    _explicit_tax_year,
    _year_of("YearEnd"),
    _year_of("PeriodEnd"),
    _title_year,
])


def parse_tax_year(record: Dict[str, Any]) -> Optional[int]:
    """
    Best-effort tax year of a work item.

    Explicit TaxYear, else the year of YearEnd or PeriodEnd (2000 < year < 2100),
    else a 20xx year in the title, else None. A title such as
    "Catch-up 2019-2021" yields 2019; callers must treat the value as a hint.
    """
    return TAX_YEAR.resolve(record)


def _fee_when(fee_type: str):
    def value(record: Dict[str, Any]) -> Any:
        if lookup(record, "FeeSettings.FeeType") == fee_type:
            return lookup(record, "FeeSettings.FeeValue")
        return None
    return value


def _budget_minutes(record: Dict[str, Any]) -> Optional[int]:
    hours = to_float(lookup(record, "Budget.BudgetedHours"))
    return round(hours * 60) if hours else None


class WorkItemMapper(EntityMapper):
    entity_type = "work_items"
    schema = WorkItemRecord
    url_path = "work"

    key = Field("external_key", ["WorkItemKey"], to_str)
    fields = [
        Field("client_key", ["ClientKey"], to_str),
        Field("client_type", ["ClientType"], to_str),
        Field("client_name", ["ClientName"], to_str),
        Field("client_group_key", ["RelatedClientGroupKey", "ClientGroupKey"], to_str),
        Field("client_group_name", ["RelatedClientGroupName", "ClientGroupName"], to_str),
        Field("assignee_key", ["AssigneeKey"], to_str),
        Field("assignee_name", ["AssigneeName"], to_str),
        Field("client_owner_key", ["ClientOwnerKey"], to_str),
        Field("client_manager_key", ["ClientManagerKey"], to_str),
        Field("client_partner_key", ["ClientPartnerKey"], to_str),
        Field("work_status_key", ["WorkStatusKey"], to_str),

        Field("title", ["Title"], to_str),
        Field("description", ["Description"], to_str),
        Field("work_type", ["WorkType"], to_str),
        Field("workflow_status", ["WorkStatus"], to_str),
        Field("primary_status", ["PrimaryStatus"], to_str),
        Field("secondary_status", ["SecondaryStatus"], to_str),
        Field("user_defined_identifier", ["UserDefinedIdentifier"], to_str),
        Field("priority", ["Priority"], to_str, default="Normal"),

        Field("start_date", ["StartDate"], to_date),
        Field("due_date", ["DueDate"], to_date),
        Field("completed_date", ["CompletedDate"], to_date),
        Field("year_end", ["YearEnd"], to_date),
        TAX_YEAR,
        Field("period_start", ["PeriodStart"], to_date),
        Field("period_end", ["PeriodEnd"], to_date),
        Field("internal_due_date", ["InternalDueDate"], to_date),
        Field("regulatory_deadline", ["RegulatoryDeadline"], to_date),
        Field("client_deadline", ["ClientDeadline"], to_date),
        Field("extension_date", ["ExtensionDate"], to_date),

        Field("work_template_key", ["WorkTemplateKey"], to_str),
        Field("work_template_name", ["WorkTemplateTitle", "WorkTemplateTile"], to_str),
        Field("fee_type", ["FeeSettings.FeeType"], to_str),
        Field("estimated_fee", ["FeeSettings.FeeValue"], to_float),
        Field("fixed_fee_amount", [_fee_when("Fixed")], to_float),
        Field("hourly_rate", [_fee_when("Hourly")], to_float),

        Field("budget_hours", ["Budget.BudgetedHours"], to_float),
        Field("budget_minutes", [_budget_minutes], to_int),
        Field("budget_amount", ["Budget.BudgetedAmount"], to_float),
        Field("actual_hours", ["ActualHours"], to_float),
        Field("actual_amount", ["ActualAmount"], to_float),

        Field("todo_count", ["TodoCount"], to_int, default=0),
        Field("completed_todo_count", ["CompletedTodoCount"], to_int, default=0),
        Field("has_blocking_todos", ["HasBlockingTodos"], to_bool, default=False),

        Field("is_recurring", ["IsRecurring"], to_bool, default=False),
        Field("is_billable", ["IsBillable"], to_bool, default=True),
        Field("is_internal", ["IsInternal"], to_bool, default=False),

        Field("tags", ["Tags"], to_list),
        Field("custom_fields", ["CustomFields"], to_dict),
        Field("related_work_keys", ["RelatedWorkKeys"], to_list),

        Field("karbon_created_at", ["CreatedDate", "CreatedDateTime"], to_datetime),
        Field("karbon_modified_at", ["LastModifiedDateTime", "ModifiedDate"], to_datetime),
    ]


# ============================================================================
# Integration tasks
# ============================================================================

class TaskMapper(EntityMapper):
    """Task payloads keep most attributes under Data; top-level copies are the fallback."""
    entity_type = "tasks"
    schema = TaskRecord
    url_path = "tasks"

    key = Field("external_key", ["IntegrationTaskKey", "TaskKey", "Key"], to_str)
    fields = [
        Field("task_definition_key", ["TaskDefinitionKey"], to_str),
        Field("title", ["Data.Title", "Title"], to_str),
        Field("description", ["Data.Description", "Description"], to_str),
        Field("status", ["Status"], to_str),
        Field("priority", ["Data.Priority", "Priority"], to_str, default="Normal"),
        Field("due_date", ["Data.DueDate", "DueDate"], to_date),
        Field("completed_date", ["Data.CompletedDate", "CompletedDate"], to_date),

        Field("assignee_key", ["Data.AssigneeKey", "AssigneeKey"], to_str),
        Field("assignee_name", ["Data.AssigneeName", "AssigneeName"], to_str),
        Field("assignee_email", ["Data.AssigneeEmailAddress", "AssigneeEmailAddress"], to_str),

        Field("work_item_key", ["WorkItemKey"], to_str),
        Field("contact_key", ["WorkItemClientKey", "ContactKey"], to_str),

        Field("is_blocking", ["Data.IsBlocking"], to_bool, default=False),
        Field("estimated_minutes", ["Data.EstimatedMinutes"], to_int),
        Field("actual_minutes", ["Data.ActualMinutes"], to_int),
        Field("task_data", ["Data"], to_dict),

        Field("karbon_created_at", ["CreatedAt", "CreatedDate"], to_datetime),
        Field("karbon_modified_at", ["UpdatedAt", "LastModifiedDateTime"], to_datetime),
    ]


# ============================================================================
# Notes
# ============================================================================

class NoteMapper(EntityMapper):
    """
    Notes come from one request per work item; the orchestrator stamps the
    parent's key into WorkItemKey before mapping.
    """
    entity_type = "notes"
    schema = NoteRecord
    url_path = "notes"

    key = Field("external_key", ["NoteKey"], to_str)
    fields = [
        Field("subject", ["Subject"], to_str),
        Field("body", ["Body"], to_str),
        Field("note_type", ["NoteType"], to_str),
        Field("is_pinned", ["IsPinned"], to_bool, default=False),

        Field("author_key", ["AuthorKey"], to_str),
        Field("author_name", ["AuthorName"], to_str),
        Field("assignee_email", ["AssigneeEmailAddress"], to_str),
        Field("due_date", ["DueDate"], to_date),
        Field("todo_date", ["TodoDate"], to_date),

        Field("timelines", ["Timelines"], to_list),
        Field("comments", ["Comments"], to_list),

        Field("work_item_key", ["WorkItemKey"], to_str),
        Field("work_item_title", ["WorkItemTitle"], to_str),
        Field("contact_key", ["ContactKey"], to_str),
        Field("contact_name", ["ContactName"], to_str),

        Field("karbon_created_at", ["CreatedDate", "CreatedDateTime"], to_datetime),
        Field("karbon_modified_at", ["LastModifiedDateTime", "ModifiedDate"], to_datetime),
    ]
