"""
Unit tests for the sync orchestrator with in-memory collaborators
"""

import asyncio
import re
import pytest
import httpx
from dataclasses import replace
from datetime import datetime
from pipeline.orchestrator import SyncOrchestrator
from pipeline.paginator import KarbonPaginator
from pipeline.reporter import SyncReporter
from pipeline.writer import BatchWriter, UpsertTarget
from pipeline.entities import get_entity
from models.base import EntityStatus, FetchOutcome, SyncRunStatus, SyncType
from core.exceptions import UpsertError


class MemoryReporter(SyncReporter):

    def __init__(self, watermarks=None):
        self.watermarks = watermarks or {}
        self.entities = []
        self.finished = None

    async def start_run(self, sync_type, started_at):
        self.sync_type = sync_type
        return 7

    async def record_entity(self, run_id, result):
        self.entities.append(result)

    async def finish_run(self, run_id, summary):
        self.finished = summary

    async def last_success_times(self):
        return {}

    async def incremental_watermarks(self):
        return self.watermarks


class MemoryTarget(UpsertTarget):

    def __init__(self, failing_tables=()):
        self.failing_tables = set(failing_tables)
        self.rows = {}

    async def upsert(self, model, rows, conflict_key):
        if model.__tablename__ in self.failing_tables:
            raise UpsertError(f"{model.__tablename__} is read-only")
        for row in rows:
            self.rows.setdefault(model.__tablename__, {})[row[conflict_key]] = row

    async def stored_keys(self, model, conflict_key="external_key"):
        return list(self.rows.get(model.__tablename__, {}))


def make_orchestrator(make_karbon_client, routes, entities, failing=(), target=None, reporter=None, **kwargs):
    paginator = KarbonPaginator(
        access_key="ak",
        bearer_token="tok",
        base_url="https://api.karbonhq.com/v3",
        max_pages=kwargs.pop("max_pages", 10),
        client=make_karbon_client(routes, failing=failing)
    )
    return SyncOrchestrator(
        paginator=paginator,
        writer=BatchWriter(target or MemoryTarget(), batch_size=10),
        reporter=reporter or MemoryReporter(),
        entities=[get_entity(name) for name in entities],
        **kwargs
    )


class TestSyncOrchestrator:

    @pytest.mark.asyncio
    async def test_clean_run(self, make_karbon_client, karbon_routes):
        reporter = MemoryReporter()
        target = MemoryTarget()
        orchestrator = make_orchestrator(
            make_karbon_client, karbon_routes, ["users", "contacts"], target=target, reporter=reporter
        )

        summary = await orchestrator.run()

        assert summary.run_id == 7
        assert summary.status == SyncRunStatus.COMPLETED
        assert reporter.finished is summary
        users, contacts = summary.entities
        assert (users.fetched, users.duplicates_dropped, users.synced) == (3, 1, 2)
        assert (contacts.pages_fetched, contacts.synced) == (2, 2)
        assert users.status == EntityStatus.DONE
        assert set(target.rows["contacts"]) == {"c1", "c2"}

    @pytest.mark.asyncio
    async def test_fetch_failure_is_isolated(self, make_karbon_client, karbon_routes):
        orchestrator = make_orchestrator(
            make_karbon_client, karbon_routes, ["contacts", "organizations"], failing={"Contacts"}
        )

        summary = await orchestrator.run()
        contacts, organizations = summary.entities

        assert summary.status == SyncRunStatus.COMPLETED_WITH_ERRORS
        assert contacts.status == EntityStatus.FAILED
        assert contacts.fetch_outcome == FetchOutcome.FAILED
        assert "Server error 500" in contacts.error_message
        assert organizations.status == EntityStatus.DONE
        assert organizations.synced == 1

    @pytest.mark.asyncio
    async def test_truncated_fetch_still_writes(self, make_karbon_client, karbon_routes):
        target = MemoryTarget()
        orchestrator = make_orchestrator(
            make_karbon_client, karbon_routes, ["contacts"], target=target, max_pages=1
        )

        summary = await orchestrator.run()
        contacts = summary.entities[0]

        assert contacts.fetch_outcome == FetchOutcome.TRUNCATED
        assert contacts.status == EntityStatus.FAILED
        assert contacts.synced == 1
        assert set(target.rows["contacts"]) == {"c1"}

    @pytest.mark.asyncio
    async def test_write_failure_counts_every_row(self, make_karbon_client, karbon_routes):
        orchestrator = make_orchestrator(
            make_karbon_client, karbon_routes, ["contacts", "organizations"],
            target=MemoryTarget(failing_tables={"contacts"})
        )

        summary = await orchestrator.run()
        contacts, organizations = summary.entities

        assert (contacts.synced, contacts.errors) == (0, 2)
        assert contacts.status == EntityStatus.FAILED
        assert organizations.status == EntityStatus.DONE
        assert summary.status == SyncRunStatus.COMPLETED_WITH_ERRORS

    @pytest.mark.asyncio
    async def test_mapping_errors_are_per_record(self, make_karbon_client, karbon_routes):
        karbon_routes["Organizations"] = [[
            {"OrganizationKey": "o1", "Name": "Good"},
            {"OrganizationKey": "o2", "Name": "Bad", "AccountingDetail": {"FiscalYearEndMonth": 14}},
        ]]
        orchestrator = make_orchestrator(make_karbon_client, karbon_routes, ["organizations"])

        summary = await orchestrator.run()
        organizations = summary.entities[0]

        assert (organizations.synced, organizations.errors) == (1, 1)
        assert organizations.status == EntityStatus.DONE
        assert summary.status == SyncRunStatus.COMPLETED_WITH_ERRORS

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_contained(self, make_karbon_client, karbon_routes):
        def broken_explode(record):
            raise KeyError("Boom")

        orchestrator = SyncOrchestrator(
            paginator=KarbonPaginator("ak", "tok", client=make_karbon_client(karbon_routes)),
            writer=BatchWriter(MemoryTarget(), batch_size=10),
            reporter=MemoryReporter(),
            entities=[replace(get_entity("users"), explode=broken_explode), get_entity("contacts")]
        )

        summary = await orchestrator.run()
        users, contacts = summary.entities

        assert users.status == EntityStatus.FAILED
        assert users.error_message.startswith("fetching: KeyError")
        assert contacts.status == EntityStatus.DONE
        assert summary.status == SyncRunStatus.COMPLETED_WITH_ERRORS

    @pytest.mark.asyncio
    async def test_cancel_between_entities(self, make_karbon_client, karbon_routes):
        cancel = asyncio.Event()

        class CancellingReporter(MemoryReporter):
            async def record_entity(self, run_id, result):
                await super().record_entity(run_id, result)
                cancel.set()

        reporter = CancellingReporter()
        orchestrator = make_orchestrator(
            make_karbon_client, karbon_routes, ["users", "contacts", "organizations"],
            reporter=reporter, cancel_event=cancel
        )

        summary = await orchestrator.run()

        assert summary.cancelled is True
        assert summary.entities[0].status == EntityStatus.DONE
        assert [e.status for e in summary.entities[1:]] == [EntityStatus.FAILED, EntityStatus.FAILED]
        assert "cancelled" in summary.entities[1].error_message
        assert summary.status == SyncRunStatus.COMPLETED_WITH_ERRORS
        assert len(reporter.entities) == 3

    @pytest.mark.asyncio
    async def test_incremental_filter(self, make_karbon_client, karbon_routes):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"value": []})

        since = datetime(2024, 5, 1, 8, 30, 0)
        reporter = MemoryReporter(watermarks={"contacts": since, "users": since})
        orchestrator = SyncOrchestrator(
            paginator=KarbonPaginator("ak", "tok", client=make_karbon_client(handler=handler)),
            writer=BatchWriter(MemoryTarget(), batch_size=10),
            reporter=reporter,
            entities=[get_entity("users"), get_entity("contacts"), get_entity("organizations")],
            incremental=True
        )

        summary = await orchestrator.run()

        assert summary.sync_type == SyncType.INCREMENTAL
        users, contacts, organizations = seen
        # users never take a filter; organizations have no previous success
        assert "$filter" not in users.url.params
        assert contacts.url.params["$filter"] == "LastModifiedDateTime ge 2024-05-01T08:30:00Z"
        assert "$filter" not in organizations.url.params


def notes_handler(notes_by_work_item, statuses=None):
    """Serve /WorkItems(key)/Notes from a dict; statuses overrides the response code per key"""
    statuses = statuses or {}
    seen = []

    def handler(request):
        key = re.search(r"WorkItems\((\w+)\)", request.url.path).group(1)
        seen.append(key)
        if key in statuses:
            return httpx.Response(statuses[key], json={"Message": "error"})
        return httpx.Response(200, json={"value": notes_by_work_item.get(key, [])})

    handler.seen = seen
    return handler


def work_item_target(*keys):
    target = MemoryTarget()
    target.rows["work_items"] = {key: {"external_key": key} for key in keys}
    return target


class TestNotesPerWorkItem:

    @pytest.mark.asyncio
    async def test_notes_are_fetched_for_every_stored_work_item(self, make_karbon_client):
        handler = notes_handler({
            "w1": [{"NoteKey": "n1", "Subject": "Kickoff"}],
            "w2": [{"NoteKey": "n2"}, {"NoteKey": "n3"}],
        })
        target = work_item_target("w1", "w2")
        orchestrator = SyncOrchestrator(
            paginator=KarbonPaginator("ak", "tok", client=make_karbon_client(handler=handler)),
            writer=BatchWriter(target, batch_size=10),
            reporter=MemoryReporter(),
            entities=[get_entity("notes")]
        )

        summary = await orchestrator.run()
        notes = summary.entities[0]

        assert handler.seen == ["w1", "w2"]
        assert (notes.pages_fetched, notes.fetched, notes.synced) == (2, 3, 3)
        assert notes.status == EntityStatus.DONE
        assert target.rows["karbon_notes"]["n1"]["work_item_key"] == "w1"
        assert target.rows["karbon_notes"]["n3"]["work_item_key"] == "w2"

    @pytest.mark.asyncio
    async def test_missing_work_item_is_not_a_failure(self, make_karbon_client):
        handler = notes_handler({"w2": [{"NoteKey": "n2"}]}, statuses={"w1": 404})
        orchestrator = SyncOrchestrator(
            paginator=KarbonPaginator("ak", "tok", client=make_karbon_client(handler=handler)),
            writer=BatchWriter(work_item_target("w1", "w2"), batch_size=10),
            reporter=MemoryReporter(),
            entities=[get_entity("notes")]
        )

        notes = (await orchestrator.run()).entities[0]

        assert notes.fetch_outcome == FetchOutcome.COMPLETE
        assert notes.status == EntityStatus.DONE
        assert notes.synced == 1

    @pytest.mark.asyncio
    async def test_failed_work_item_keeps_the_others(self, make_karbon_client):
        handler = notes_handler(
            {"w1": [{"NoteKey": "n1"}], "w3": [{"NoteKey": "n3"}]},
            statuses={"w2": 500}
        )
        target = work_item_target("w1", "w2", "w3")
        orchestrator = SyncOrchestrator(
            paginator=KarbonPaginator("ak", "tok", client=make_karbon_client(handler=handler)),
            writer=BatchWriter(target, batch_size=10),
            reporter=MemoryReporter(),
            entities=[get_entity("notes")]
        )

        summary = await orchestrator.run()
        notes = summary.entities[0]

        assert handler.seen == ["w1", "w2", "w3"]
        assert notes.fetch_outcome == FetchOutcome.FAILED
        assert notes.status == EntityStatus.FAILED
        assert notes.error_message.startswith("1 of 3 parent fetches failed")
        assert set(target.rows["karbon_notes"]) == {"n1", "n3"}
        assert summary.status == SyncRunStatus.COMPLETED_WITH_ERRORS

    @pytest.mark.asyncio
    async def test_no_work_items_means_nothing_to_fetch(self, make_karbon_client):
        handler = notes_handler({})
        orchestrator = SyncOrchestrator(
            paginator=KarbonPaginator("ak", "tok", client=make_karbon_client(handler=handler)),
            writer=BatchWriter(MemoryTarget(), batch_size=10),
            reporter=MemoryReporter(),
            entities=[get_entity("notes")]
        )

        notes = (await orchestrator.run()).entities[0]

        assert handler.seen == []
        assert notes.status == EntityStatus.DONE
        assert notes.fetched == 0
