"""Integration tests for the datastore transaction helper."""

import sqlite3

import pytest

from src.core import db_client
from src.core.errors import WriteError
from src.domain.task import TaskStatus
from src.modules.tasks import service
from tests.helpers import make_template


@pytest.mark.integration
async def test_transaction_commits_all_writes(db):
    async with db_client.transaction() as tx:
        first = await tx.create_record(collection="teams", data={"name": "Ops"})
        await tx.create_record(collection="teams", data={"name": "Finance"})
        await tx.update_record(collection="teams", record_id=first["id"], data={"name": "Operations"})

    names = [team["name"] for team in await db_client.list_records(collection="teams", sort="name")]
    assert names == ["Finance", "Operations"]


@pytest.mark.integration
async def test_transaction_rolls_back_on_error(db):
    with pytest.raises(RuntimeError, match="boom"):
        async with db_client.transaction() as tx:
            await tx.create_record(collection="teams", data={"name": "Ops"})
            raise RuntimeError("boom")

    assert await db_client.list_records(collection="teams") == []


@pytest.mark.integration
async def test_write_stage_wraps_database_errors(db):
    with pytest.raises(WriteError) as exc_info:
        async with db_client.transaction() as tx:
            await tx.create_record(collection="teams", data={"name": "Ops"})
            with db_client.write_stage("insert_team"):
                await tx.create_record(collection="teams", data={"no_such_column": "x"})

    assert exc_info.value.stage == "insert_team"
    assert await db_client.list_records(collection="teams") == []


@pytest.mark.integration
async def test_update_with_match_guard(db):
    record = await db_client.create_record(collection="teams", data={"name": "Ops"})

    async with db_client.transaction() as tx:
        missed = await tx.update_record(
            collection="teams", record_id=record["id"], data={"name": "Renamed"}, match={"name": "Other"}
        )
        hit = await tx.update_record(
            collection="teams", record_id=record["id"], data={"name": "Renamed"}, match={"name": "Ops"}
        )

    assert (missed, hit) == (0, 1)
    assert (await db_client.get_record(collection="teams", record_id=record["id"]))["name"] == "Renamed"


@pytest.mark.integration
async def test_missing_record(db):
    with pytest.raises(db_client.RecordNotFoundError):
        await db_client.get_record(collection="teams", record_id="42")


@pytest.mark.integration
async def test_reads_outside_a_transaction_see_only_committed_data(actors, fixed_now):
    created = await service.create_task(make_template(), actors["alice"], now=fixed_now)
    assert created.instance is not None
    seen = []

    with pytest.raises(RuntimeError, match="abandon"):
        async with db_client.transaction() as tx:
            await tx.update_record(
                collection="task_instances", record_id=created.instance.id, data={"status": "completed"}
            )
            seen.append((await service.get_instance(created.instance.id)).status)
            raise RuntimeError("abandon")

    assert seen == [TaskStatus.ASSIGNED]
    assert (await service.get_instance(created.instance.id)).status == TaskStatus.ASSIGNED


@pytest.mark.integration
async def test_failed_commit_rolls_back_and_releases_connection(db, monkeypatch):
    conn = await db_client.get_connection(writer=True)
    execute = conn.execute
    failures = []

    async def failing_commit(sql, *args, **kwargs):
        if sql == "COMMIT" and not failures:
            failures.append(sql)
            raise sqlite3.OperationalError("database is locked")
        return await execute(sql, *args, **kwargs)

    monkeypatch.setattr(conn, "execute", failing_commit)

    with pytest.raises(WriteError) as exc_info:
        async with db_client.transaction() as tx:
            await tx.create_record(collection="teams", data={"name": "Ops"})

    assert exc_info.value.stage == "commit"
    assert not conn.in_transaction
    assert await db_client.list_records(collection="teams") == []

    async with db_client.transaction() as tx:
        await tx.create_record(collection="teams", data={"name": "Finance"})
    assert [team["name"] for team in await db_client.list_records(collection="teams")] == ["Finance"]
