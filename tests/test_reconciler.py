"""
Tests for the upsert reconciler.
"""

import asyncio

import pytest

from sfbwatch.monitor.reconciler import UpsertReconciler
from sfbwatch.monitor.types import CanonicalUserRecord


def _users(count: int) -> list[CanonicalUserRecord]:
    return [CanonicalUserRecord(sip_address=f"sip:user{i}@contoso.com", display_name=f"User {i}") for i in range(count)]


class TestUpsertReconciler:
    @pytest.mark.asyncio
    async def test_inserts_new_users(self, storage):
        result = await UpsertReconciler(storage).reconcile(_users(3), "/exports/a.json")

        assert (result.processed, result.inserted, result.updated, result.failed) == (3, 3, 0, 0)
        stored = await storage.find_user_by_key("sip:user1@contoso.com")
        assert stored.data_source == "offline"
        assert stored.file_source == "/exports/a.json"
        assert stored.last_sync_time is not None

    @pytest.mark.asyncio
    async def test_updates_existing_users(self, storage):
        reconciler = UpsertReconciler(storage)
        await reconciler.reconcile(_users(2), "/exports/a.json")

        changed = [CanonicalUserRecord(sip_address="sip:user0@contoso.com", display_name="Renamed")]
        result = await reconciler.reconcile(changed, "/exports/b.json")

        assert (result.inserted, result.updated) == (0, 1)
        stored = await storage.find_user_by_key("sip:user0@contoso.com")
        assert stored.record.display_name == "Renamed"
        assert stored.file_source == "/exports/b.json"
        assert len(storage.users) == 2

    @pytest.mark.asyncio
    async def test_one_failure_does_not_abort(self, storage):
        storage.fail_on("insert_user", lambda record, metadata: record.sip_address == "sip:user2@contoso.com")

        result = await UpsertReconciler(storage).reconcile(_users(5), "/exports/a.json")

        assert result.processed == 5
        assert result.failed == 1
        assert result.inserted == 4
        assert result.errors == [
            "Failed to process user sip:user2@contoso.com: "
            "Storage operation 'insert_user' failed: injected failure"
        ]

    @pytest.mark.asyncio
    async def test_errors_capped(self, storage):
        storage.fail_on("insert_user")

        result = await UpsertReconciler(storage, max_errors=3).reconcile(_users(8), "/exports/a.json")

        assert result.failed == 8
        assert len(result.errors) == 3

    @pytest.mark.asyncio
    async def test_batches_cover_every_record(self, storage):
        result = await UpsertReconciler(storage, batch_size=3).reconcile(_users(10), "/exports/a.json")
        assert result.processed == 10
        assert len(storage.users) == 10

    @pytest.mark.asyncio
    async def test_yields_to_event_loop(self, storage, monkeypatch):
        sleeps = []
        real_sleep = asyncio.sleep

        async def recording_sleep(delay, *args, **kwargs):
            sleeps.append(delay)
            await real_sleep(delay, *args, **kwargs)

        monkeypatch.setattr("sfbwatch.monitor.reconciler.asyncio.sleep", recording_sleep)
        await UpsertReconciler(storage, yield_every=10).reconcile(_users(25), "/exports/a.json")

        assert sleeps == [0, 0]

    def test_rejects_non_positive_sizes(self, storage):
        with pytest.raises(ValueError):
            UpsertReconciler(storage, batch_size=0)
