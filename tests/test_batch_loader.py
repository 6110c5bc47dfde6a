"""
Tests for the concurrent bulk loader.
"""

import asyncio

import pendulum
import pytest

from bookingslots.domain.exceptions import ProviderTimeout, ProviderUnavailable
from bookingslots.services.batch_loader import BatchLoader

WORKERS = [
    {"id": "a", "name": "Anna", "availability": [{"weekday": "Monday", "start": "09:00", "end": "17:00"}]},
    {"id": "b", "name": "Ben", "availability": []},
]
BLOCKS = [
    {"workerId": "a", "date": "2025-09-01", "start": "12:00", "end": "13:00"},
    {"workerId": "b", "date": "2025-09-02", "start": "10:00", "end": "11:00"},
]


class StubProviderClient:
    """Provider stub recording every call."""

    def __init__(self, workers=None, blocks=None, failures=None):
        self.workers = WORKERS if workers is None else workers
        self.blocks = BLOCKS if blocks is None else blocks
        # Exceptions raised (in order) before a call succeeds, per call kind
        self.failures = failures or {}
        self.calls = []

    def _maybe_fail(self, kind):
        pending = self.failures.get(kind, [])
        if pending:
            raise pending.pop(0)

    async def get_workers(self, ids):
        self.calls.append(("get_workers", tuple(ids)))
        self._maybe_fail("get_workers")
        return list(self.workers)

    async def get_busy_blocks(self, worker_ids, start_date, end_date):
        self.calls.append(("get_busy_blocks", tuple(worker_ids), start_date, end_date))
        self._maybe_fail("get_busy_blocks")
        return list(self.blocks)


def _kinds(client):
    return [call[0] for call in client.calls]


class TestBatchLoader:
    """Tests for BatchLoader."""

    def test_one_call_per_fetch_kind(self):
        client = StubProviderClient()

        data = asyncio.run(BatchLoader(client).load_month(["a", "b"], 2025, 9))

        assert sorted(_kinds(client)) == ["get_busy_blocks", "get_workers"]
        assert set(data.workers) == {"a", "b"}
        assert len(data.blocks_by_worker["a"]) == 1
        assert len(data.blocks_by_worker["b"]) == 1
        assert data.warnings == []

    def test_busy_block_range_is_padded(self):
        """Busy blocks are requested from the day before to the day after the month."""
        client = StubProviderClient()

        asyncio.run(BatchLoader(client).load_month(["a"], 2025, 9))

        blocks_call = next(call for call in client.calls if call[0] == "get_busy_blocks")
        assert blocks_call[2] == pendulum.date(2025, 8, 31)
        assert blocks_call[3] == pendulum.date(2025, 10, 1)

    def test_fetches_run_concurrently(self):
        """get_workers can only finish once get_busy_blocks has started."""
        started = asyncio.Event()

        class WaitingClient(StubProviderClient):
            async def get_workers(self, ids):
                await started.wait()
                return await super().get_workers(ids)

            async def get_busy_blocks(self, worker_ids, start_date, end_date):
                started.set()
                return await super().get_busy_blocks(worker_ids, start_date, end_date)

        client = WaitingClient()

        data = asyncio.run(BatchLoader(client).load_month(["a"], 2025, 9, deadline_seconds=2))

        assert "a" in data.workers

    def test_retries_once_then_succeeds(self):
        client = StubProviderClient(failures={"get_workers": [ProviderUnavailable("503")]})

        data = asyncio.run(BatchLoader(client).load_month(["a"], 2025, 9))

        assert _kinds(client).count("get_workers") == 2
        assert _kinds(client).count("get_busy_blocks") == 1
        assert "a" in data.workers

    def test_fails_closed_after_retry(self):
        """Busy blocks that cannot be loaded fail the whole load."""
        client = StubProviderClient(
            failures={"get_busy_blocks": [ProviderUnavailable("down"), ProviderUnavailable("down")]}
        )

        with pytest.raises(ProviderUnavailable):
            asyncio.run(BatchLoader(client).load_month(["a"], 2025, 9))

        assert _kinds(client).count("get_busy_blocks") == 2

    @pytest.mark.parametrize("max_retries", [2, 3, -1])
    def test_retry_limit_is_enforced(self, max_retries):
        """At most one retry per bulk fetch is allowed."""
        with pytest.raises(ValueError, match="max_retries"):
            BatchLoader(StubProviderClient(), max_retries=max_retries)

    def test_persistent_failure_uses_at_most_two_attempts(self):
        failures = [ProviderUnavailable("down") for _ in range(5)]
        client = StubProviderClient(failures={"get_workers": failures})

        with pytest.raises(ProviderUnavailable):
            asyncio.run(BatchLoader(client).load_month(["a"], 2025, 9))

        assert _kinds(client).count("get_workers") == 2

    def test_last_provider_error_is_raised_unchanged(self):
        first, last = ProviderTimeout("slow"), ProviderUnavailable("down")
        client = StubProviderClient(failures={"get_workers": [first, last]})

        with pytest.raises(ProviderUnavailable) as exc_info:
            asyncio.run(BatchLoader(client).load_month(["a"], 2025, 9))

        assert exc_info.value is last

    def test_no_retry_when_disabled(self):
        client = StubProviderClient(failures={"get_workers": [ProviderTimeout("slow")]})

        with pytest.raises(ProviderTimeout):
            asyncio.run(BatchLoader(client, max_retries=0).load_month(["a"], 2025, 9))

        assert _kinds(client).count("get_workers") == 1

    def test_unexpected_error_is_wrapped(self):
        error = RuntimeError("boom")
        client = StubProviderClient(failures={"get_workers": [error, error]})

        with pytest.raises(ProviderUnavailable) as exc_info:
            asyncio.run(BatchLoader(client).load_month(["a"], 2025, 9))

        assert exc_info.value.__cause__ is error

    def test_deadline_raises_timeout(self):
        class SlowClient(StubProviderClient):
            async def get_busy_blocks(self, worker_ids, start_date, end_date):
                await asyncio.sleep(5)
                return []

        with pytest.raises(ProviderTimeout):
            asyncio.run(BatchLoader(SlowClient()).load_month(["a"], 2025, 9, deadline_seconds=0.05))

    def test_failure_cancels_other_fetch(self):
        cancelled = []

        class HangingClient(StubProviderClient):
            async def get_busy_blocks(self, worker_ids, start_date, end_date):
                try:
                    await asyncio.sleep(5)
                except asyncio.CancelledError:
                    cancelled.append(True)
                    raise
                return []

        client = HangingClient(
            failures={"get_workers": [ProviderUnavailable("down"), ProviderUnavailable("down")]}
        )

        async def run():
            with pytest.raises(ProviderUnavailable):
                await BatchLoader(client).load_month(["a"], 2025, 9)
            await asyncio.sleep(0.01)

        asyncio.run(run())

        assert cancelled == [True]

    def test_unknown_worker_and_foreign_blocks(self):
        """Missing workers are reported; blocks of other workers are dropped."""
        client = StubProviderClient(
            blocks=BLOCKS + [{"workerId": "z", "date": "2025-09-03", "start": "09:00", "end": "10:00"}]
        )

        data = asyncio.run(BatchLoader(client).load_month(["a", "ghost"], 2025, 9))

        assert set(data.workers) == {"a"}
        assert set(data.blocks_by_worker) == {"a", "ghost"}
        assert data.blocks_by_worker["ghost"] == []
        assert [(w.code, w.worker_id) for w in data.warnings] == [("unknown_worker", "ghost")]

    def test_unparseable_records_are_reported(self):
        client = StubProviderClient(
            workers=WORKERS + [{"name": "No id"}],
            blocks=[{"workerId": "a", "date": "not-a-date", "start": "09:00", "end": "10:00"}],
        )

        data = asyncio.run(BatchLoader(client).load_range(["a"], pendulum.date(2025, 9, 1), pendulum.date(2025, 9, 1)))

        assert data.blocks_by_worker["a"] == []
        assert [w.code for w in data.warnings] == ["unparseable_record", "unparseable_record"]
