"""
Bulk loading of provider data for one availability request.

Exactly two provider calls are made per load, issued concurrently: one for
all workers' weekly availability and one for all their busy blocks over the
whole date range. Everything downstream runs in memory.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import pendulum
from pendulum import Date

from ..adapters.provider_client import ProviderClientProtocol
from ..adapters.records import parse_busy_block, parse_worker
from ..domain.exceptions import ProviderError, ProviderTimeout, ProviderUnavailable
from ..domain.models import UNKNOWN_WORKER, BusyBlock, DataQualityWarning, MonthData

logger = logging.getLogger(__name__)

RawRecords = List[Dict[str, Any]]

# Bulk fetches are retried at most once
MAX_RETRIES = 1


class BatchLoader:
    """
    Fork-join loader for worker and busy-block data.

    Failure policy is fail-closed: a fetch that still fails after its retries
    aborts the whole load. Missing busy-block data is never read as "free".
    """

    def __init__(
        self,
        client: ProviderClientProtocol,
        max_retries: int = 1,
        padding_days: int = 1,
    ) -> None:
        """
        Args:
            client: Provider client used for both fetches
            max_retries: Extra attempts per fetch after the first failure (0 or 1)
            padding_days: Days added on both sides of a month for busy blocks

        Raises:
            ValueError: If ``max_retries`` is outside 0..1
        """
        if not 0 <= max_retries <= MAX_RETRIES:
            raise ValueError(f"max_retries must be between 0 and {MAX_RETRIES}, got {max_retries}")
        self._client = client
        self._max_retries = max_retries
        self._padding_days = padding_days

    async def load_month(
        self,
        worker_ids: Sequence[str],
        year: int,
        month: int,
        deadline_seconds: Optional[float] = None,
    ) -> MonthData:
        """
        Load workers and busy blocks for a month.

        The busy-block range is padded at both ends because providers may
        filter the range in UTC while blocks are keyed by local date; the
        padding keeps blocks on the first and last day of the month from
        being cut off. Blocks that land on a padding day carry no
        availability information and are ignored by the calculator, which
        only computes dates inside the month.
        """
        first = pendulum.date(year, month, 1)
        last = first.end_of("month")

        return await self.load_range(
            worker_ids,
            first.subtract(days=self._padding_days),
            last.add(days=self._padding_days),
            deadline_seconds=deadline_seconds,
        )

    async def load_range(
        self,
        worker_ids: Sequence[str],
        start_date: Date,
        end_date: Date,
        deadline_seconds: Optional[float] = None,
    ) -> MonthData:
        """
        Load workers and busy blocks for an inclusive date range.

        Raises:
            ProviderUnavailable: If a fetch fails after its retries
            ProviderTimeout: If a fetch times out or the deadline elapses
        """
        ids = list(worker_ids)

        workers_task = asyncio.ensure_future(
            self._with_retry("get_workers", lambda: self._client.get_workers(ids))
        )
        blocks_task = asyncio.ensure_future(
            self._with_retry(
                "get_busy_blocks",
                lambda: self._client.get_busy_blocks(ids, start_date, end_date),
            )
        )

        try:
            raw_workers, raw_blocks = await asyncio.wait_for(
                asyncio.gather(workers_task, blocks_task),
                timeout=deadline_seconds,
            )
        except asyncio.TimeoutError as e:
            raise ProviderTimeout(
                f"Provider data not loaded within {deadline_seconds}s deadline"
            ) from e
        finally:
            # One fetch failing must not leave the other running
            for task in (workers_task, blocks_task):
                if not task.done():
                    task.cancel()

        data = self._assemble(ids, raw_workers, raw_blocks)
        logger.info(
            "Loaded %d worker(s) and %d busy block(s) for %s..%s",
            len(data.workers),
            sum(len(blocks) for blocks in data.blocks_by_worker.values()),
            start_date.isoformat(),
            end_date.isoformat(),
        )
        return data

    async def _with_retry(
        self,
        label: str,
        fetch: Callable[[], Awaitable[RawRecords]],
    ) -> RawRecords:
        attempts = self._max_retries + 1

        for attempt in range(1, attempts):
            try:
                return await fetch()
            except Exception as e:
                logger.warning("%s failed (attempt %d/%d): %s", label, attempt, attempts, e)

        # Last attempt: errors propagate, non-provider ones as ProviderUnavailable
        try:
            return await fetch()
        except ProviderError as e:
            logger.warning("%s failed (attempt %d/%d): %s", label, attempts, attempts, e)
            raise
        except Exception as e:
            logger.warning("%s failed (attempt %d/%d): %s", label, attempts, attempts, e)
            raise ProviderUnavailable(f"{label} failed: {e}") from e

    @staticmethod
    def _assemble(
        worker_ids: Sequence[str],
        raw_workers: RawRecords,
        raw_blocks: RawRecords,
    ) -> MonthData:
        """
        Parse raw records into an in-memory index.

        Only requested workers are kept; requested workers the provider did
        not return are reported and contribute no availability.
        """
        requested = set(worker_ids)
        data = MonthData()

        for raw in raw_workers:
            worker, warnings = parse_worker(raw)
            data.warnings.extend(warnings)
            if worker is None or worker.id not in requested or worker.id in data.workers:
                continue
            data.workers[worker.id] = worker

        for worker_id in worker_ids:
            if worker_id not in data.workers:
                data.warnings.append(
                    DataQualityWarning(
                        code=UNKNOWN_WORKER,
                        message=f"Provider returned no record for worker {worker_id}",
                        worker_id=worker_id,
                    )
                )

        blocks_by_worker: Dict[str, List[BusyBlock]] = {worker_id: [] for worker_id in worker_ids}
        for raw in raw_blocks:
            block, warnings = parse_busy_block(raw)
            data.warnings.extend(warnings)
            if block is not None and block.worker_id in requested:
                blocks_by_worker[block.worker_id].append(block)

        data.blocks_by_worker = blocks_by_worker
        return data
