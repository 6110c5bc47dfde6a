"""
Core business logic for calculating bookable slots.

This is the heart of the application - pure domain logic without any
external dependencies (no API calls, no database, no I/O). Everything here
is a deterministic function of the loaded provider data, the service
parameters, the dates and "now".
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from pendulum import Date, DateTime

from .aggregation import AggregationStrategy, UnionStrategy
from .busy_subtractor import BusyBlockSubtractor
from .clock import local_instant
from .models import (
    AvailabilityResult,
    BusyBlock,
    DataQualityWarning,
    MinuteRange,
    MonthData,
    ServiceParameters,
    TimeRange,
)
from .slot_generator import SlotGenerator
from .window_resolver import WindowResolver


@dataclass
class WorkerFreeIndex:
    """Request-scoped index: worker -> date -> sorted free ranges."""
    free: Dict[str, Dict[Date, List[MinuteRange]]] = field(default_factory=dict)

    def free_ranges(self, worker_id: str, day: Date) -> List[MinuteRange]:
        return self.free.get(worker_id, {}).get(day, [])

    def time_ranges(self, worker_id: str, day: Date, timezone: str) -> List[TimeRange]:
        """Free ranges of a worker on a date as zoned time ranges."""
        ranges = []
        for free in self.free_ranges(worker_id, day):
            time_range = free.to_time_range(day, timezone)
            if time_range is not None:
                ranges.append(time_range)
        return ranges


class AvailabilityCalculator:
    """
    Calculates bookable slots from bulk-loaded worker and busy-block data.

    Algorithm:
    1. Expand each worker's weekly windows into open ranges per date
    2. Subtract that worker's busy blocks to get free ranges
    3. Discretize free ranges into candidate starts (duration, buffer, notice)
    4. Combine candidates across workers with the aggregation strategy
    """

    def __init__(
        self,
        parameters: ServiceParameters,
        timezone: str,
        strategy: Optional[AggregationStrategy] = None,
    ):
        self.parameters = parameters
        self.timezone = timezone
        self.strategy = strategy or UnionStrategy()
        self._resolver = WindowResolver()
        self._subtractor = BusyBlockSubtractor()
        self._generator = SlotGenerator(parameters)

    def calculate(
        self,
        data: MonthData,
        dates: Sequence[Date],
        worker_ids: Sequence[str],
        now: DateTime,
    ) -> AvailabilityResult:
        """
        Compute slots per date for the requested workers.

        Args:
            data: Workers and busy blocks loaded for the request
            dates: Dates to compute
            worker_ids: Requested workers, in the order slots should list them
            now: Reference instant for the minimum-notice rule

        Returns:
            AvailabilityResult with only non-empty dates
        """
        index, warnings = self.build_free_index(data, dates, worker_ids)
        result = AvailabilityResult(warnings=list(data.warnings) + warnings)

        for day in dates:
            candidates = {
                worker_id: self._generator.generate(
                    day,
                    index.free_ranges(worker_id, day),
                    self.timezone,
                    now,
                )
                for worker_id in worker_ids
            }

            slots = self.strategy.combine(candidates, worker_ids)
            if slots:
                result.slots_by_date[day] = slots

        return result

    def build_free_index(
        self,
        data: MonthData,
        dates: Sequence[Date],
        worker_ids: Sequence[str],
    ) -> Tuple[WorkerFreeIndex, List[DataQualityWarning]]:
        """Resolve windows and subtract busy blocks for every worker and date."""
        index = WorkerFreeIndex()
        warnings: List[DataQualityWarning] = []

        for worker_id in worker_ids:
            worker = data.workers.get(worker_id)
            if worker is None:
                continue

            open_by_date, window_warnings = self._resolver.resolve(worker, dates)
            warnings.extend(window_warnings)

            blocks_by_date = _group_by_date(data.blocks_by_worker.get(worker_id, []))
            worker_free: Dict[Date, List[MinuteRange]] = {}

            for day in dates:
                open_ranges = open_by_date.get(day, [])
                busy = blocks_by_date.get(day, [])
                if not open_ranges and not busy:
                    continue

                free, block_warnings = self._subtractor.subtract(open_ranges, busy)
                warnings.extend(block_warnings)
                if free:
                    worker_free[day] = free

            index.free[worker_id] = worker_free

        return index, warnings

    def workers_available_at(
        self,
        index: WorkerFreeIndex,
        day: Date,
        start_minute: int,
        worker_ids: Sequence[str],
        now: DateTime,
    ) -> List[str]:
        """
        Return the workers who can take an appointment starting at a wall-clock
        minute on a date.

        The start need not be aligned to the slot grid; it only has to leave
        room for duration plus buffer inside one free range and respect the
        minimum notice.
        """
        start = local_instant(day, start_minute, self.timezone)
        if start is None:
            return []
        if start < now.add(minutes=self.parameters.minimum_notice_minutes):
            return []

        occupied = self.parameters.occupied_minutes
        return [
            worker_id
            for worker_id in worker_ids
            if any(
                free.fits(start_minute, occupied)
                for free in index.free_ranges(worker_id, day)
            )
        ]


def _group_by_date(blocks: Sequence[BusyBlock]) -> Dict[Date, List[BusyBlock]]:
    grouped: Dict[Date, List[BusyBlock]] = {}
    for block in blocks:
        grouped.setdefault(block.date, []).append(block)
    return grouped
