"""
Application services for computing bookable availability.

The service coordinates the bulk provider load via the ``BatchLoader`` and
delegates the calculation to the domain-level ``AvailabilityCalculator``.
This keeps request handlers and the CLI thin and lets tests substitute the
provider through a simple protocol.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import pendulum
from pendulum import Date, DateTime

from ..adapters.provider_client import ProviderClientProtocol
from ..domain.aggregation import get_strategy
from ..domain.availability_calculator import AvailabilityCalculator
from ..domain.clock import month_dates, parse_clock
from ..domain.models import (
    AvailabilityResult,
    DataQualityWarning,
    ServiceParameters,
    TimeRange,
    WorkerRecord,
)
from .batch_loader import BatchLoader

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvailabilityRequest:
    """
    Parameters of one availability computation.

    ``now`` defaults to the wall clock; inject it to make the minimum-notice
    rule deterministic.
    """

    worker_ids: Sequence[str]
    service_parameters: ServiceParameters
    year: int
    month: int
    timezone: str
    now: Optional[DateTime] = None
    deadline_seconds: Optional[float] = None
    strategy: str = "union"

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month must be between 1 and 12, got {self.month}")
        validate_timezone(self.timezone)
        # Fail on unknown strategy names before any provider call
        get_strategy(self.strategy)


@dataclass(frozen=True)
class WorkerSelection:
    """
    Outcome of choosing a worker for a concrete booking.

    ``free_time`` holds the selected worker's free ranges on the booking date.
    """

    selected: Optional[WorkerRecord]
    available: Tuple[WorkerRecord, ...] = ()
    total_checked: int = 0
    warnings: Tuple[DataQualityWarning, ...] = ()
    free_time: Tuple[TimeRange, ...] = ()


class AvailabilityService:
    """
    Orchestrates bulk loading and slot calculation.

    Dependency inversion toward a provider protocol makes it easy to plug in
    the HTTP client or the mock implementation in tests.
    """

    def __init__(
        self,
        provider_client: ProviderClientProtocol,
        max_retries: int = 1,
        default_deadline_seconds: Optional[float] = None,
    ) -> None:
        self._loader = BatchLoader(provider_client, max_retries=max_retries)
        self._default_deadline_seconds = default_deadline_seconds

    async def compute_availability(self, request: AvailabilityRequest) -> AvailabilityResult:
        """
        Compute bookable slots for every date of the requested month.

        Raises:
            ProviderUnavailable: If provider data could not be loaded
            ProviderTimeout: If loading exceeded the deadline
        """
        worker_ids = unique_ids(request.worker_ids)
        if not worker_ids:
            logger.info("No workers assigned, nothing to compute")
            return AvailabilityResult()

        now = pendulum.instance(request.now) if request.now else pendulum.now(request.timezone)
        strategy = get_strategy(request.strategy)

        data = await self._loader.load_month(
            worker_ids,
            request.year,
            request.month,
            deadline_seconds=self._deadline(request.deadline_seconds),
        )

        # Past dates cannot satisfy the notice rule
        today = now.in_timezone(request.timezone).date()
        dates = [day for day in month_dates(request.year, request.month) if day >= today]

        calculator = AvailabilityCalculator(
            parameters=request.service_parameters,
            timezone=request.timezone,
            strategy=strategy,
        )
        result = calculator.calculate(data, dates, worker_ids, now)

        self._log_warnings(result.warnings)
        logger.info(
            "Computed %d slot(s) on %d date(s) for %04d-%02d using %s strategy",
            result.total_slots(),
            len(result.slots_by_date),
            request.year,
            request.month,
            strategy.name,
        )
        return result

    async def select_worker(
        self,
        *,
        worker_ids: Sequence[str],
        service_parameters: ServiceParameters,
        day: Date,
        start_time: str,
        timezone: str,
        default_worker_ids: Iterable[str] = (),
        now: Optional[DateTime] = None,
        deadline_seconds: Optional[float] = None,
    ) -> WorkerSelection:
        """
        Choose the worker to assign to a booking at a concrete start time.

        Default workers are preferred, then the requested order. The start
        time does not need to lie on the slot grid.

        Raises:
            ValueError: If ``start_time`` is not a valid ``HH:MM`` time
            ProviderUnavailable: If provider data could not be loaded
            ProviderTimeout: If loading exceeded the deadline
        """
        validate_timezone(timezone)
        start_minute = parse_clock(start_time)
        ids = unique_ids(worker_ids)
        if not ids:
            return WorkerSelection(selected=None)

        data = await self._loader.load_range(
            ids, day, day, deadline_seconds=self._deadline(deadline_seconds)
        )

        calculator = AvailabilityCalculator(parameters=service_parameters, timezone=timezone)
        index, warnings = calculator.build_free_index(data, [day], ids)
        available_ids = calculator.workers_available_at(
            index,
            day,
            start_minute,
            ids,
            pendulum.instance(now) if now else pendulum.now(timezone),
        )

        defaults = {str(worker_id) for worker_id in default_worker_ids}
        available = [data.workers[worker_id] for worker_id in available_ids]
        # Stable sort keeps the requested order within each group
        available.sort(key=lambda worker: not (worker.is_default or worker.id in defaults))

        all_warnings = tuple(data.warnings) + tuple(warnings)
        self._log_warnings(all_warnings)

        selected = available[0] if available else None
        free_time = tuple(index.time_ranges(selected.id, day, timezone)) if selected else ()

        return WorkerSelection(
            selected=selected,
            available=tuple(available),
            total_checked=len(ids),
            warnings=all_warnings,
            free_time=free_time,
        )

    async def is_slot_available(self, **kwargs) -> bool:
        """Return True if at least one worker can take the booking."""
        selection = await self.select_worker(**kwargs)
        return selection.selected is not None

    def _deadline(self, deadline_seconds: Optional[float]) -> Optional[float]:
        if deadline_seconds is not None:
            return deadline_seconds
        return self._default_deadline_seconds

    @staticmethod
    def _log_warnings(warnings: Sequence[DataQualityWarning]) -> None:
        for warning in warnings:
            logger.warning("Data quality [%s]: %s", warning.code, warning.message)


def unique_ids(worker_ids: Iterable) -> List[str]:
    """Normalise worker ids to strings, dropping duplicates but keeping order."""
    seen: set[str] = set()
    ids: List[str] = []
    for worker_id in worker_ids:
        key = str(worker_id)
        if key not in seen:
            seen.add(key)
            ids.append(key)
    return ids


def validate_timezone(name: str) -> str:
    """
    Ensure ``name`` is a known IANA timezone.

    Raises:
        ValueError: If the timezone is unknown
    """
    try:
        pendulum.timezone(name)
    except (ValueError, KeyError) as e:
        raise ValueError(f"Unknown timezone: {name!r}") from e
    return name
