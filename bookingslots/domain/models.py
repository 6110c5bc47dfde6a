"""
Domain models for availability and slot calculations.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pendulum import Date, DateTime

from .clock import MINUTES_PER_DAY, WEEKDAY_NAMES, format_clock, local_instant
from .exceptions import InvalidServiceParameters


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end datetime.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True, order=True)
class MinuteRange:
    """
    A half-open interval in minutes since local midnight of some date.

    Invariant: 0 <= start < end <= 1440.
    """
    start: int
    end: int

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(
                f"Start {format_clock(self.start)} must be before end {format_clock(self.end)}"
            )
        if self.start < 0 or self.end > MINUTES_PER_DAY:
            raise ValueError(f"Range {self.start}-{self.end} exceeds a single day")

    def fits(self, start: int, length: int) -> bool:
        """Check whether ``[start, start + length)`` lies inside this range."""
        return self.start <= start and start + length <= self.end

    def to_time_range(self, day: Date, timezone: str) -> Optional[TimeRange]:
        """
        Anchor this range to a date in a timezone.

        Returns None if either edge falls into a daylight-saving gap.
        """
        start = local_instant(day, self.start, timezone)
        end = local_instant(day, self.end, timezone)
        if start is None or end is None or start >= end:
            return None
        return TimeRange(start=start, end=end)

    def __str__(self) -> str:
        return f"{format_clock(self.start)}-{format_clock(self.end)}"


@dataclass(frozen=True)
class WeeklyWindow:
    """
    A recurring weekly availability window in local wall-clock time.

    ``end`` earlier than ``start`` means the window runs past midnight into
    the following weekday. ``end == start`` is representable but malformed.
    """
    weekday: int  # 0=Monday, 6=Sunday
    start: int
    end: int

    def __post_init__(self):
        if not 0 <= self.weekday <= 6:
            raise ValueError(f"Weekday must be between 0 and 6, got {self.weekday}")
        if not 0 <= self.start < MINUTES_PER_DAY:
            raise ValueError(f"Window start out of range: {self.start}")
        if not 0 <= self.end <= MINUTES_PER_DAY:
            raise ValueError(f"Window end out of range: {self.end}")

    @property
    def crosses_midnight(self) -> bool:
        return self.end < self.start

    @property
    def is_valid(self) -> bool:
        return self.end != self.start

    def __str__(self) -> str:
        return (
            f"{WEEKDAY_NAMES[self.weekday].capitalize()} "
            f"{format_clock(self.start)}-{format_clock(self.end)}"
        )


@dataclass(frozen=True)
class BusyBlock:
    """
    A committed interval removing availability from one worker on one date.

    Blocks with ``end <= start`` can be constructed so they can be reported
    as data-quality problems instead of being silently dropped.
    """
    worker_id: str
    date: Date
    start: int
    end: int

    @property
    def is_valid(self) -> bool:
        return self.end > self.start


@dataclass(frozen=True)
class ServiceParameters:
    """
    Booking parameters of a service.

    Raises:
        InvalidServiceParameters: If any value is out of range
    """
    duration_minutes: int
    interval_minutes: int
    buffer_minutes: int = 0
    minimum_notice_minutes: int = 0

    def __post_init__(self):
        for name in ("duration_minutes", "interval_minutes"):
            value = getattr(self, name)
            if not _is_int(value) or value <= 0:
                raise InvalidServiceParameters(f"{name} must be a positive integer, got {value!r}")
        for name in ("buffer_minutes", "minimum_notice_minutes"):
            value = getattr(self, name)
            if not _is_int(value) or value < 0:
                raise InvalidServiceParameters(f"{name} must be a non-negative integer, got {value!r}")

    @property
    def occupied_minutes(self) -> int:
        """Minutes an appointment blocks, including the trailing buffer."""
        return self.duration_minutes + self.buffer_minutes


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class WorkerRecord:
    """A worker as delivered by the provider, with recurring availability."""
    id: str
    name: str = ""
    windows: Tuple[WeeklyWindow, ...] = ()
    is_default: bool = False

    def display_name(self) -> str:
        return self.name or self.id


MALFORMED_WINDOW = "malformed_window"
MALFORMED_BUSY_BLOCK = "malformed_busy_block"
UNPARSEABLE_RECORD = "unparseable_record"
UNKNOWN_WORKER = "unknown_worker"


@dataclass(frozen=True)
class DataQualityWarning:
    """A non-fatal problem with a provider record that was skipped."""
    code: str
    message: str
    worker_id: Optional[str] = None
    date: Optional[Date] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "workerId": self.worker_id,
            "date": self.date.isoformat() if self.date else None,
        }


@dataclass(frozen=True)
class Slot:
    """A bookable start time and the workers who could serve it."""
    start: DateTime
    worker_ids: Tuple[str, ...]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start.to_iso8601_string(),
            "workerIds": list(self.worker_ids),
        }


@dataclass
class AvailabilityResult:
    """
    Slots per date plus any data-quality warnings collected on the way.

    Dates without slots are never present in ``slots_by_date``.
    """
    slots_by_date: Dict[Date, List[Slot]] = field(default_factory=dict)
    warnings: List[DataQualityWarning] = field(default_factory=list)

    def total_slots(self) -> int:
        return sum(len(slots) for slots in self.slots_by_date.values())

    def to_wire(self) -> Dict[str, List[Dict[str, Any]]]:
        """Wire format: ISO date -> ordered list of ``{start, workerIds}``."""
        return {
            day.isoformat(): [slot.as_dict() for slot in slots]
            for day, slots in sorted(self.slots_by_date.items())
            if slots
        }

    def to_response(self) -> Dict[str, Any]:
        return {
            "availability": self.to_wire(),
            "warnings": [warning.as_dict() for warning in self.warnings],
        }


@dataclass
class MonthData:
    """
    Bulk-loaded provider data for one request.

    Built once per request and discarded with the response.
    """
    workers: Dict[str, WorkerRecord] = field(default_factory=dict)
    blocks_by_worker: Dict[str, List[BusyBlock]] = field(default_factory=dict)
    warnings: List[DataQualityWarning] = field(default_factory=list)
