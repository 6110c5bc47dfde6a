"""
Domain layer - Pure business logic without external dependencies.
"""

from .aggregation import IntersectionStrategy, UnionStrategy, get_strategy
from .availability_calculator import AvailabilityCalculator, WorkerFreeIndex
from .models import (
    AvailabilityResult,
    BusyBlock,
    DataQualityWarning,
    MinuteRange,
    MonthData,
    ServiceParameters,
    Slot,
    TimeRange,
    WeeklyWindow,
    WorkerRecord,
)

__all__ = [
    "AvailabilityCalculator",
    "AvailabilityResult",
    "BusyBlock",
    "DataQualityWarning",
    "IntersectionStrategy",
    "MinuteRange",
    "MonthData",
    "ServiceParameters",
    "Slot",
    "TimeRange",
    "UnionStrategy",
    "WeeklyWindow",
    "WorkerFreeIndex",
    "WorkerRecord",
    "get_strategy",
]
