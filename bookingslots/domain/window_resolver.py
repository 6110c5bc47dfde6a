"""
Expansion of recurring weekly windows into concrete open intervals per date.
"""

from typing import Dict, List, Sequence, Tuple

from pendulum import Date

from .clock import MINUTES_PER_DAY
from .models import MALFORMED_WINDOW, DataQualityWarning, MinuteRange, WorkerRecord


class WindowResolver:
    """
    Resolves a worker's weekly windows to open intervals on calendar dates.

    Each date receives the windows of its own weekday plus the after-midnight
    tails of windows from the previous weekday that cross midnight. All
    contributions for a date are merged before emission.
    """

    def resolve(
        self,
        worker: WorkerRecord,
        dates: Sequence[Date],
    ) -> Tuple[Dict[Date, List[MinuteRange]], List[DataQualityWarning]]:
        """
        Resolve open intervals for every date in ``dates``.

        Args:
            worker: Worker whose weekly windows are expanded
            dates: Calendar dates to resolve

        Returns:
            Tuple of (date -> sorted open ranges, warnings). Dates without
            any open interval are omitted.
        """
        by_weekday, warnings = self._ranges_by_weekday(worker)

        open_by_date: Dict[Date, List[MinuteRange]] = {}
        for day in dates:
            ranges = by_weekday[day.weekday()]
            if ranges:
                open_by_date[day] = list(ranges)

        return open_by_date, warnings

    def _ranges_by_weekday(
        self,
        worker: WorkerRecord,
    ) -> Tuple[Dict[int, List[MinuteRange]], List[DataQualityWarning]]:
        """
        Bucket a worker's windows by the weekday they contribute to.

        Example:
        Monday 22:00-02:00 -> Monday [22:00-24:00], Tuesday [00:00-02:00]
        """
        buckets: Dict[int, List[MinuteRange]] = {weekday: [] for weekday in range(7)}
        warnings: List[DataQualityWarning] = []

        for window in worker.windows:
            if not window.is_valid:
                warnings.append(
                    DataQualityWarning(
                        code=MALFORMED_WINDOW,
                        message=f"Skipped zero-length weekly window {window}",
                        worker_id=worker.id,
                    )
                )
                continue

            if window.crosses_midnight:
                buckets[window.weekday].append(MinuteRange(window.start, MINUTES_PER_DAY))
                # A window ending exactly at midnight has no tail
                if window.end > 0:
                    buckets[(window.weekday + 1) % 7].append(MinuteRange(0, window.end))
            else:
                buckets[window.weekday].append(MinuteRange(window.start, window.end))

        return {
            weekday: merge_ranges(ranges) for weekday, ranges in buckets.items()
        }, warnings


def merge_ranges(ranges: Sequence[MinuteRange]) -> List[MinuteRange]:
    """
    Merge overlapping or adjacent ranges.

    Example: [09:00-10:00, 10:00-11:00] -> [09:00-11:00]
    """
    if not ranges:
        return []

    sorted_ranges = sorted(ranges)
    merged: List[MinuteRange] = [sorted_ranges[0]]

    for current in sorted_ranges[1:]:
        last = merged[-1]

        if current.start <= last.end:
            merged[-1] = MinuteRange(last.start, max(last.end, current.end))
        else:
            merged.append(current)

    return merged
