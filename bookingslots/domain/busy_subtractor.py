"""
Subtraction of busy blocks from open intervals.
"""

from typing import List, Sequence, Tuple

from .clock import format_clock
from .models import (
    MALFORMED_BUSY_BLOCK,
    BusyBlock,
    DataQualityWarning,
    MinuteRange,
)


class BusyBlockSubtractor:
    """
    Computes free time as open time minus busy time for one worker and date.

    Example:
    Open: 09:00 - 17:00
    Busy: [10:00-11:00, 14:00-15:00]
    Free: [09:00-10:00, 11:00-14:00, 15:00-17:00]
    """

    def subtract(
        self,
        open_ranges: Sequence[MinuteRange],
        busy_blocks: Sequence[BusyBlock],
    ) -> Tuple[List[MinuteRange], List[DataQualityWarning]]:
        """
        Carve every busy block out of the open ranges.

        Blocks with ``end <= start`` are skipped and reported.

        Returns:
            Tuple of (sorted, non-overlapping free ranges, warnings)
        """
        warnings: List[DataQualityWarning] = []
        valid_blocks: List[BusyBlock] = []

        for block in busy_blocks:
            if not block.is_valid:
                warnings.append(
                    DataQualityWarning(
                        code=MALFORMED_BUSY_BLOCK,
                        message=(
                            f"Skipped busy block {format_clock(block.start)}-"
                            f"{format_clock(block.end)}: end is not after start"
                        ),
                        worker_id=block.worker_id,
                        date=block.date,
                    )
                )
                continue
            valid_blocks.append(block)

        sorted_busy = sorted(valid_blocks, key=lambda b: (b.start, b.end))

        free_ranges: List[MinuteRange] = []
        for open_range in sorted(open_ranges):
            free_ranges.extend(self._carve(open_range, sorted_busy))

        return free_ranges, warnings

    def _carve(
        self,
        open_range: MinuteRange,
        sorted_busy: Sequence[BusyBlock],
    ) -> List[MinuteRange]:
        free: List[MinuteRange] = []
        current_start = open_range.start

        for busy in sorted_busy:
            if busy.end <= current_start:
                continue
            if busy.start >= open_range.end:
                break

            # Free time before this busy period
            if current_start < busy.start:
                free.append(MinuteRange(current_start, busy.start))

            current_start = max(current_start, busy.end)
            if current_start >= open_range.end:
                break

        if current_start < open_range.end:
            free.append(MinuteRange(current_start, open_range.end))

        return free
