"""
Tests for subtracting busy blocks from open intervals.
"""

import pendulum

from bookingslots.domain.busy_subtractor import BusyBlockSubtractor
from bookingslots.domain.models import BusyBlock, MinuteRange

DAY = pendulum.date(2025, 9, 1)


def _block(start: int, end: int) -> BusyBlock:
    return BusyBlock(worker_id="w1", date=DAY, start=start, end=end)


class TestBusyBlockSubtractor:
    """Tests for BusyBlockSubtractor."""

    def test_block_in_the_middle_splits_interval(self):
        """09:00-17:00 minus 12:00-13:00 leaves [09:00,12:00) and [13:00,17:00)."""
        free, warnings = BusyBlockSubtractor().subtract([MinuteRange(540, 1020)], [_block(720, 780)])

        assert free == [MinuteRange(540, 720), MinuteRange(780, 1020)]
        assert warnings == []

    def test_no_busy_blocks(self):
        """Without busy blocks the open interval is entirely free."""
        free, _ = BusyBlockSubtractor().subtract([MinuteRange(540, 1020)], [])

        assert free == [MinuteRange(540, 1020)]

    def test_blocks_outside_interval_are_ignored(self):
        """Blocks fully before or after the interval change nothing."""
        free, _ = BusyBlockSubtractor().subtract(
            [MinuteRange(540, 720)],
            [_block(420, 540), _block(720, 800)],
        )

        assert free == [MinuteRange(540, 720)]

    def test_edge_overlaps_truncate(self):
        """Blocks overlapping either edge shorten the interval."""
        free, _ = BusyBlockSubtractor().subtract(
            [MinuteRange(540, 1020)],
            [_block(480, 600), _block(960, 1080)],
        )

        assert free == [MinuteRange(600, 960)]

    def test_unsorted_and_overlapping_blocks(self):
        """Busy blocks are sorted first and may overlap each other."""
        free, _ = BusyBlockSubtractor().subtract(
            [MinuteRange(540, 1020)],
            [_block(840, 900), _block(600, 700), _block(650, 720)],
        )

        assert free == [
            MinuteRange(540, 600),
            MinuteRange(720, 840),
            MinuteRange(900, 1020),
        ]

    def test_block_covering_interval_removes_it(self):
        """A block covering the whole interval leaves nothing."""
        free, _ = BusyBlockSubtractor().subtract([MinuteRange(540, 600)], [_block(500, 700)])

        assert free == []

    def test_multiple_open_intervals(self):
        """Every open interval is swept against the same blocks."""
        free, _ = BusyBlockSubtractor().subtract(
            [MinuteRange(780, 1020), MinuteRange(480, 720)],
            [_block(600, 840)],
        )

        assert free == [MinuteRange(480, 600), MinuteRange(840, 1020)]

    def test_malformed_block_is_skipped_and_reported(self):
        """A block with end <= start is reported but does not erase availability."""
        free, warnings = BusyBlockSubtractor().subtract(
            [MinuteRange(540, 1020)],
            [_block(780, 720), _block(600, 600), _block(660, 690)],
        )

        assert free == [MinuteRange(540, 660), MinuteRange(690, 1020)]
        assert [w.code for w in warnings] == ["malformed_busy_block", "malformed_busy_block"]
        assert warnings[0].date == DAY
        assert warnings[0].worker_id == "w1"
