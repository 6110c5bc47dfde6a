"""
Discretization of free intervals into candidate slot start times.
"""

from typing import List, Sequence

from pendulum import Date, DateTime

from .clock import local_instant
from .models import MinuteRange, ServiceParameters


class SlotGenerator:
    """
    Generates candidate start times for one worker on one date.

    Candidates step through each free interval by ``interval_minutes`` and
    must leave room for the appointment plus its trailing buffer. Arithmetic
    stays in local minutes; candidates become zoned instants only at the end,
    so daylight-saving shifts cannot skew the grid.
    """

    def __init__(self, parameters: ServiceParameters):
        self.parameters = parameters

    def candidate_minutes(self, free_ranges: Sequence[MinuteRange]) -> List[int]:
        """
        Return candidate starts in minutes since local midnight.

        Example (duration 30, interval 30, buffer 15):
        Free: 09:00-09:45 -> [09:00]
        """
        occupied = self.parameters.occupied_minutes
        step = self.parameters.interval_minutes
        candidates: List[int] = []

        for free in free_ranges:
            current = free.start
            while current + occupied <= free.end:
                candidates.append(current)
                current += step

        return candidates

    def generate(
        self,
        day: Date,
        free_ranges: Sequence[MinuteRange],
        timezone: str,
        now: DateTime,
    ) -> List[DateTime]:
        """
        Return zoned candidate starts that respect the minimum notice.

        Wall-clock candidates that do not exist on ``day`` (spring-forward
        gap) are dropped.
        """
        earliest = now.add(minutes=self.parameters.minimum_notice_minutes)
        starts: List[DateTime] = []

        for minutes in self.candidate_minutes(free_ranges):
            instant = local_instant(day, minutes, timezone)
            if instant is None or instant < earliest:
                continue
            starts.append(instant)

        return starts
