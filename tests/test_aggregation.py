"""
Tests for union and intersection aggregation.
"""

import pendulum
import pytest

from bookingslots.domain.aggregation import (
    IntersectionStrategy,
    UnionStrategy,
    get_strategy,
)

TZ = "Europe/Berlin"


def _at(hour: int, minute: int = 0):
    return pendulum.datetime(2025, 9, 1, hour, minute, tz=TZ)


class TestUnionStrategy:
    """Tests for UnionStrategy."""

    def test_identical_starts_collapse(self):
        """Shared starts list every worker able to serve them."""
        candidates = {
            "a": [_at(9), _at(9, 30)],
            "b": [_at(9, 30), _at(10)],
        }

        slots = UnionStrategy().combine(candidates, ["a", "b"])

        assert [(s.start, s.worker_ids) for s in slots] == [
            (_at(9), ("a",)),
            (_at(9, 30), ("a", "b")),
            (_at(10), ("b",)),
        ]

    def test_worker_ids_follow_requested_order(self):
        candidates = {"a": [_at(9)], "b": [_at(9)]}

        slots = UnionStrategy().combine(candidates, ["b", "a"])

        assert slots[0].worker_ids == ("b", "a")

    def test_no_candidates(self):
        assert UnionStrategy().combine({"a": []}, ["a"]) == []


class TestIntersectionStrategy:
    """Tests for IntersectionStrategy."""

    def test_only_common_starts_survive(self):
        candidates = {
            "a": [_at(9), _at(9, 30), _at(10)],
            "b": [_at(10), _at(9, 30)],
        }

        slots = IntersectionStrategy().combine(candidates, ["a", "b"])

        assert [(s.start, s.worker_ids) for s in slots] == [
            (_at(9, 30), ("a", "b")),
            (_at(10), ("a", "b")),
        ]

    def test_worker_without_candidates_empties_result(self):
        candidates = {"a": [_at(9)], "b": []}

        assert IntersectionStrategy().combine(candidates, ["a", "b"]) == []

    def test_no_workers(self):
        assert IntersectionStrategy().combine({}, []) == []


class TestGetStrategy:
    """Tests for strategy lookup."""

    def test_lookup_is_case_insensitive(self):
        assert isinstance(get_strategy("Union"), UnionStrategy)
        assert isinstance(get_strategy("intersection"), IntersectionStrategy)

    def test_unknown_strategy(self):
        with pytest.raises(ValueError, match="Unknown aggregation strategy"):
            get_strategy("majority")
