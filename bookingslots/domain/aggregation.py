"""
Strategies for combining per-worker candidate slots into one slot list.
"""

from typing import Dict, List, Protocol, Sequence

from pendulum import DateTime

from .models import Slot


class AggregationStrategy(Protocol):
    """Protocol for combining candidates of several workers on one date."""

    name: str

    def combine(
        self,
        candidates: Dict[str, List[DateTime]],
        worker_order: Sequence[str],
    ) -> List[Slot]:
        """Return slots sorted ascending by start."""


class UnionStrategy:
    """
    Any one assigned worker can serve a slot.

    Identical start times from different workers collapse into one slot that
    lists every worker able to serve it.
    """

    name = "union"

    def combine(
        self,
        candidates: Dict[str, List[DateTime]],
        worker_order: Sequence[str],
    ) -> List[Slot]:
        servers: Dict[DateTime, List[str]] = {}

        for worker_id in worker_order:
            for start in candidates.get(worker_id, []):
                workers = servers.setdefault(start, [])
                if worker_id not in workers:
                    workers.append(worker_id)

        return [
            Slot(start=start, worker_ids=tuple(workers))
            for start, workers in sorted(servers.items())
        ]


class IntersectionStrategy:
    """
    All assigned workers are required simultaneously.

    A start time survives only if every assigned worker produced it.
    """

    name = "intersection"

    def combine(
        self,
        candidates: Dict[str, List[DateTime]],
        worker_order: Sequence[str],
    ) -> List[Slot]:
        if not worker_order:
            return []

        common = set(candidates.get(worker_order[0], []))
        for worker_id in worker_order[1:]:
            common &= set(candidates.get(worker_id, []))

            # Early exit if no common time
            if not common:
                return []

        return [
            Slot(start=start, worker_ids=tuple(worker_order))
            for start in sorted(common)
        ]


STRATEGIES: Dict[str, type] = {
    UnionStrategy.name: UnionStrategy,
    IntersectionStrategy.name: IntersectionStrategy,
}


def get_strategy(name: str) -> AggregationStrategy:
    """
    Look up an aggregation strategy by name.

    Raises:
        ValueError: If no strategy with that name exists
    """
    try:
        return STRATEGIES[name.lower()]()
    except KeyError:
        available = ", ".join(sorted(STRATEGIES))
        raise ValueError(f"Unknown aggregation strategy '{name}'. Use one of: {available}") from None
