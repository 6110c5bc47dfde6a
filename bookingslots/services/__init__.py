"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .availability import AvailabilityRequest, AvailabilityService, WorkerSelection
from .batch_loader import BatchLoader

__all__ = ["AvailabilityRequest", "AvailabilityService", "BatchLoader", "WorkerSelection"]
