"""
Parsing of raw provider records into domain models.

Raw worker record:
    {
        "id": "w1",
        "name": "Anna",
        "isDefault": false,
        "availability": [
            {"weekday": "Monday", "start": "09:00", "end": "17:00"}
        ]
    }

Raw busy-block record:
    {"workerId": "w1", "date": "2025-09-12", "start": "10:30", "end": "11:00"}
"""

import logging
from typing import Any, List, Mapping, Optional, Tuple

import pendulum

from ..domain.clock import parse_clock, parse_weekday
from ..domain.models import (
    MALFORMED_WINDOW,
    UNPARSEABLE_RECORD,
    BusyBlock,
    DataQualityWarning,
    WeeklyWindow,
    WorkerRecord,
)

logger = logging.getLogger(__name__)


def parse_worker(raw: Mapping[str, Any]) -> Tuple[Optional[WorkerRecord], List[DataQualityWarning]]:
    """
    Parse a raw worker record.

    Malformed availability windows are skipped individually; a record without
    a usable id is skipped entirely.

    Returns:
        Tuple of (WorkerRecord or None, warnings)
    """
    warnings: List[DataQualityWarning] = []

    worker_id = _read_id(raw, "id")
    if worker_id is None:
        logger.debug("Skipping worker record without id: %r", raw)
        return None, [
            DataQualityWarning(
                code=UNPARSEABLE_RECORD,
                message=f"Worker record without id: {raw!r}",
            )
        ]

    windows: List[WeeklyWindow] = []
    availability = raw.get("availability") or []
    if not isinstance(availability, list):
        availability = []
        warnings.append(
            DataQualityWarning(
                code=MALFORMED_WINDOW,
                message="Availability is not a list",
                worker_id=worker_id,
            )
        )

    for item in availability:
        try:
            windows.append(
                WeeklyWindow(
                    weekday=parse_weekday(item["weekday"]),
                    start=parse_clock(item["start"]),
                    end=parse_clock(item["end"], allow_end_of_day=True),
                )
            )
        except (KeyError, TypeError, ValueError) as e:
            warnings.append(
                DataQualityWarning(
                    code=MALFORMED_WINDOW,
                    message=f"Could not parse weekly window {item!r}: {e}",
                    worker_id=worker_id,
                )
            )

    worker = WorkerRecord(
        id=worker_id,
        name=str(raw.get("name") or ""),
        windows=tuple(windows),
        is_default=bool(raw.get("isDefault", False)),
    )
    return worker, warnings


def parse_busy_block(raw: Mapping[str, Any]) -> Tuple[Optional[BusyBlock], List[DataQualityWarning]]:
    """
    Parse a raw busy-block record.

    A block whose end is not after its start is still returned so the
    subtractor can report it against the date it belongs to.

    Returns:
        Tuple of (BusyBlock or None, warnings)
    """
    worker_id = _read_id(raw, "workerId")

    try:
        if worker_id is None:
            raise ValueError("missing workerId")
        block = BusyBlock(
            worker_id=worker_id,
            date=pendulum.from_format(str(raw["date"]), "YYYY-MM-DD").date(),
            start=parse_clock(raw["start"]),
            end=parse_clock(raw["end"], allow_end_of_day=True),
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.debug("Skipping unparseable busy block %r: %s", raw, e)
        return None, [
            DataQualityWarning(
                code=UNPARSEABLE_RECORD,
                message=f"Could not parse busy block {raw!r}: {e}",
                worker_id=worker_id,
            )
        ]

    return block, []


def _read_id(raw: Mapping[str, Any], key: str) -> Optional[str]:
    value = raw.get(key) if isinstance(raw, Mapping) else None
    if value is None or isinstance(value, bool) or str(value).strip() == "":
        return None
    return str(value).strip()
