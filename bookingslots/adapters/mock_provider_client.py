"""
Mock scheduling provider client for running without a provider account.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pendulum
from pendulum import Date

DEFAULT_DATA_FILE = Path(__file__).parent / "mock_provider_data.json"


class MockProviderClient:
    """
    Mock client that serves provider records from a JSON document.

    The document has the shape ``{"workers": [...], "busyBlocks": [...]}``
    using the raw record format of the real provider. By default the bundled
    mock_provider_data.json is used.
    """

    def __init__(
        self,
        data: Optional[Dict[str, Any]] = None,
        data_file: Optional[Path] = None,
    ):
        """
        Initialize the mock client.

        Args:
            data: Records to serve; takes precedence over ``data_file``
            data_file: JSON file to load records from
        """
        if data is None:
            data = self._load_data(data_file or DEFAULT_DATA_FILE)

        self.workers: List[Dict[str, Any]] = list(data.get("workers", []))
        self.busy_blocks: List[Dict[str, Any]] = list(data.get("busyBlocks", []))
        self.calls: List[str] = []

    @staticmethod
    def _load_data(data_file: Path) -> Dict[str, Any]:
        """Load mock provider data from a JSON file."""
        if not data_file.exists():
            # Fallback to empty if file doesn't exist
            return {}

        with open(data_file, "r", encoding="utf-8") as f:
            return json.load(f)

    def close(self) -> None:
        """Nothing to release; mirrors the HTTP client."""

    async def get_workers(self, ids: Sequence[str]) -> List[Dict[str, Any]]:
        self.calls.append("get_workers")
        wanted = set(ids)
        return [worker for worker in self.workers if str(worker.get("id")) in wanted]

    async def get_busy_blocks(
        self,
        worker_ids: Sequence[str],
        start_date: Date,
        end_date: Date,
    ) -> List[Dict[str, Any]]:
        self.calls.append("get_busy_blocks")
        wanted = set(worker_ids)
        blocks: List[Dict[str, Any]] = []

        for block in self.busy_blocks:
            if str(block.get("workerId")) not in wanted:
                continue

            try:
                day = pendulum.from_format(str(block["date"]), "YYYY-MM-DD").date()
            except (KeyError, ValueError):
                # Let the record parser report it
                blocks.append(block)
                continue

            if start_date <= day <= end_date:
                blocks.append(block)

        return blocks
