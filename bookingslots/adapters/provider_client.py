"""
Scheduling provider client for fetching worker and busy-block records.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Protocol, Sequence

import requests
from pendulum import Date

from ..domain.exceptions import ProviderTimeout, ProviderUnavailable

logger = logging.getLogger(__name__)


class ProviderClientProtocol(Protocol):
    """Protocol describing the provider behaviour needed by the batch loader."""

    async def get_workers(self, ids: Sequence[str]) -> List[Dict[str, Any]]:
        """Return raw worker records, each carrying weekly availability."""

    async def get_busy_blocks(
        self,
        worker_ids: Sequence[str],
        start_date: Date,
        end_date: Date,
    ) -> List[Dict[str, Any]]:
        """Return raw busy-block records within the inclusive date range."""


class HttpProviderClient:
    """
    Client for a JSON scheduling provider API.

    Endpoints:
        GET {base_url}/workers?ids=a,b
        GET {base_url}/busy-blocks?workerIds=a,b&startDate=...&endDate=...

    Both return a JSON array of raw records. Requests are blocking and run
    on the client's own thread pool so the batch loader can overlap them.
    Call ``close()`` when done; requests still in flight (for example after
    a deadline expired) finish in the background instead of blocking the
    caller's event loop shutdown.
    """

    def __init__(self, base_url: str, access_token: str = "", timeout: float = 30):
        """
        Initialize the provider client.

        Args:
            base_url: Root URL of the provider API
            access_token: Bearer token, omitted from headers when empty
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = {"Accept": "application/json"}
        if access_token:
            self.headers["Authorization"] = f"Bearer {access_token}"
        # One thread per bulk fetch kind
        self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="provider")

    async def get_workers(self, ids: Sequence[str]) -> List[Dict[str, Any]]:
        return await self._run(
            "/workers",
            {"ids": ",".join(ids)},
        )

    async def get_busy_blocks(
        self,
        worker_ids: Sequence[str],
        start_date: Date,
        end_date: Date,
    ) -> List[Dict[str, Any]]:
        return await self._run(
            "/busy-blocks",
            {
                "workerIds": ",".join(worker_ids),
                "startDate": start_date.isoformat(),
                "endDate": end_date.isoformat(),
            },
        )

    def close(self) -> None:
        """Release the thread pool without waiting for running requests."""
        self._executor.shutdown(wait=False, cancel_futures=True)

    async def _run(self, path: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self._get, path, params)

    def _get(self, path: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        """
        Perform a GET request and return the decoded record list.

        Raises:
            ProviderTimeout: If the request times out
            ProviderUnavailable: If the request fails or the body is not a list
        """
        url = f"{self.base_url}{path}"
        logger.debug("GET %s %s", url, params)

        try:
            response = requests.get(
                url,
                headers=self.headers,
                params=params,
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()

        except requests.exceptions.Timeout as e:
            raise ProviderTimeout(f"Provider request to {path} timed out: {e}") from e
        except requests.exceptions.RequestException as e:
            raise ProviderUnavailable(f"Provider request to {path} failed: {e}") from e
        except ValueError as e:
            raise ProviderUnavailable(f"Provider returned invalid JSON for {path}: {e}") from e

        if not isinstance(data, list):
            raise ProviderUnavailable(f"Provider returned {type(data).__name__} for {path}, expected a list")

        return data
