"""
Client for the institution directory.

Searches are asynchronous. ``DebouncedSearch`` sits between the search box
and the client: it waits for typing to settle, and a response that arrives
after a newer query was issued is dropped instead of shown.
"""

import asyncio
from typing import Any, Iterable, List, Optional

import httpx
from loguru import logger

from .models import Deadline, Institution, TrackedDeadline, make_deadline_id
from .store import TrackedDeadlineStore


class DirectoryClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        max_results: int = 50,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_results = max_results
        self._client = client

    async def _get(self, path: str, params: dict) -> Any:
        url = f"{self.base_url}{path}"
        if self._client is not None:
            response = await self._client.get(url, params=params, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, params=params)
        response.raise_for_status()
        return response.json()

    @staticmethod
    def _parse_institutions(payload: Any) -> List[Institution]:
        if not isinstance(payload, dict) or not isinstance(payload.get("institutions"), list):
            raise ValueError("Directory response has no institutions list")
        return [Institution.from_dict(item) for item in payload["institutions"]]

    async def search(self, query: str) -> List[Institution]:
        if not query or not query.strip():
            return []
        try:
            payload = await self._get("/api/institutions/search", {"q": query, "limit": self.max_results})
            institutions = self._parse_institutions(payload)
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Error searching institutions for {query!r}: {e}")
            return []
        logger.debug(f"Directory search {query!r} returned {len(institutions)} institution(s)")
        return institutions[: self.max_results]

    async def get_institutions(self, ids: Iterable[int]) -> List[Institution]:
        wanted = [str(int(i)) for i in ids]
        if not wanted:
            return []
        try:
            payload = await self._get("/api/institutions", {"ids": ",".join(wanted)})
            return self._parse_institutions(payload)
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Error fetching institutions {wanted}: {e}")
            return []


class DebouncedSearch:
    def __init__(self, client: DirectoryClient, delay: float = 0.3):
        self.client = client
        self.delay = delay
        self.generation = 0
        self.results: List[Institution] = []
        self._pending: Optional[asyncio.Future] = None

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    async def submit(self, query: str) -> Optional[List[Institution]]:
        """
        Search once typing settles.

        Returns the results, or None when a newer query superseded this one
        (during the quiet window or while the request was in flight).
        """
        self.generation += 1
        generation = self.generation
        self._cancel_pending()

        if not query or not query.strip():
            self.results = []
            return []

        waiter = asyncio.ensure_future(asyncio.sleep(self.delay))
        self._pending = waiter
        try:
            await waiter
        except asyncio.CancelledError:
            if not self.is_current(generation):
                return None
            raise

        results = await self.client.search(query)
        if not self.is_current(generation):
            logger.debug(f"Dropping stale results for {query!r}")
            return None
        self.results = results
        return results


def track_deadline(store: TrackedDeadlineStore, institution: Institution, deadline: Deadline) -> TrackedDeadline:
    """Add one deadline of a search result to the tracked deadlines."""
    record = TrackedDeadline(
        deadline_id=make_deadline_id(institution, deadline),
        title=deadline.title,
        date=deadline.date,
        institution_id=institution.id,
        institution_name=institution.name,
        institution_website=institution.website,
    )
    if store.add(record):
        logger.info(f"Tracking {record.title} at {record.institution_name}")
    return store.get(record.deadline_id) or record
