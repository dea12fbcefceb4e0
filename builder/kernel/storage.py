"""
Page Builder Kernel — Page Storage

Storage protocol for persisted page trees plus two implementations:
  MemoryStorage     in-process dict, for tests and local development
  HttpPageStorage   the page persistence API
                      GET  /pages/{pageId} → {"tree": Node} | 404
                      POST /pages/{pageId}   {"tree": Node} → 2xx

Trees cross this boundary as plain dicts in the serialized Node shape.
A page that was never saved is not an error: get() returns None.
Transport failures and non-2xx answers raise PersistenceError.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class PersistenceError(Exception):
    """Saving or loading a page failed (network, server, bad response)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


# ---------------------------------------------------------------------------
# Storage protocol
# ---------------------------------------------------------------------------

class PageStorage:
    """
    Abstract storage interface.
    Implement with the page API or Postgres for production, in-memory for tests.
    """

    async def get(self, page_id: str) -> dict[str, Any] | None:
        """Fetch the stored payload for a page. Returns None if never saved."""
        raise NotImplementedError

    async def put(self, page_id: str, tree: dict[str, Any]) -> None:
        """Persist the serialized root node of a page."""
        raise NotImplementedError

    async def delete(self, page_id: str) -> None:
        raise NotImplementedError


class MemoryStorage(PageStorage):
    """In-memory storage for testing."""

    def __init__(self) -> None:
        self.pages: dict[str, dict[str, Any]] = {}

    async def get(self, page_id: str) -> dict[str, Any] | None:
        tree = self.pages.get(page_id)
        return copy.deepcopy(tree) if tree is not None else None

    async def put(self, page_id: str, tree: dict[str, Any]) -> None:
        self.pages[page_id] = copy.deepcopy(tree)

    async def delete(self, page_id: str) -> None:
        self.pages.pop(page_id, None)


class HttpPageStorage(PageStorage):
    """Client for the page persistence API."""

    def __init__(self, base_url: str, token: str | None = None, timeout: float = 10.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _url(self, page_id: str) -> str:
        return f"{self._base_url}/pages/{page_id}"

    async def get(self, page_id: str) -> dict[str, Any] | None:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(self._url(page_id), headers=self._headers())
        except httpx.HTTPError as e:
            raise PersistenceError(f"Loading page {page_id} failed: {e}") from e

        if response.status_code == 404:
            return None
        if not 200 <= response.status_code < 300:
            raise PersistenceError(
                f"Loading page {page_id} failed with HTTP {response.status_code}",
                status_code=response.status_code,
            )
        try:
            body = response.json()
        except ValueError as e:
            raise PersistenceError(f"Page {page_id} response is not JSON") from e
        return body if isinstance(body, dict) else None

    async def put(self, page_id: str, tree: dict[str, Any]) -> None:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(self._url(page_id), json={"tree": tree}, headers=self._headers())
        except httpx.HTTPError as e:
            raise PersistenceError(f"Saving page {page_id} failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise PersistenceError(
                f"Saving page {page_id} failed with HTTP {response.status_code}",
                status_code=response.status_code,
            )
        logger.debug("Saved page %s", page_id)

    async def delete(self, page_id: str) -> None:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.delete(self._url(page_id), headers=self._headers())
        except httpx.HTTPError as e:
            raise PersistenceError(f"Deleting page {page_id} failed: {e}") from e
        if response.status_code != 404 and not 200 <= response.status_code < 300:
            raise PersistenceError(
                f"Deleting page {page_id} failed with HTTP {response.status_code}",
                status_code=response.status_code,
            )
