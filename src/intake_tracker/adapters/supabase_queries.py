"""Shared helpers for executing Supabase queries."""

from typing import Any, Protocol

import httpx
from postgrest import APIError

from intake_tracker.domain.errors import StorageError

UNIQUE_VIOLATION = "23505"


class ExecutableQuery(Protocol):
    """A PostgREST request builder."""

    def execute(self) -> Any:
        """Send the request and return the API response."""


def execute(query: ExecutableQuery, action: str) -> Any:
    """Execute a query, translating transport and API failures to StorageError."""
    try:
        return query.execute()
    except APIError as exc:
        if exc.code == UNIQUE_VIOLATION:
            raise
        raise StorageError(f"Supabase {action} failed: {exc.message}") from exc
    except httpx.HTTPError as exc:
        raise StorageError(f"Supabase {action} failed: {exc}") from exc
