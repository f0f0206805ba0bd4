"""Shared helpers for executing Supabase queries."""

from typing import Any

import httpx
from postgrest.exceptions import APIError

from peak_performance.domain.errors import StoreError

UNIQUE_VIOLATION = "23505"

Row = dict[str, object]


def execute(query: Any) -> list[Row]:
    """Run a query and return its rows, mapping client errors to StoreError."""
    try:
        response = query.execute()
    except APIError as exc:
        raise StoreError(exc.message or str(exc)) from exc
    except httpx.HTTPError as exc:
        raise StoreError(str(exc)) from exc
    return list(response.data or [])


def is_unique_violation(error: StoreError) -> bool:
    cause = error.__cause__
    return isinstance(cause, APIError) and cause.code == UNIQUE_VIOLATION
