# app/repositories/remote.py
import logging
from typing import Any

import httpx
from postgrest.exceptions import APIError

from app.core.errors import (
    DuplicateRowError,
    ReferenceNotFoundError,
    RemoteReadError,
    RemoteWriteError,
)

logger = logging.getLogger(__name__)

# Postgres SQLSTATEs
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"


async def execute_read(query: Any, what: str) -> Any:
    """
    Await a PostgREST select and return its `data`.

    Raises:
        RemoteReadError: on API or transport failure.
    """
    try:
        response = await query.execute()
    except (APIError, httpx.HTTPError) as exc:
        logger.warning("Read failed (%s): %s", what, exc)
        raise RemoteReadError(f"Could not load {what}") from exc
    return response.data


async def execute_write(query: Any, what: str) -> Any:
    """
    Await a PostgREST insert/update/delete/rpc and return its `data`.

    Raises:
        DuplicateRowError: the write hit a unique constraint.
        RemoteWriteError: any other API or transport failure.
    """
    try:
        response = await query.execute()
    except APIError as exc:
        logger.warning("Write failed (%s): %s", what, exc)
        code = getattr(exc, "code", None)
        if code == UNIQUE_VIOLATION:
            raise DuplicateRowError(f"Could not {what}: row already exists") from exc
        if code == FOREIGN_KEY_VIOLATION:
            raise ReferenceNotFoundError(f"Could not {what}: referenced row not found") from exc
        raise RemoteWriteError(f"Could not {what}: {exc.message or exc}") from exc
    except httpx.HTTPError as exc:
        logger.warning("Write failed (%s): %s", what, exc)
        raise RemoteWriteError(f"Could not {what}") from exc
    return response.data
