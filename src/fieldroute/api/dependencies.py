"""Request dependencies and error translation shared by the routers."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import Header, HTTPException, status

from ..errors import NotFound
from ..persistence import RouteStore, get_route_store


def get_store() -> RouteStore:
    return get_route_store()


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Identity of the field rep, supplied by the upstream auth layer."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header.")
    return x_user_id.strip()


@contextmanager
def translate_errors(action: str) -> Iterator[None]:
    """Map service exceptions onto HTTP responses.

    ``NotFound`` becomes 404, ``ValueError`` (including ``InvalidRequest``)
    becomes 400, anything else is logged and returned as 500.
    """
    try:
        yield
    except HTTPException:
        raise
    except NotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Failed to {action}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {action}: {str(exc)}",
        ) from exc
