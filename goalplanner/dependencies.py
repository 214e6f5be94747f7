from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal, ROUND_HALF_UP
from functools import lru_cache

from fastapi import HTTPException

from .config import settings
from .errors import NotFoundError, PersistenceError, ValidationError
from .storage import JsonFileStore, PlannerStore, PostgresStore

logger = logging.getLogger(__name__)


@lru_cache
def get_store() -> PlannerStore:
    if settings.storage_backend == "postgres":
        return PostgresStore()
    return JsonFileStore(settings.data_dir)


@contextmanager
def service_errors() -> Iterator[None]:
    """Map core error kinds onto HTTP status codes."""
    try:
        yield
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except PersistenceError as exc:
        logger.error("Storage failure: %s", exc)
        raise HTTPException(status_code=503, detail=str(exc)) from exc


def money(value: Decimal) -> str:
    return str(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
