# tr_core/common/storage.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

from django.db import InterfaceError, OperationalError

from tr_core.common.api.exceptions import StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Backing-store failures worth one more attempt. IntegrityError and friends
# are caller mistakes, not outages.
TRANSIENT_DB_ERRORS = (OperationalError, InterfaceError)


def read_with_retry(fn: Callable[[], T], *, label: str = "read") -> T:
    """
    Run an idempotent read, retrying once on a transient store failure.
    The callable must fully evaluate its querysets.
    """
    try:
        return fn()
    except TRANSIENT_DB_ERRORS as exc:
        logger.warning("storage_read_retry label=%s error=%s", label, exc.__class__.__name__)

    try:
        return fn()
    except TRANSIENT_DB_ERRORS as exc:
        logger.error("storage_read_failed label=%s", label, exc_info=exc)
        raise StorageError() from exc


@contextmanager
def write_guard(*, label: str = "write") -> Iterator[None]:
    """
    Writes are never retried here: a transient failure surfaces immediately
    as StorageError.
    """
    try:
        yield
    except TRANSIENT_DB_ERRORS as exc:
        logger.error("storage_write_failed label=%s", label, exc_info=exc)
        raise StorageError() from exc
