from __future__ import annotations

import logging
from typing import Callable, TypeVar

from ..core.exceptions import TransactionFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_once(fn: Callable[..., T], *args, **kwargs) -> T:
    """Run an idempotent operation, retrying a single time if the store aborts it."""
    try:
        return fn(*args, **kwargs)
    except TransactionFailure:
        logger.warning("Transaction aborted in %s, retrying once", getattr(fn, "__qualname__", fn))
        return fn(*args, **kwargs)
