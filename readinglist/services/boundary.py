"""
Service boundary error translation.
"""

from contextlib import contextmanager
from typing import Iterator

from loguru import logger

from readinglist.exceptions import ReadingListException, StorageError


@contextmanager
def service_boundary(operation: str) -> Iterator[None]:
    """
    Let classified errors through and turn anything else into ``StorageError``.

    Args:
        operation: Short name used in the log line, e.g. ``"books.create"``
    """
    try:
        yield
    except ReadingListException:
        raise
    except Exception as e:
        logger.exception(f"Unclassified failure in {operation}: {type(e).__name__}")
        raise StorageError(internal_detail=f"{type(e).__name__}: {e}") from e
