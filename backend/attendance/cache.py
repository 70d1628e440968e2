"""
Client cache coherence contract.

The dashboard caches list, detail and history reads. Instead of each
client mutation deciding what to refetch, every write response names the
cache keys it invalidates in ``X-Invalidate`` and every read response
carries a ``Cache-Control`` max-age equal to the refresh interval, so a
cached read is never older than CACHE_REFRESH_SECONDS.
"""

from typing import List
from fastapi import Response

from attendance.config import CACHE_REFRESH_SECONDS

LIST_KEY = "students:list"
HISTORY_KEY = "students:history"
INVALIDATE_HEADER = "X-Invalidate"


def detail_key(student_id: int) -> str:
    return f"students:detail:{student_id}"


def invalidation_keys(student_id: int) -> List[str]:
    """Keys made stale by any write to ``student_id``."""
    return [detail_key(student_id), LIST_KEY, HISTORY_KEY]


def mark_invalidated(response: Response, student_id: int) -> None:
    response.headers[INVALIDATE_HEADER] = ", ".join(invalidation_keys(student_id))


def mark_cacheable(response: Response) -> None:
    response.headers["Cache-Control"] = f"private, max-age={CACHE_REFRESH_SECONDS}"
