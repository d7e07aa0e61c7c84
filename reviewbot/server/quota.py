"""Per-repository daily review quota held in process memory."""

from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Dict

RETAINED_DAYS = 2


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class QuotaDecision:
    allowed: bool
    remaining: int | None
    limit: int | None


class QuotaGate:
    """Atomic check-and-increment counter keyed by (UTC day, repository).

    Only the current and previous day buckets are kept; older days are evicted
    whenever a new day bucket is opened.
    """

    def __init__(self, limit: int | None, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._limit = limit if limit and limit > 0 else None
        self._clock = clock
        self._lock = threading.Lock()
        self._days: "OrderedDict[date, Dict[str, int]]" = OrderedDict()

    @property
    def limit(self) -> int | None:
        return self._limit

    def _today(self) -> date:
        return self._clock().astimezone(timezone.utc).date()

    def _bucket(self, day: date) -> Dict[str, int]:
        bucket = self._days.get(day)
        if bucket is None:
            bucket = self._days[day] = {}
            for stale in sorted(self._days)[:-RETAINED_DAYS]:
                del self._days[stale]
        return bucket

    def check_and_consume(self, repository: str) -> QuotaDecision:
        if self._limit is None:
            return QuotaDecision(allowed=True, remaining=None, limit=None)

        with self._lock:
            bucket = self._bucket(self._today())
            used = bucket.get(repository, 0)
            if used >= self._limit:
                return QuotaDecision(allowed=False, remaining=0, limit=self._limit)
            bucket[repository] = used + 1
            return QuotaDecision(allowed=True, remaining=self._limit - (used + 1), limit=self._limit)

    def usage(self, repository: str, day: date | None = None) -> int:
        with self._lock:
            bucket = self._days.get(day or self._today(), {})
            return bucket.get(repository, 0)

    def tracked_days(self) -> list[date]:
        with self._lock:
            return sorted(self._days)
