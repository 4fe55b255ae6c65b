"""
In-memory query cache

Entries are (value, expiry) pairs checked against a monotonic clock on
read. Nothing runs in the background: expired entries are dropped when
read or when sweep() is called.
"""
import hashlib
import json
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Optional, Tuple
import logging

from turnofacil.models import Actor, TeamRequest
from .permissions import RequestPermissionManager
from .query_filters import (
    RequestFilters,
    active_filter_count,
    apply_preset,
    apply_request_filters,
    export_filters,
    filter_options,
    filter_summary,
)
from .request_service import request_metrics

logger = logging.getLogger(__name__)

DEFAULT_TTL = 300

_MISSING = object()


class QueryCache:
    """
    Key -> value store with per-entry expiry

    Args:
        ttl: Default lifetime in seconds
        clock: Monotonic time source, seconds
    """

    def __init__(self, ttl: float = DEFAULT_TTL, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}
        # Flask may serve requests from several threads against one cache
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                value, expires_at = entry
                if self.clock() < expires_at:
                    self.hits += 1
                    return value
                del self._entries[key]
            self.misses += 1
            return default

    def set(self, key: str, value: Any, ttl: Optional[float] = None):
        lifetime = self.ttl if ttl is None else ttl
        with self._lock:
            self._entries[key] = (value, self.clock() + lifetime)

    def get_or_compute(self, key: str, compute: Callable[[], Any], ttl: Optional[float] = None) -> Any:
        value = self.get(key, _MISSING)
        if value is _MISSING:
            value = compute()
            self.set(key, value, ttl)
        return value

    def invalidate(self, prefix: str) -> int:
        """Drop every entry whose key starts with prefix; returns the count."""
        with self._lock:
            keys = [k for k in self._entries if k.startswith(prefix)]
            for key in keys:
                del self._entries[key]
        return len(keys)

    def sweep(self) -> int:
        """Drop expired entries; returns the count."""
        now = self.clock()
        with self._lock:
            expired = [k for k, (_, expires_at) in self._entries.items() if expires_at <= now]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug(f"Query cache sweep removed {len(expired)} entries")
        return len(expired)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self):
        return len(self._entries)

    def __contains__(self, key: str):
        return self.get(key, _MISSING) is not _MISSING

    def stats(self) -> Dict[str, Any]:
        return {'entries': len(self), 'hits': self.hits, 'misses': self.misses, 'ttl': self.ttl}


def snapshot_fingerprint(requests: Iterable[TeamRequest]) -> str:
    """Short digest of every serialized field, independent of snapshot order."""
    rows = sorted((r.to_dict() for r in requests), key=lambda row: row['id'])
    payload = json.dumps(rows, sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(payload.encode('utf-8')).hexdigest()[:16]


def _day_key(now: Optional[datetime]) -> str:
    # Overdue and age flags change at midnight
    return (now or datetime.now(timezone.utc)).date().isoformat()


class RequestQueryService:
    """
    Permission-scoped, cached request views for one actor

    Cache keys combine the actor's id, role and location with the filters,
    the day and a fingerprint of the visible snapshot, so a changed snapshot
    or a reassigned actor never reads a stale view.
    """

    def __init__(self, actor: Actor, cache: Optional[QueryCache] = None):
        self.actor = actor
        self.permissions = RequestPermissionManager(actor)
        self.cache = cache if cache is not None else QueryCache()

    def _actor_key(self) -> str:
        return f"{self.actor.id}:{self.actor.role.value}:{self.actor.location_id or ''}"

    def query(self, requests: Iterable[TeamRequest], filters: Optional[RequestFilters] = None,
              preset: Optional[str] = None, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Visible requests after filters (and preset, applied on top) plus menu options.

        Raises:
            ValidationException: If preset is unknown
        """
        filters = filters or RequestFilters()
        if preset:
            filters = apply_preset(preset, self.actor, filters, now)

        visible = self.permissions.filter_requests_by_permissions(requests)
        key = (f"requests:{self._actor_key()}:{export_filters(filters)}:"
               f"{snapshot_fingerprint(visible)}:{_day_key(now)}")

        def compute():
            matched = apply_request_filters(visible, filters, now)
            return {
                'requests': [r.to_dict() for r in matched],
                'total': len(matched),
                'filters': filters.to_dict(),
                'active_filters': active_filter_count(filters),
                'summary': filter_summary(filters),
                'options': filter_options(visible, self.permissions),
            }

        return self.cache.get_or_compute(key, compute)

    def metrics(self, requests: Iterable[TeamRequest], now: Optional[datetime] = None) -> Dict[str, Any]:
        visible = self.permissions.filter_requests_by_permissions(requests)
        key = f"metrics:{self._actor_key()}:{snapshot_fingerprint(visible)}:{_day_key(now)}"
        return self.cache.get_or_compute(key, lambda: request_metrics(visible, now))

    def invalidate(self) -> int:
        """Drop every cached view after a write."""
        return self.cache.invalidate('requests:') + self.cache.invalidate('metrics:')
