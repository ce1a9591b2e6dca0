import json
import time
import asyncio
import hashlib
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from studycore.utils import get_logger, log_error

LOG = get_logger()

_MISSING = object()


def _digest(text: str) -> str:
    return hashlib.sha256(text.encode('utf-8')).hexdigest()[:16]


def make_cache_key(text: str, operation: str, params: Optional[Dict[str, Any]] = None) -> str:
    """Deterministic key for (input, operation, params).

    Params are serialized with sorted keys at every nesting level, so logically
    equal requests map to the same key regardless of dict ordering.
    """
    normalized = (text or '').strip()
    try:
        p = json.dumps(params or {}, sort_keys=True, separators=(',', ':'), default=str)
    except (TypeError, ValueError):
        p = str(params)
    return f'{operation}:{_digest(normalized)}:{_digest(p)}'


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    expires_at: float

    def expired(self, now: float) -> bool:
        return now > self.expires_at


class ResponseCache:
    """In-process TTL cache with in-flight request de-duplication.

    ``get_or_compute`` returns a live entry if there is one, otherwise joins an
    outstanding computation for the same key, otherwise starts one. At most one
    computation per key is outstanding at any time.
    """

    def __init__(self, max_entries: int = 500, clock: Callable[[], float] = time.time):
        self.max_entries = max_entries
        self._clock = clock
        self._entries: 'OrderedDict[str, CacheEntry]' = OrderedDict()
        self._pending: Dict[str, asyncio.Task] = {}
        self._stats = {'hits': 0, 'misses': 0, 'dedup_hits': 0, 'sets': 0, 'evictions': 0, 'expired': 0}

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            self._stats['misses'] += 1
            return default
        if entry.expired(self._clock()):
            del self._entries[key]
            self._stats['expired'] += 1
            self._stats['misses'] += 1
            LOG.info('cache_expired', extra={'key': key})
            return default
        self._entries.move_to_end(key)
        self._stats['hits'] += 1
        return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            return
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(key=key, value=value, expires_at=self._clock() + ttl_seconds)
        self._stats['sets'] += 1
        LOG.info('cache_set', extra={'key': key, 'ttl': ttl_seconds})
        while self.max_entries and len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            self._stats['evictions'] += 1
            LOG.info('cache_evict', extra={'key': evicted})

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()
        for k in self._stats:
            self._stats[k] = 0

    def cleanup(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        now = self._clock()
        stale = [k for k, e in self._entries.items() if e.expired(now)]
        for k in stale:
            del self._entries[k]
        self._stats['expired'] += len(stale)
        return len(stale)

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    def pending_count(self) -> int:
        return len(self._pending)

    def __len__(self):
        return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        lookups = self._stats['hits'] + self._stats['misses']
        out = dict(self._stats)
        out['size'] = len(self._entries)
        out['max_entries'] = self.max_entries
        out['pending'] = len(self._pending)
        out['hit_rate'] = self._stats['hits'] / lookups if lookups else 0.0
        return out

    async def get_or_compute(self, key: str, ttl_seconds: float, compute: Callable[[], Awaitable[Any]]) -> Any:
        """Return the cached value for ``key`` or run ``compute`` once for all callers.

        Concurrent callers for a key share one computation and see its outcome,
        value or error. Only successes are cached. If the caller that started the
        computation is cancelled, joiners receive ``CancelledError`` too and the
        next call starts afresh; cancelling a joiner only abandons its own wait.
        """
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            LOG.info('cache_hit', extra={'key': key})
            return value

        task = self._pending.get(key)
        if task is not None:
            self._stats['dedup_hits'] += 1
            LOG.info('cache_dedup_hit', extra={'key': key})
            # a cancelled joiner must not cancel the shared computation
            return await asyncio.shield(task)

        LOG.info('cache_miss', extra={'key': key})
        task = asyncio.ensure_future(compute())
        self._pending[key] = task
        task.add_done_callback(lambda t: self._settle(key, ttl_seconds, t))
        return await task

    def _settle(self, key: str, ttl_seconds: float, task: asyncio.Task) -> None:
        # runs before any awaiting caller resumes
        if self._pending.get(key) is task:
            del self._pending[key]
        if task.cancelled():
            LOG.warning('pending_cleared', extra={'key': key, 'outcome': 'cancelled'})
            return
        error = task.exception()
        if error is not None:
            log_error(error, {'key': key, 'outcome': 'failed'})
            return
        self.set(key, task.result(), ttl_seconds)
