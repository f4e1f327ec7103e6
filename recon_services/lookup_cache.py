"""
recon_services.lookup_cache -- Short-TTL cache for catalog and warehouse lookups.

Responsibility:
    Keep recently fetched lookup results (catalog entries, warehouse code
    mappings) for a short time so that consecutive reconciliation runs do
    not re-query the same reference data.  Misses are cached too: an item
    known to be absent from the catalog is not re-queried within the TTL.

Architecture position:
    Services -- used by the cached collaborator wrappers of
    ``reconciliation_service``.  Time comes from an injected ``Clock``.

Invariants enforced:
    - An entry is served only while ``now < stored_at + ttl``.
    - Thread-safe: one lock guards the entry table.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Hashable, Iterable, Mapping
from datetime import datetime, timedelta
from typing import Generic, TypeVar

from recon_kernel.domain.clock import Clock, SystemClock
from recon_kernel.logging_config import get_logger

logger = get_logger("services.lookup_cache")

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

_ABSENT = object()


class TTLCache(Generic[K, V]):
    """
    Time-bounded key/value cache.

    ``get_many`` is the batch entry point: it serves hits from the cache,
    calls ``loader`` once with every missing key, and remembers both the
    values found and the keys the loader did not return.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Clock | None = None,
        name: str = "lookup",
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock or SystemClock()
        self._name = name
        self._entries: dict[K, tuple[datetime, object]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def _lookup(self, key: K, now: datetime) -> object | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if now >= stored_at + self._ttl:
            del self._entries[key]
            return None
        return value

    def get_many(
        self,
        keys: Iterable[K],
        loader: Callable[[list[K]], Mapping[K, V]],
    ) -> dict[K, V]:
        wanted = list(dict.fromkeys(keys))
        found: dict[K, V] = {}
        missing: list[K] = []

        with self._lock:
            now = self._clock.now()
            for key in wanted:
                value = self._lookup(key, now)
                if value is None:
                    missing.append(key)
                elif value is not _ABSENT:
                    found[key] = value  # type: ignore[assignment]
            self.hits += len(wanted) - len(missing)
            self.misses += len(missing)

        if missing:
            loaded = loader(missing)
            with self._lock:
                now = self._clock.now()
                for key in missing:
                    value = loaded.get(key)
                    self._entries[key] = (now, _ABSENT if value is None else value)
            # the loader may return extra keys (aliases); keep only what was asked
            found.update({key: loaded[key] for key in missing if key in loaded})

        logger.debug("lookup_cache_batch", extra={
            "cache": self._name,
            "requested": len(wanted),
            "loaded": len(missing),
        })
        return found

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
