"""In-process TTL + LRU cache for embedding vectors"""

import hashlib
import threading
import time
from collections import OrderedDict
from typing import Any, Optional

from faddl_ai.config import settings


def embedding_cache_key(bucket: str, text: str, model: str, dimensions: int) -> str:
    """Vectors are only interchangeable within one model and output size"""
    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]
    return f"embedding:{model}:{dimensions}:{bucket}:{digest}"


class EmbeddingCache:
    """Least-recently-used cache with per-entry expiry"""

    def __init__(self, ttl_seconds: Optional[float] = None, max_size: Optional[int] = None):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.embedding_cache_ttl_seconds
        self.max_size = max_size if max_size is not None else settings.embedding_cache_max_size
        self._entries: "OrderedDict[str, tuple[float, Any]]" = OrderedDict()
        self._lock = threading.Lock()
        self.stats = {"hits": 0, "misses": 0, "sets": 0, "evictions": 0, "expired": 0}

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.stats["misses"] += 1
                return None
            expires_at, value = entry
            if expires_at < time.monotonic():
                del self._entries[key]
                self.stats["expired"] += 1
                self.stats["misses"] += 1
                return None
            self._entries.move_to_end(key)
            self.stats["hits"] += 1
            return value

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None):
        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        with self._lock:
            self._entries[key] = (time.monotonic() + ttl, value)
            self._entries.move_to_end(key)
            self.stats["sets"] += 1
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)
                self.stats["evictions"] += 1

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> dict[str, Any]:
        lookups = self.stats["hits"] + self.stats["misses"]
        return {
            **self.stats,
            "size": len(self._entries),
            "max_size": self.max_size,
            "hit_rate": round(self.stats["hits"] / lookups, 4) if lookups else 0.0,
        }
