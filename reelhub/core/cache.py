"""
In-process TTL cache with LRU eviction.
"""
from collections import OrderedDict
from typing import Any, Optional
import threading
import time


class TTLCache:
    """LRU cache whose entries expire individually"""

    def __init__(self, max_size: int = 256, ttl_seconds: float = 300):
        self.max_size = max(1, int(max_size))
        self.ttl_seconds = float(ttl_seconds)
        self._cache: OrderedDict = OrderedDict()
        self._lock = threading.RLock()

    def get(self, key: str) -> Optional[Any]:
        """Get a cached value if still valid"""
        with self._lock:
            if key in self._cache:
                expires_at, value = self._cache[key]
                if time.time() < expires_at:
                    # Move to end (LRU)
                    self._cache.move_to_end(key)
                    return value
                else:
                    del self._cache[key]
            return None

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None):
        """Cache a value"""
        ttl = self.ttl_seconds if ttl_seconds is None else float(ttl_seconds)
        with self._lock:
            self._cache[key] = (time.time() + ttl, value)
            self._cache.move_to_end(key)

            # Evict oldest if over size
            while len(self._cache) > self.max_size:
                self._cache.popitem(last=False)

    def clear(self):
        """Clear all cache"""
        with self._lock:
            self._cache.clear()

    def __len__(self):
        with self._lock:
            return len(self._cache)
