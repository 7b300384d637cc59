import threading
import time
from typing import List, Optional

from config import settings


class HeaderCache:
    """TTL cache of parsed header rows keyed by access code.

    Stored documents never change, so an entry only goes stale by age.
    """

    def __init__(self, max_age_seconds=300):
        self._cache = {}
        self._lock = threading.Lock()
        self.max_age = max_age_seconds

    def get(self, code: str) -> Optional[List[str]]:
        with self._lock:
            entry = self._cache.get(code)
            if not entry:
                return None
            headers, ts = entry
            if time.time() - ts > self.max_age:
                del self._cache[code]
                return None
            return list(headers)

    def set(self, code: str, headers: List[str]) -> None:
        now = time.time()
        with self._lock:
            # Prune expired entries
            expired = [k for k, (_, ts) in self._cache.items() if now - ts > self.max_age]
            for k in expired:
                del self._cache[k]
            self._cache[code] = (tuple(headers), now)

    def invalidate(self, code: Optional[str] = None) -> None:
        with self._lock:
            if code is None:
                self._cache.clear()
            else:
                self._cache.pop(code, None)

header_cache = HeaderCache(max_age_seconds=settings.HEADER_CACHE_SECONDS)
