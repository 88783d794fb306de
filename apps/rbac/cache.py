"""
Decision cache on top of a Django cache backend.

Entries are keyed by (user_id, role, code) and stored under the cache's
current generation, passed to the backend as the key ``version``. Every
administrative mutation bumps the generation and clears the backend, so a
decision computed against state invalidated while it was being evaluated
lands under a dead version and is never read.

The backend handles expiry and size bounds (``TIMEOUT``, ``MAX_ENTRIES``).
"""
import hashlib
import logging
import threading
import uuid

from django.core.cache.backends.locmem import LocMemCache

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 10000


def local_backend(max_entries=DEFAULT_MAX_ENTRIES, ttl=None):
    """A private in-memory backend not shared with any other cache."""
    return LocMemCache(
        f'examhub-rbac-decisions-{uuid.uuid4().hex}',
        {'TIMEOUT': ttl, 'OPTIONS': {'MAX_ENTRIES': max_entries}},
    )


class DecisionCache:
    """
    Memoised authorization decisions.

    Usage:
        cache = DecisionCache(caches['rbac'], ttl=300)
        generation = cache.generation
        decision = compute()
        cache.put(key, decision, generation)
        ...
        cache.shutdown()

    Without a backend a private ``LocMemCache`` bounded to ``max_entries`` is
    used. ``ttl`` of None or 0 keeps entries until the next invalidation.
    """

    def __init__(self, backend=None, ttl=None, max_entries=DEFAULT_MAX_ENTRIES):
        self.ttl = ttl or None
        self.backend = backend if backend is not None else local_backend(max_entries, self.ttl)
        self.namespace = uuid.uuid4().hex[:12]

        self._lock = threading.Lock()
        self._generation = 0
        self._closed = False
        self._invalidations = 0
        self._dropped = 0

    @property
    def generation(self):
        """Counter bumped by every invalidation; snapshot it before reading stores."""
        return self._generation

    @property
    def closed(self):
        return self._closed

    def make_key(self, key):
        # Opaque user ids may hold characters a backend rejects.
        digest = hashlib.sha256(repr(tuple(key)).encode('utf-8')).hexdigest()
        return f"rbac:decision:{self.namespace}:{digest}"

    def get(self, key):
        """Return the cached decision for ``key`` or None."""
        if self._closed:
            return None
        decision = self.backend.get(self.make_key(key), version=self._generation)
        logger.debug(
            "Decision cache %s", 'HIT' if decision is not None else 'MISS',
            extra={'key': key, 'generation': self._generation}
        )
        return decision

    def put(self, key, decision, generation):
        """
        Store a decision computed after observing ``generation``.

        Returns False when the entry was dropped because the cache was
        invalidated or shut down in the meantime.
        """
        with self._lock:
            current = not self._closed and generation == self._generation
            if not current:
                self._dropped += 1
        if not current:
            return False

        self.backend.set(self.make_key(key), decision, timeout=self.ttl, version=generation)
        return True

    def invalidate(self):
        """Bump the generation and drop every entry."""
        with self._lock:
            self._generation += 1
            self._invalidations += 1
            generation = self._generation
        self.backend.clear()
        logger.debug("Decision cache invalidated", extra={'generation': generation})

    def shutdown(self):
        """Release entries; afterwards lookups miss and stores are ignored."""
        with self._lock:
            self._closed = True
            self._generation += 1
        self.backend.clear()
        logger.info("Decision cache shut down")

    def stats(self):
        """Counters for diagnostics."""
        with self._lock:
            return {
                'invalidations': self._invalidations,
                'dropped': self._dropped,
                'size': len(self),
                'generation': self._generation,
                'ttl': self.ttl,
                'closed': self._closed,
            }

    def __len__(self):
        # Only in-memory backends expose their entry count.
        return len(getattr(self.backend, '_cache', ()))
