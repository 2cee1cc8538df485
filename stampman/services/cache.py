"""Recent selection cache: remembers the last card a kiosk bound.

Convenience state only. A recalled id must be re-read from the store
before use (StampLedger.get_card); the cache is never trusted for stamps.
"""

from django.core.cache import caches

from stampman.conf import stampman_settings
from stampman.models import Customer


class RecentSelectionCache:
    """Per-scope (e.g. session key) cache of the last selected customer id."""

    key_prefix = "stampman:recent:"

    def __init__(self, alias: str | None = None, ttl: int | None = None):
        self.alias = alias or stampman_settings.CACHE_ALIAS
        self.ttl = ttl or stampman_settings.RECENT_SELECTION_TTL

    @property
    def cache(self):
        return caches[self.alias]

    def _key(self, scope: str) -> str:
        return f"{self.key_prefix}{scope}"

    def remember(self, scope: str, customer: Customer) -> None:
        self.cache.set(self._key(scope), customer.pk, self.ttl)

    def recall(self, scope: str) -> int | None:
        return self.cache.get(self._key(scope))

    def forget(self, scope: str) -> None:
        self.cache.delete(self._key(scope))
