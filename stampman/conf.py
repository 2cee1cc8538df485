"""
Stampman configuration.

Usage in settings.py:
    STAMPMAN = {
        "FREE_ITEM_THRESHOLD": 10,
        "EMPLOYEE_PASSWORD": os.environ["STAMPMAN_EMPLOYEE_PASSWORD"],
    }
"""

from dataclasses import dataclass, fields
from typing import Any

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured


@dataclass
class StampmanSettings:
    """Stampman configuration settings."""

    # Stamps needed for (and consumed by) one free item
    FREE_ITEM_THRESHOLD: int = 10

    # Staff search
    SEARCH_MIN_LENGTH: int = 2
    SEARCH_LIMIT: int = 10

    # Registration phone bounds (digits only, E.164 max is 15)
    PHONE_MIN_DIGITS: int = 7
    PHONE_MAX_DIGITS: int = 15

    ACTIVITY_HISTORY_LIMIT: int = 50

    # Customer record store (dotted path to a CustomerRecordStore class)
    RECORD_STORE_BACKEND: str = "stampman.adapters.django_store.DjangoRecordStore"

    # Employee panel
    EMPLOYEE_PASSWORD: str = ""
    EMPLOYEE_SESSION_TTL: int = 8 * 60 * 60

    # Kiosk convenience cache
    RECENT_SELECTION_TTL: int = 30 * 60
    CACHE_ALIAS: str = "default"

    def __post_init__(self):
        for name in (
            "FREE_ITEM_THRESHOLD",
            "SEARCH_MIN_LENGTH",
            "SEARCH_LIMIT",
            "PHONE_MIN_DIGITS",
            "ACTIVITY_HISTORY_LIMIT",
            "EMPLOYEE_SESSION_TTL",
            "RECENT_SELECTION_TTL",
        ):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise ImproperlyConfigured(
                    f"STAMPMAN['{name}'] must be a positive integer, got {value!r}"
                )
        if self.PHONE_MAX_DIGITS < self.PHONE_MIN_DIGITS:
            raise ImproperlyConfigured(
                "STAMPMAN['PHONE_MAX_DIGITS'] must be >= PHONE_MIN_DIGITS"
            )


def get_stampman_settings() -> StampmanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "STAMPMAN", {})
    known = {f.name for f in fields(StampmanSettings)}
    unknown = set(user_settings) - known
    if unknown:
        raise ImproperlyConfigured(
            f"Unknown STAMPMAN settings: {', '.join(sorted(unknown))}"
        )
    return StampmanSettings(**user_settings)


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_stampman_settings(), name)


stampman_settings = _LazySettings()
