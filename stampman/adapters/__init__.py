"""Stampman adapters."""

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from stampman.protocols.store import CustomerRecordStore


def get_record_store() -> CustomerRecordStore:
    """
    Instantiate the configured CustomerRecordStore.

    Fails fast with ImproperlyConfigured instead of degrading to empty
    results when no usable backend is configured.
    """
    from stampman.conf import stampman_settings

    backend_path = stampman_settings.RECORD_STORE_BACKEND
    if not backend_path:
        raise ImproperlyConfigured("STAMPMAN['RECORD_STORE_BACKEND'] is not configured")
    try:
        backend_class = import_string(backend_path)
    except ImportError as exc:
        raise ImproperlyConfigured(
            f"Cannot import record store backend {backend_path!r}: {exc}"
        ) from exc

    store = backend_class()
    if not isinstance(store, CustomerRecordStore):
        raise ImproperlyConfigured(
            f"{backend_path!r} does not implement CustomerRecordStore"
        )
    return store
