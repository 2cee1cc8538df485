"""Lookup protocol: resolve a phone suffix or name to a stamp card.

States:
    needs_registration    4-digit suffix matched nobody; caller registers
    needs_disambiguation  several candidates; caller picks one (or gives a name)
    auto_selected         a concrete Customer is bound (terminal)
    error                 the call failed; caller retries or abandons (terminal)

The customer-facing suffix lookup auto-selects a single match. Staff search
never auto-selects: staff confirm identity explicitly.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field

from django.core.cache import caches
from django.db import models
from django.utils.translation import gettext_lazy as _

from stampman.adapters import get_record_store
from stampman.conf import stampman_settings
from stampman.exceptions import StampmanError
from stampman.models import Customer
from stampman.protocols.store import CustomerRecordStore
from stampman.signals import customer_registered
from stampman.utils import (
    SUFFIX_LENGTH,
    digits_only,
    normalize_name,
    normalize_phone,
    phone_last4,
    same_name,
)

logger = logging.getLogger(__name__)


class LookupState(models.TextChoices):
    NEEDS_REGISTRATION = "needs_registration", _("Needs registration")
    NEEDS_DISAMBIGUATION = "needs_disambiguation", _("Needs disambiguation")
    AUTO_SELECTED = "auto_selected", _("Selected")
    ERROR = "error", _("Error")


@dataclass
class LookupResult:
    """Lookup state plus the bound customer or the candidate list."""

    state: str
    query: str = ""
    customer: Customer | None = None
    candidates: list[Customer] = field(default_factory=list)
    created: bool = False
    error: dict | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in (LookupState.AUTO_SELECTED, LookupState.ERROR)

    @classmethod
    def failed(cls, exc: StampmanError, query: str = "") -> "LookupResult":
        return cls(state=LookupState.ERROR, query=query, error=exc.as_dict())


class LookupService:
    """
    Service for customer identification.

    Uses @classmethod for extensibility (consistent with other services).
    Input validation happens before any store call.
    """

    # ======================================================================
    # Customer-facing
    # ======================================================================

    @classmethod
    def by_suffix(cls, digits: str) -> LookupResult:
        """
        Look up customers by the last 4 digits of their phone.

        Args:
            digits: 4 digits (non-digits are ignored)

        Returns:
            LookupResult: needs_registration (0), auto_selected (1) or
            needs_disambiguation (2+, newest first)

        Raises:
            StampmanError: INVALID_SUFFIX or STORAGE_ERROR
        """
        suffix = cls._clean_suffix(digits)
        matches = cls._store().find_by_phone_suffix(suffix)

        if not matches:
            return LookupResult(state=LookupState.NEEDS_REGISTRATION, query=suffix)
        if len(matches) == 1:
            return LookupResult(
                state=LookupState.AUTO_SELECTED,
                query=suffix,
                customer=matches[0],
                candidates=matches,
            )
        return LookupResult(
            state=LookupState.NEEDS_DISAMBIGUATION,
            query=suffix,
            candidates=matches,
        )

    @classmethod
    def verify_by_name(cls, digits: str, name: str) -> LookupResult:
        """
        Narrow a shared suffix down by (part of) the customer's name.

        A single case-insensitive substring match is selected. Among several,
        an exact name match wins when unique; otherwise the narrowed list is
        returned for a manual pick. No match returns the full suffix list.

        Raises:
            StampmanError: INVALID_SUFFIX, INVALID_NAME or STORAGE_ERROR
        """
        suffix = cls._clean_suffix(digits)
        wanted = cls._clean_name(name)
        matches = cls._store().find_by_phone_suffix(suffix)

        named = cls._filter_by_name(matches, wanted)
        if len(named) > 1:
            exact = [c for c in named if same_name(c.name, wanted)]
            if len(exact) == 1:
                named = exact

        if len(named) == 1:
            return LookupResult(
                state=LookupState.AUTO_SELECTED,
                query=suffix,
                customer=named[0],
                candidates=named,
            )
        if not matches:
            return LookupResult(state=LookupState.NEEDS_REGISTRATION, query=suffix)
        return LookupResult(
            state=LookupState.NEEDS_DISAMBIGUATION,
            query=suffix,
            candidates=named or matches,
        )

    @classmethod
    def choose(cls, customer_id: int, digits: str | None = None) -> LookupResult:
        """
        Bind the candidate picked from a disambiguation list.

        Args:
            customer_id: Picked customer
            digits: Suffix the list came from; the pick must belong to it

        Raises:
            StampmanError: CUSTOMER_NOT_FOUND, INVALID_SUFFIX or STORAGE_ERROR
        """
        suffix = cls._clean_suffix(digits) if digits is not None else ""
        customer = cls._store().get_by_id(customer_id)
        if customer is None or (suffix and customer.phone_last4 != suffix):
            raise StampmanError("CUSTOMER_NOT_FOUND", customer_id=customer_id)
        return LookupResult(
            state=LookupState.AUTO_SELECTED,
            query=suffix,
            customer=customer,
            candidates=[customer],
        )

    @classmethod
    def register(cls, name: str, phone: str) -> LookupResult:
        """
        Register a new stamp card.

        When the phone is already registered, the existing card is returned
        if the supplied name matches its owner (case-insensitive substring);
        otherwise the conflict is raised.

        Args:
            name: Display name
            phone: Phone number in any format

        Returns:
            LookupResult(auto_selected) with created=True for a new record

        Raises:
            StampmanError: INVALID_NAME, INVALID_PHONE, DUPLICATE_PHONE or STORAGE_ERROR
        """
        clean_name = cls._clean_name(name)
        phone_full = cls._clean_phone(phone)
        last4 = phone_last4(phone_full)
        store = cls._store()

        if store.find_by_phone_full(phone_full) is None:
            try:
                customer = store.insert_customer(clean_name, phone_full, last4)
            except StampmanError as exc:
                if exc.code != "DUPLICATE_PHONE":
                    raise
                # Lost the race against a concurrent registration
            else:
                logger.info("Registered customer %s (%s)", customer.pk, customer.phone_masked)
                customer_registered.send(sender=Customer, customer=customer)
                return LookupResult(
                    state=LookupState.AUTO_SELECTED,
                    query=last4,
                    customer=customer,
                    candidates=[customer],
                    created=True,
                )

        existing = cls._resolve_duplicate(store, clean_name, phone_full, last4)
        if existing is None:
            raise StampmanError(
                "DUPLICATE_PHONE",
                message="This phone number is already registered. Please enter the correct name.",
                phone_last4=last4,
            )
        logger.info("Registration resolved to existing customer %s", existing.pk)
        return LookupResult(
            state=LookupState.AUTO_SELECTED,
            query=last4,
            customer=existing,
            candidates=[existing],
        )

    # ======================================================================
    # Staff
    # ======================================================================

    @classmethod
    def staff_search(cls, query: str, limit: int | None = None) -> LookupResult:
        """
        Search by name, or by phone suffix when the query is 4 digits.

        Always returns needs_disambiguation, even for a single result.

        Raises:
            StampmanError: QUERY_TOO_SHORT or STORAGE_ERROR
        """
        text = (query or "").strip()
        if len(text) < stampman_settings.SEARCH_MIN_LENGTH:
            raise StampmanError(
                "QUERY_TOO_SHORT",
                min_length=stampman_settings.SEARCH_MIN_LENGTH,
            )
        if limit is None:
            limit = stampman_settings.SEARCH_LIMIT

        store = cls._store()
        found = {c.pk: c for c in store.find_by_name_substring(text, limit)}
        if len(text) == SUFFIX_LENGTH and text.isdigit():
            for customer in store.find_by_phone_suffix(text):
                found.setdefault(customer.pk, customer)

        candidates = sorted(found.values(), key=lambda c: (c.created_at, c.pk), reverse=True)
        return LookupResult(
            state=LookupState.NEEDS_DISAMBIGUATION,
            query=text,
            candidates=candidates[:limit],
        )

    # ======================================================================
    # Internals
    # ======================================================================

    @classmethod
    def _store(cls) -> CustomerRecordStore:
        """Internal: resolve the record store. Override for tests, caching, etc."""
        return get_record_store()

    @classmethod
    def _resolve_duplicate(
        cls,
        store: CustomerRecordStore,
        name: str,
        phone_full: str,
        last4: str,
    ) -> Customer | None:
        """The phone's owner, if the supplied name matches them."""
        for customer in cls._filter_by_name(store.find_by_phone_suffix(last4), name):
            if customer.phone_full == phone_full:
                return customer
        return None

    @staticmethod
    def _filter_by_name(customers: list[Customer], name: str) -> list[Customer]:
        needle = name.casefold()
        return [c for c in customers if needle in c.name.casefold()]

    @staticmethod
    def _clean_suffix(digits: str | None) -> str:
        suffix = digits_only(digits)
        if len(suffix) != SUFFIX_LENGTH:
            raise StampmanError("INVALID_SUFFIX", value=digits)
        return suffix

    @staticmethod
    def _clean_name(name: str | None) -> str:
        clean = normalize_name(name)
        if not clean or len(clean) > Customer._meta.get_field("name").max_length:
            raise StampmanError("INVALID_NAME")
        return clean

    @staticmethod
    def _clean_phone(phone: str | None) -> str:
        digits = normalize_phone(phone)
        if not (
            stampman_settings.PHONE_MIN_DIGITS
            <= len(digits)
            <= stampman_settings.PHONE_MAX_DIGITS
        ):
            raise StampmanError(
                "INVALID_PHONE",
                min_digits=stampman_settings.PHONE_MIN_DIGITS,
                max_digits=stampman_settings.PHONE_MAX_DIGITS,
            )
        return digits


class SearchSequencer:
    """
    "Latest request wins" for incremental searches.

    Clients number their searches per scope (e.g. the session key). A search
    whose number is lower than the newest one seen is stale on arrival; a
    search overtaken while running is stale on completion. Stale responses
    are discarded.

    begin() compares and stores the newest number while holding a per-scope
    lock taken with cache.add(), so an older search can never overwrite a
    newer one. A search that cannot get the lock within lock_wait seconds
    fails with STORAGE_ERROR (retryable).

    Usage:
        sequencer = SearchSequencer()
        if sequencer.begin(scope, seq):
            result = LookupService.staff_search(q)
            if sequencer.is_current(scope, seq):
                return result
    """

    key_prefix = "stampman:search-seq:"
    lock_timeout = 5
    lock_poll = 0.01

    def __init__(
        self,
        alias: str | None = None,
        timeout: int | None = None,
        lock_wait: float = 1.0,
    ):
        self.alias = alias or stampman_settings.CACHE_ALIAS
        self.timeout = timeout or stampman_settings.EMPLOYEE_SESSION_TTL
        self.lock_wait = lock_wait

    @property
    def cache(self):
        return caches[self.alias]

    def _key(self, scope: str) -> str:
        return f"{self.key_prefix}{scope}"

    @contextmanager
    def _locked(self, scope: str):
        lock_key = f"{self._key(scope)}:lock"
        deadline = time.monotonic() + self.lock_wait
        while not self.cache.add(lock_key, 1, self.lock_timeout):
            if time.monotonic() >= deadline:
                logger.warning("Search sequence lock busy for scope %s", scope)
                raise StampmanError("STORAGE_ERROR", scope=scope)
            time.sleep(self.lock_poll)
        try:
            yield
        finally:
            self.cache.delete(lock_key)

    def begin(self, scope: str, seq: int) -> bool:
        """Register a search. Returns False when a newer one was already seen."""
        with self._locked(scope):
            latest = self.cache.get(self._key(scope))
            if latest is not None and seq < latest:
                logger.debug("Stale search %s < %s for scope %s", seq, latest, scope)
                return False
            self.cache.set(self._key(scope), seq, self.timeout)
        return True

    def is_current(self, scope: str, seq: int) -> bool:
        """True when no newer search started since begin()."""
        latest = self.cache.get(self._key(scope))
        return latest is None or latest == seq
