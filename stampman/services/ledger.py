"""Stamp ledger: stamp accrual, free item redemption and card history.

StampLedger is the only writer of Customer.stamps and
Customer.free_item_available. Each mutation locks the customer row,
recomputes the flag and writes both fields in one update inside
transaction.atomic(). The activity log append happens after commit and is
best-effort: its failure is logged and reported in LedgerResult.warnings.
"""

import logging
from dataclasses import dataclass, field

from django.db import DatabaseError, transaction

from stampman.adapters import get_record_store
from stampman.conf import stampman_settings
from stampman.exceptions import StampmanError
from stampman.gates import Gates
from stampman.models import ActivityEntry, ActivityReason, Customer
from stampman.protocols.store import CustomerRecordStore
from stampman.signals import stamps_changed

logger = logging.getLogger(__name__)


def is_free_item_available(stamps: int, threshold: int) -> bool:
    return stamps >= threshold


def next_stamps(stamps: int, reason: str, threshold: int) -> int:
    """
    Stamp count after applying one transaction.

    Redemption and purchase-while-eligible are rejected below the
    threshold; the count is never modified in that case.

    Raises:
        StampmanError: LOYALTY_INSUFFICIENT_STAMPS / LOYALTY_FREE_ITEM_NOT_AVAILABLE
        ValueError: Unknown reason
    """
    if reason == ActivityReason.STAMP_ADDED:
        return stamps + 1

    if reason == ActivityReason.FREE_ITEM_REDEEMED:
        if stamps < threshold:
            raise StampmanError(
                "LOYALTY_INSUFFICIENT_STAMPS",
                stamps=stamps,
                required=threshold,
            )
        return max(0, stamps - threshold)

    if reason == ActivityReason.PURCHASE_WITH_FREE_AVAILABLE:
        if stamps < threshold:
            raise StampmanError(
                "LOYALTY_FREE_ITEM_NOT_AVAILABLE",
                stamps=stamps,
                required=threshold,
            )
        return stamps + 1

    raise ValueError(f"Unknown stamp transaction: {reason!r}")


@dataclass
class LedgerResult:
    """Outcome of one ledger transaction."""

    customer: Customer
    reason: str
    stamps_before: int
    warnings: list[str] = field(default_factory=list)

    @property
    def stamps(self) -> int:
        return self.customer.stamps

    @property
    def free_item_available(self) -> bool:
        return self.customer.free_item_available


class StampLedger:
    """
    Service for stamp card transactions.

    Uses @classmethod for extensibility (consistent with other services).
    """

    @classmethod
    def add_stamp(cls, customer_id: int, created_by: str = "") -> LedgerResult:
        """
        Add one stamp. No upper cap.

        Args:
            customer_id: Customer id
            created_by: Who recorded the stamp

        Returns:
            LedgerResult with the updated Customer

        Raises:
            StampmanError: CUSTOMER_NOT_FOUND or STORAGE_ERROR
        """
        return cls._apply(customer_id, ActivityReason.STAMP_ADDED, created_by)

    @classmethod
    def redeem_free_item(cls, customer_id: int, created_by: str = "") -> LedgerResult:
        """
        Exchange FREE_ITEM_THRESHOLD stamps for a free item.

        Raises:
            StampmanError: LOYALTY_INSUFFICIENT_STAMPS below the threshold
                (card untouched), CUSTOMER_NOT_FOUND or STORAGE_ERROR
        """
        return cls._apply(customer_id, ActivityReason.FREE_ITEM_REDEEMED, created_by)

    @classmethod
    def purchase_while_eligible(cls, customer_id: int, created_by: str = "") -> LedgerResult:
        """
        Paid purchase while a free item is available: one more stamp,
        the free item stays available.

        Raises:
            StampmanError: LOYALTY_FREE_ITEM_NOT_AVAILABLE below the threshold,
                CUSTOMER_NOT_FOUND or STORAGE_ERROR
        """
        return cls._apply(
            customer_id, ActivityReason.PURCHASE_WITH_FREE_AVAILABLE, created_by
        )

    @classmethod
    def get_card(cls, customer_id: int) -> Customer:
        """Fresh customer record. Raises StampmanError(CUSTOMER_NOT_FOUND)."""
        customer = cls._store().get_by_id(customer_id)
        if customer is None:
            raise StampmanError("CUSTOMER_NOT_FOUND", customer_id=customer_id)
        return customer

    @classmethod
    def history(cls, customer_id: int, limit: int | None = None) -> list[ActivityEntry]:
        """Activity log for a customer (most recent first)."""
        store = cls._store()
        if store.get_by_id(customer_id) is None:
            raise StampmanError("CUSTOMER_NOT_FOUND", customer_id=customer_id)
        if limit is None:
            limit = stampman_settings.ACTIVITY_HISTORY_LIMIT
        return store.list_activity(customer_id, limit)

    @classmethod
    def reconcile(cls, customer_id: int) -> Customer:
        """
        Recompute free_item_available from stamps.

        Leaves stamps untouched and writes no activity entry.
        """
        store = cls._store()
        threshold = stampman_settings.FREE_ITEM_THRESHOLD
        try:
            with transaction.atomic():
                customer = cls._get_for_update(store, customer_id)
                expected = is_free_item_available(customer.stamps, threshold)
                if customer.free_item_available != expected:
                    logger.warning(
                        "Reconciling customer %s: free_item_available %s -> %s (%d stamps)",
                        customer.pk,
                        customer.free_item_available,
                        expected,
                        customer.stamps,
                    )
                    customer = store.update_customer(customer.pk, customer.stamps, expected)
        except DatabaseError as exc:
            raise StampmanError("STORAGE_ERROR", customer_id=customer_id) from exc
        return customer

    # ======================================================================
    # Internals
    # ======================================================================

    @classmethod
    def _store(cls) -> CustomerRecordStore:
        """Internal: resolve the record store. Override for tests, caching, etc."""
        return get_record_store()

    @classmethod
    def _get_for_update(cls, store: CustomerRecordStore, customer_id: int) -> Customer:
        """
        Get customer with row-level lock for mutation.

        MUST be called inside transaction.atomic().
        Prevents lost-update race conditions on concurrent stamps.
        """
        customer = store.get_by_id(customer_id, for_update=True)
        if customer is None:
            raise StampmanError("CUSTOMER_NOT_FOUND", customer_id=customer_id)
        return customer

    @classmethod
    def _apply(cls, customer_id: int, reason: str, created_by: str) -> LedgerResult:
        store = cls._store()
        threshold = stampman_settings.FREE_ITEM_THRESHOLD

        try:
            with transaction.atomic():
                customer = cls._get_for_update(store, customer_id)
                stamps_before = customer.stamps

                stamps = next_stamps(stamps_before, reason, threshold)
                available = is_free_item_available(stamps, threshold)
                Gates.free_item_invariant(stamps, available, threshold)

                customer = store.update_customer(customer.pk, stamps, available)
        except DatabaseError as exc:
            logger.error("Ledger %s failed for customer %s: %s", reason, customer_id, exc)
            raise StampmanError("STORAGE_ERROR", customer_id=customer_id) from exc

        logger.info(
            "Customer %s: %s (%d -> %d stamps)",
            customer.pk,
            reason,
            stamps_before,
            customer.stamps,
        )

        result = LedgerResult(customer=customer, reason=reason, stamps_before=stamps_before)

        try:
            store.append_activity(customer.pk, reason, customer.stamps, created_by)
        except (StampmanError, DatabaseError) as exc:
            logger.warning(
                "Activity log append failed for customer %s (%s): %s",
                customer.pk,
                reason,
                exc,
            )
            result.warnings.append("Activity log entry could not be recorded.")

        stamps_changed.send(
            sender=Customer,
            customer=customer,
            reason=reason,
            stamps_before=stamps_before,
        )
        return result
