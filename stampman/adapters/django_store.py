"""Django ORM CustomerRecordStore adapter."""

import logging

from django.db import DatabaseError, IntegrityError, transaction

from stampman.exceptions import StampmanError
from stampman.models import ActivityEntry, Customer

logger = logging.getLogger(__name__)


class DjangoRecordStore:
    """
    Adapter that implements CustomerRecordStore on the Django ORM.

    Configuration in settings.py (this is the default):
        STAMPMAN = {
            "RECORD_STORE_BACKEND": "stampman.adapters.django_store.DjangoRecordStore",
        }

    Every DatabaseError is re-raised as StampmanError("STORAGE_ERROR").
    """

    def find_by_phone_suffix(self, suffix: str) -> list[Customer]:
        try:
            return list(Customer.objects.filter(phone_last4=suffix).order_by("-created_at", "-id"))
        except DatabaseError as exc:
            raise self._storage_error("find_by_phone_suffix", exc)

    def find_by_name_substring(self, text: str, limit: int) -> list[Customer]:
        try:
            return list(
                Customer.objects.filter(name__icontains=text).order_by("-created_at", "-id")[:limit]
            )
        except DatabaseError as exc:
            raise self._storage_error("find_by_name_substring", exc)

    def find_by_phone_full(self, phone: str) -> Customer | None:
        try:
            return Customer.objects.filter(phone_full=phone).first()
        except DatabaseError as exc:
            raise self._storage_error("find_by_phone_full", exc)

    def get_by_id(self, customer_id: int, for_update: bool = False) -> Customer | None:
        qs = Customer.objects.all()
        if for_update:
            # MUST be called inside transaction.atomic()
            qs = qs.select_for_update()
        try:
            return qs.get(pk=customer_id)
        except (Customer.DoesNotExist, ValueError, TypeError):
            return None
        except DatabaseError as exc:
            raise self._storage_error("get_by_id", exc)

    def insert_customer(self, name: str, phone_full: str, phone_last4: str) -> Customer:
        try:
            with transaction.atomic():
                customer = Customer(name=name, phone_full=phone_full, phone_last4=phone_last4)
                customer.save(force_insert=True)
                return customer
        except IntegrityError:
            raise StampmanError("DUPLICATE_PHONE", phone_last4=phone_last4)
        except DatabaseError as exc:
            raise self._storage_error("insert_customer", exc)

    def update_customer(
        self,
        customer_id: int,
        stamps: int,
        free_item_available: bool,
    ) -> Customer:
        try:
            customer = Customer.objects.get(pk=customer_id)
            customer.stamps = stamps
            customer.free_item_available = free_item_available
            customer.save(update_fields=["stamps", "free_item_available", "updated_at"])
            return customer
        except Customer.DoesNotExist:
            raise StampmanError("CUSTOMER_NOT_FOUND", customer_id=customer_id)
        except DatabaseError as exc:
            raise self._storage_error("update_customer", exc)

    def append_activity(
        self,
        customer_id: int,
        reason: str,
        stamps_after: int,
        created_by: str = "",
    ) -> None:
        try:
            with transaction.atomic():
                ActivityEntry.objects.create(
                    customer_id=customer_id,
                    reason=reason,
                    stamps_after=stamps_after,
                    created_by=created_by,
                )
        except DatabaseError as exc:
            raise self._storage_error("append_activity", exc)

    def list_activity(self, customer_id: int, limit: int) -> list[ActivityEntry]:
        try:
            return list(
                ActivityEntry.objects.filter(customer_id=customer_id).order_by("-created_at", "-id")[:limit]
            )
        except DatabaseError as exc:
            raise self._storage_error("list_activity", exc)

    @staticmethod
    def _storage_error(operation: str, exc: Exception) -> StampmanError:
        logger.error("Record store %s failed: %s", operation, exc)
        return StampmanError("STORAGE_ERROR", operation=operation)
