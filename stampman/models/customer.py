"""Customer model: one stamp card per phone number.

Data architecture:
    Customer.phone_full
        Digit-only phone, globally unique. Registration happens exactly once
        per phone number.

    Customer.phone_last4
        Derived on every save. Not unique: several customers may share the
        same suffix, which the lookup protocol disambiguates.

    Customer.stamps / Customer.free_item_available
        The flag is stored redundantly so the store can filter on it, and
        must always equal ``stamps >= FREE_ITEM_THRESHOLD``. Only
        StampLedger writes these two fields.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from stampman.utils import normalize_name, normalize_phone, phone_last4


class Customer(models.Model):
    """
    Registered loyalty customer.

    stamps is a lifetime counter minus redeemed multiples of the threshold,
    so it may exceed the threshold (23 stamps = 2 free items + 3 toward
    the next one).
    """

    name = models.CharField(_("name"), max_length=100)
    phone_full = models.CharField(
        _("phone"),
        max_length=20,
        unique=True,
        help_text=_("Digits only (ex: 01099998888)"),
    )
    phone_last4 = models.CharField(
        _("last 4 digits"),
        max_length=4,
        db_index=True,
        editable=False,
    )

    # Stamp card
    stamps = models.PositiveIntegerField(_("stamps"), default=0)
    free_item_available = models.BooleanField(
        _("free item available"),
        default=False,
        db_index=True,
    )

    # Audit
    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        verbose_name = _("customer")
        verbose_name_plural = _("customers")
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["phone_last4", "-created_at"], name="stampman_cust_last4_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.phone_masked})"

    @property
    def phone_masked(self) -> str:
        """Masked phone for safe display."""
        return "***" + self.phone_last4 if self.phone_last4 else "***"

    @property
    def threshold(self) -> int:
        from stampman.conf import stampman_settings

        return stampman_settings.FREE_ITEM_THRESHOLD

    @property
    def free_items_earned(self) -> int:
        """Free items currently redeemable."""
        return self.stamps // self.threshold

    @property
    def stamps_toward_next(self) -> int:
        return self.stamps % self.threshold

    @property
    def stamps_remaining(self) -> int:
        """Stamps still needed for a free item (0 when one is available)."""
        return max(0, self.threshold - self.stamps)

    @property
    def stamps_progress_percent(self) -> int:
        """Stamp card completion percentage (0-100)."""
        return min(100, int(self.stamps / self.threshold * 100))

    def save(self, *args, **kwargs):
        self.name = normalize_name(self.name)
        self.phone_full = normalize_phone(self.phone_full)
        self.phone_last4 = phone_last4(self.phone_full)

        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "phone_full" in update_fields:
            kwargs["update_fields"] = set(update_fields) | {"phone_last4"}

        super().save(*args, **kwargs)
