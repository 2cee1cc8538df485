"""ActivityEntry model: append-only log of stamp card transactions."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class ActivityReason(models.TextChoices):
    """Stamp card transaction types."""

    STAMP_ADDED = "stamp_added", _("Stamp added")
    FREE_ITEM_REDEEMED = "free_item_redeemed", _("Free item redeemed")
    PURCHASE_WITH_FREE_AVAILABLE = (
        "purchase_with_free_available",
        _("Purchase with free item available"),
    )


class ActivityEntry(models.Model):
    """
    Immutable record of one stamp card transaction.

    One entry per ledger mutation, written after the card update commits.
    The customer link is a weak back-reference: no database constraint,
    and the log never owns or cascades the customer.
    """

    customer = models.ForeignKey(
        "stampman.Customer",
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name="activity",
        verbose_name=_("customer"),
    )
    reason = models.CharField(
        _("reason"),
        max_length=40,
        choices=ActivityReason.choices,
    )
    stamps_after = models.PositiveIntegerField(
        _("stamps after"),
        help_text=_("Stamp count after this transaction"),
    )

    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)
    created_by = models.CharField(
        _("created by"),
        max_length=100,
        blank=True,
    )

    class Meta:
        verbose_name = _("activity entry")
        verbose_name_plural = _("activity entries")
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["customer", "-created_at"], name="stampman_act_cust_idx"),
        ]

    def __str__(self):
        return f"{self.get_reason_display()} -> {self.stamps_after}"
