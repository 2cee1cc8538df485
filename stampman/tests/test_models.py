"""Tests for Stampman models."""

import pytest
from django.db import IntegrityError, transaction

from stampman.models import ActivityEntry, ActivityReason, Customer


pytestmark = pytest.mark.django_db


class TestCustomer:
    """Tests for Customer model."""

    def test_phone_normalized_on_save(self, db):
        """Phone is stored digits-only and the suffix is derived."""
        cust = Customer.objects.create(name="  Sora   Kim ", phone_full="010-9876-5678")

        assert cust.phone_full == "01098765678"
        assert cust.phone_last4 == "5678"
        assert cust.name == "Sora Kim"

    def test_defaults(self, db):
        cust = Customer.objects.create(name="Hana", phone_full="01099998888")

        assert cust.stamps == 0
        assert cust.free_item_available is False
        assert cust.created_at is not None
        assert cust.updated_at is not None

    def test_phone_unique(self, woobin):
        """Same normalized phone cannot be registered twice."""
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Customer.objects.create(name="Other", phone_full="01012345678")

    def test_last4_not_unique(self, woobin, sora):
        assert woobin.phone_last4 == sora.phone_last4 == "5678"

    def test_str_masks_phone(self, sora):
        assert str(sora) == "Sora Kim (***5678)"
        assert "01098765678" not in str(sora)

    def test_ordering_newest_first(self, woobin, minsu, sora):
        assert list(Customer.objects.all()) == [sora, minsu, woobin]

    def test_progress_properties_below_threshold(self, sora):
        """7 stamps: 3 more needed, no free item yet."""
        assert sora.free_items_earned == 0
        assert sora.stamps_toward_next == 7
        assert sora.stamps_remaining == 3
        assert sora.stamps_progress_percent == 70

    def test_progress_properties_multiple_free_items(self, make_customer):
        """23 stamps = 2 free items earned, 3 toward the next."""
        cust = make_customer("Regular", "01055554444", stamps=23)

        assert cust.free_items_earned == 2
        assert cust.stamps_toward_next == 3
        assert cust.stamps_remaining == 0
        assert cust.stamps_progress_percent == 100


class TestActivityEntry:
    """Tests for ActivityEntry model."""

    def test_str(self, sora):
        entry = ActivityEntry.objects.create(
            customer=sora,
            reason=ActivityReason.STAMP_ADDED,
            stamps_after=8,
        )
        assert str(entry) == "Stamp added -> 8"

    def test_ordering_newest_first(self, sora):
        first = ActivityEntry.objects.create(
            customer=sora, reason=ActivityReason.STAMP_ADDED, stamps_after=8
        )
        second = ActivityEntry.objects.create(
            customer=sora, reason=ActivityReason.STAMP_ADDED, stamps_after=9
        )
        assert list(sora.activity.all()) == [second, first]
