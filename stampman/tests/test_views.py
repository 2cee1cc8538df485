"""Tests for the kiosk and employee JSON endpoints."""

from datetime import timedelta
from unittest.mock import patch

import pytest
from django.urls import reverse
from django.utils import timezone

from stampman.adapters.django_store import DjangoRecordStore
from stampman.exceptions import StampmanError
from stampman.models import ActivityEntry, Customer
from stampman.services.session import EmployeeSession
from stampman.views import SESSION_KEY

from .conftest import EMPLOYEE_PASSWORD


pytestmark = pytest.mark.django_db


def post_json(client, name, data=None, **kwargs):
    return client.post(
        reverse(f"stampman:{name}", kwargs=kwargs or None),
        data or {},
        content_type="application/json",
    )


@pytest.fixture
def employee_client(client):
    response = post_json(client, "employee-login", {"password": EMPLOYEE_PASSWORD, "label": "counter-1"})
    assert response.status_code == 200
    return client


# ═══════════════════════════════════════════════════════════════════
# Kiosk
# ═══════════════════════════════════════════════════════════════════


class TestKioskLookup:
    """POST kiosk/lookup/ and kiosk/verify/."""

    def test_auto_selected(self, client, minsu):
        response = post_json(client, "kiosk-lookup", {"digits": "1234"})

        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "auto_selected"
        assert data["customer"]["id"] == minsu.pk
        assert data["customer"]["stamps"] == 4
        assert data["customer"]["phone_masked"] == "***1234"

    def test_full_phone_never_exposed(self, client, woobin, sora):
        response = post_json(client, "kiosk-lookup", {"digits": "5678"})

        assert response.json()["state"] == "needs_disambiguation"
        assert "01098765678" not in response.content.decode()
        assert "phone_full" not in response.json()["candidates"][0]

    def test_needs_registration(self, client, sora):
        response = post_json(client, "kiosk-lookup", {"digits": "0000"})
        assert response.json()["state"] == "needs_registration"

    def test_invalid_suffix(self, client):
        response = post_json(client, "kiosk-lookup", {"digits": "12"})

        assert response.status_code == 400
        data = response.json()
        assert data["state"] == "error"
        assert data["error"]["code"] == "INVALID_SUFFIX"

    def test_invalid_json(self, client):
        response = client.post(
            reverse("stampman:kiosk-lookup"),
            "not json",
            content_type="application/json",
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "BAD_REQUEST"

    def test_json_array_rejected(self, client):
        response = client.post(
            reverse("stampman:kiosk-lookup"),
            "[1, 2]",
            content_type="application/json",
        )
        assert response.status_code == 400

    def test_verify_by_name(self, client, woobin, sora):
        response = post_json(client, "kiosk-verify", {"digits": "5678", "name": "woo"})

        assert response.json()["customer"]["id"] == woobin.pk

    def test_storage_error_is_503(self, client):
        with patch.object(
            DjangoRecordStore,
            "find_by_phone_suffix",
            side_effect=StampmanError("STORAGE_ERROR"),
        ):
            response = post_json(client, "kiosk-lookup", {"digits": "5678"})

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "STORAGE_ERROR"

    def test_misconfigured_backend_is_500(self, client, settings):
        settings.STAMPMAN = {"RECORD_STORE_BACKEND": ""}

        response = post_json(client, "kiosk-lookup", {"digits": "5678"})

        assert response.status_code == 500
        assert response.json() == {"error": "Service not configured"}


class TestKioskChooseAndRegister:
    """POST kiosk/choose/ and kiosk/register/."""

    def test_choose(self, client, woobin, sora):
        response = post_json(client, "kiosk-choose", {"digits": "5678", "customer_id": woobin.pk})

        assert response.status_code == 200
        assert response.json()["customer"]["name"] == "Woo-bin Lee"

    def test_choose_from_other_suffix(self, client, minsu, sora):
        response = post_json(client, "kiosk-choose", {"digits": "5678", "customer_id": minsu.pk})
        assert response.status_code == 404

    def test_choose_bad_id(self, client):
        response = post_json(client, "kiosk-choose", {"digits": "5678", "customer_id": "abc"})
        assert response.status_code == 404

    def test_register_created(self, client):
        response = post_json(client, "kiosk-register", {"name": "Hana", "phone": "010-9999-8888"})

        assert response.status_code == 201
        data = response.json()
        assert data["created"] is True
        assert data["customer"]["stamps"] == 0
        assert data["customer"]["phone_last4"] == "8888"

    def test_register_again_same_name(self, client):
        post_json(client, "kiosk-register", {"name": "Hana", "phone": "01099998888"})
        response = post_json(client, "kiosk-register", {"name": "hana", "phone": "01099998888"})

        assert response.status_code == 200
        assert response.json()["created"] is False
        assert Customer.objects.count() == 1

    def test_register_conflict(self, client):
        post_json(client, "kiosk-register", {"name": "Hana", "phone": "01099998888"})
        response = post_json(client, "kiosk-register", {"name": "Jisoo", "phone": "01099998888"})

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "DUPLICATE_PHONE"

    def test_register_invalid_phone(self, client):
        response = post_json(client, "kiosk-register", {"name": "Hana"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_PHONE"


class TestKioskCurrent:
    """GET/DELETE kiosk/current/."""

    def test_nothing_selected(self, client):
        response = client.get(reverse("stampman:kiosk-current"))
        assert response.json() == {"customer": None}

    def test_remembers_selection(self, client, minsu):
        post_json(client, "kiosk-lookup", {"digits": "1234"})
        Customer.objects.filter(pk=minsu.pk).update(stamps=5)

        response = client.get(reverse("stampman:kiosk-current"))

        assert response.json()["customer"]["id"] == minsu.pk
        assert response.json()["customer"]["stamps"] == 5

    def test_forget(self, client, minsu):
        post_json(client, "kiosk-lookup", {"digits": "1234"})

        client.delete(reverse("stampman:kiosk-current"))
        response = client.get(reverse("stampman:kiosk-current"))

        assert response.json() == {"customer": None}

    def test_deleted_customer_forgotten(self, client, minsu):
        post_json(client, "kiosk-lookup", {"digits": "1234"})
        Customer.objects.filter(pk=minsu.pk).delete()

        response = client.get(reverse("stampman:kiosk-current"))

        assert response.json() == {"customer": None}


# ═══════════════════════════════════════════════════════════════════
# Employee
# ═══════════════════════════════════════════════════════════════════


class TestEmployeeAuth:
    """Login, logout and the session gate over HTTP."""

    def test_wrong_password(self, client):
        response = post_json(client, "employee-login", {"password": "admin"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "EMPLOYEE_AUTH_FAILED"
        assert SESSION_KEY not in client.session

    def test_login_stores_session(self, employee_client):
        stored = EmployeeSession.from_dict(employee_client.session[SESSION_KEY])
        assert stored.label == "counter-1"

    def test_search_requires_login(self, client, sora):
        response = client.get(reverse("stampman:employee-search"), {"q": "sora"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "G2_EmployeeSession"

    def test_stale_seq_still_requires_login(self, client, sora):
        url = reverse("stampman:employee-search")

        response = client.get(url, {"q": "sora", "seq": 1})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "G2_EmployeeSession"

    @pytest.mark.parametrize("label", ["x" * 101, 42, ["counter"]])
    def test_invalid_label_rejected(self, client, label):
        response = post_json(client, "employee-login", {"password": EMPLOYEE_PASSWORD, "label": label})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_LABEL"
        assert SESSION_KEY not in client.session

    def test_blank_label_defaults(self, client):
        post_json(client, "employee-login", {"password": EMPLOYEE_PASSWORD, "label": "  "})

        assert client.session[SESSION_KEY]["label"] == "employee"

    def test_logout(self, employee_client, sora):
        post_json(employee_client, "employee-logout")

        response = post_json(employee_client, "employee-stamp", customer_id=sora.pk)

        assert response.status_code == 401
        sora.refresh_from_db()
        assert sora.stamps == 7

    def test_expired_session(self, client, sora):
        past = timezone.now() - timedelta(hours=1)
        session = client.session
        session[SESSION_KEY] = EmployeeSession("counter-1", past - timedelta(hours=8), past).as_dict()
        session.save()

        response = post_json(client, "employee-stamp", customer_id=sora.pk)

        assert response.status_code == 401
        assert "expired" in response.json()["error"]["message"]
        assert SESSION_KEY not in client.session


class TestEmployeeSearch:
    """GET employee/search/."""

    def test_search(self, employee_client, woobin, minsu, sora):
        response = employee_client.get(reverse("stampman:employee-search"), {"q": "5678"})

        data = response.json()
        assert data["state"] == "needs_disambiguation"
        assert [c["id"] for c in data["candidates"]] == [sora.pk, woobin.pk]

    def test_query_too_short(self, employee_client):
        response = employee_client.get(reverse("stampman:employee-search"), {"q": "s"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "QUERY_TOO_SHORT"

    def test_stale_search_discarded(self, employee_client, sora):
        url = reverse("stampman:employee-search")

        newer = employee_client.get(url, {"q": "sora", "seq": 2})
        older = employee_client.get(url, {"q": "so", "seq": 1})

        assert newer.json()["stale"] is False
        assert newer.json()["candidates"][0]["id"] == sora.pk
        assert older.json() == {
            "state": "needs_disambiguation",
            "stale": True,
            "seq": 1,
            "candidates": [],
        }

    def test_bad_seq(self, employee_client):
        response = employee_client.get(reverse("stampman:employee-search"), {"q": "sora", "seq": "x"})
        assert response.status_code == 400


class TestEmployeeTransactions:
    """Customer detail and ledger transactions."""

    def test_customer_detail(self, employee_client, sora):
        post_json(employee_client, "employee-stamp", customer_id=sora.pk)

        response = employee_client.get(
            reverse("stampman:employee-customer", kwargs={"customer_id": sora.pk})
        )

        data = response.json()
        assert data["customer"]["stamps"] == 8
        assert data["activity"][0]["reason"] == "stamp_added"
        assert data["activity"][0]["created_by"] == "counter-1"

    def test_unknown_customer(self, employee_client):
        response = employee_client.get(
            reverse("stampman:employee-customer", kwargs={"customer_id": 999999})
        )
        assert response.status_code == 404

    def test_stamp_to_free_item(self, employee_client, make_customer):
        cust = make_customer("Nine", "01000000009", stamps=9)

        response = post_json(employee_client, "employee-stamp", customer_id=cust.pk)

        data = response.json()
        assert data["reason"] == "stamp_added"
        assert data["stamps_before"] == 9
        assert data["customer"]["stamps"] == 10
        assert data["customer"]["free_item_available"] is True
        assert data["warnings"] == []

    def test_redeem(self, employee_client, make_customer):
        cust = make_customer("Regular", "01000000023", stamps=23)

        response = post_json(employee_client, "employee-redeem", customer_id=cust.pk)

        assert response.json()["customer"]["stamps"] == 13

    def test_redeem_insufficient(self, employee_client, sora):
        response = post_json(employee_client, "employee-redeem", customer_id=sora.pk)

        assert response.status_code == 409
        error = response.json()["error"]
        assert error["code"] == "LOYALTY_INSUFFICIENT_STAMPS"
        assert error["data"] == {"stamps": 7, "required": 10}
        assert not ActivityEntry.objects.exists()

    def test_purchase_while_eligible(self, employee_client, make_customer):
        cust = make_customer("Ten", "01000000010", stamps=10)

        response = post_json(employee_client, "employee-purchase", customer_id=cust.pk)

        data = response.json()
        assert data["reason"] == "purchase_with_free_available"
        assert data["customer"]["stamps"] == 11
