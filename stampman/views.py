"""
Stampman JSON endpoints for the kiosk and the employee panel.

Kiosk (no login):
    POST kiosk/lookup/    {"digits": "5678"}
    POST kiosk/verify/    {"digits": "5678", "name": "Sora"}
    POST kiosk/choose/    {"digits": "5678", "customer_id": 2}
    POST kiosk/register/  {"name": "Sora Kim", "phone": "010-9876-5678"}
    GET  kiosk/current/

Employee (shared password session):
    POST employee/login/  {"password": "..."}
    POST employee/logout/
    GET  employee/search/?q=sora&seq=3
    GET  employee/customers/<id>/
    POST employee/customers/<id>/stamp/ | redeem/ | purchase/

Errors are returned as {"state": "error", "error": {code, message, ...}}.
"""

from __future__ import annotations

import json
import logging

from django.core.exceptions import BadRequest, ImproperlyConfigured
from django.http import JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from stampman.exceptions import StampmanError
from stampman.gates import GateError, Gates
from stampman.service import StampService
from stampman.services.cache import RecentSelectionCache
from stampman.services.lookup import LookupResult, LookupState, SearchSequencer
from stampman.services.session import EmployeeSession

logger = logging.getLogger("stampman.views")

SESSION_KEY = "stampman_employee"

_STATUS_BY_CATEGORY = {
    "validation": 400,
    "auth": 401,
    "not_found": 404,
    "conflict": 409,
    "rule": 409,
    "storage": 503,
}


# =============================================================================
# Payloads
# =============================================================================


def customer_payload(customer) -> dict:
    """Customer card as exposed over HTTP. The full phone is never included."""
    return {
        "id": customer.pk,
        "name": customer.name,
        "phone_last4": customer.phone_last4,
        "phone_masked": customer.phone_masked,
        "stamps": customer.stamps,
        "free_item_available": customer.free_item_available,
        "free_items_earned": customer.free_items_earned,
        "stamps_toward_next": customer.stamps_toward_next,
        "stamps_remaining": customer.stamps_remaining,
        "created_at": customer.created_at.isoformat() if customer.created_at else None,
        "updated_at": customer.updated_at.isoformat() if customer.updated_at else None,
    }


def lookup_payload(result: LookupResult) -> dict:
    return {
        "state": str(result.state),
        "query": result.query,
        "created": result.created,
        "customer": customer_payload(result.customer) if result.customer else None,
        "candidates": [customer_payload(c) for c in result.candidates],
        "error": result.error,
    }


def ledger_payload(result) -> dict:
    return {
        "reason": str(result.reason),
        "stamps_before": result.stamps_before,
        "customer": customer_payload(result.customer),
        "warnings": result.warnings,
    }


def activity_payload(entry) -> dict:
    return {
        "id": entry.pk,
        "reason": entry.reason,
        "reason_display": str(entry.get_reason_display()),
        "stamps_after": entry.stamps_after,
        "created_by": entry.created_by,
        "created_at": entry.created_at.isoformat(),
    }


# =============================================================================
# Base
# =============================================================================


@method_decorator(csrf_exempt, name="dispatch")
class JsonView(View):
    """Shared JSON parsing and error translation."""

    def dispatch(self, request, *args, **kwargs):
        try:
            return super().dispatch(request, *args, **kwargs)
        except StampmanError as exc:
            status = _STATUS_BY_CATEGORY.get(exc.category, 400)
            if status >= 500:
                logger.warning("%s %s failed: %s", request.method, request.path, exc)
            return JsonResponse(lookup_payload(LookupResult.failed(exc)), status=status)
        except GateError as exc:
            return JsonResponse(
                {
                    "state": str(LookupState.ERROR),
                    "error": {"code": exc.gate_name, "message": exc.message},
                },
                status=401,
            )
        except BadRequest as exc:
            return JsonResponse(
                {
                    "state": str(LookupState.ERROR),
                    "error": {"code": "BAD_REQUEST", "message": str(exc)},
                },
                status=400,
            )
        except ImproperlyConfigured:
            logger.exception("Stampman is not configured correctly")
            return JsonResponse({"error": "Service not configured"}, status=500)

    def json_body(self, request) -> dict:
        try:
            data = json.loads(request.body or b"{}")
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise BadRequest("Invalid JSON")
        if not isinstance(data, dict):
            raise BadRequest("Expected a JSON object")
        return data

    @staticmethod
    def session_scope(request) -> str:
        if not request.session.session_key:
            request.session.create()
        return request.session.session_key


def _customer_id(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise StampmanError("CUSTOMER_NOT_FOUND", customer_id=value)


# =============================================================================
# Kiosk
# =============================================================================


class KioskView(JsonView):
    """Kiosk endpoints remember the bound card per browser session."""

    recent = None

    def get_recent(self) -> RecentSelectionCache:
        return self.recent or RecentSelectionCache()

    def bound(self, request, result: LookupResult) -> JsonResponse:
        if result.state == LookupState.AUTO_SELECTED and result.customer is not None:
            self.get_recent().remember(self.session_scope(request), result.customer)
        return JsonResponse(lookup_payload(result), status=201 if result.created else 200)


class KioskLookupView(KioskView):
    def post(self, request):
        data = self.json_body(request)
        return self.bound(request, StampService.lookup(data.get("digits", "")))


class KioskVerifyView(KioskView):
    def post(self, request):
        data = self.json_body(request)
        return self.bound(
            request,
            StampService.verify(data.get("digits", ""), data.get("name", "")),
        )


class KioskChooseView(KioskView):
    def post(self, request):
        data = self.json_body(request)
        result = StampService.choose(
            _customer_id(data.get("customer_id")),
            data.get("digits", ""),
        )
        return self.bound(request, result)


class KioskRegisterView(KioskView):
    def post(self, request):
        data = self.json_body(request)
        result = StampService.register(data.get("name", ""), data.get("phone", ""))
        return self.bound(request, result)


class KioskCurrentView(KioskView):
    def get(self, request):
        scope = self.session_scope(request)
        recent = self.get_recent()
        customer_id = recent.recall(scope)
        if customer_id is None:
            return JsonResponse({"customer": None})
        try:
            customer = StampService.card(customer_id)
        except StampmanError as exc:
            if exc.code != "CUSTOMER_NOT_FOUND":
                raise
            recent.forget(scope)
            return JsonResponse({"customer": None})
        return JsonResponse({"customer": customer_payload(customer)})

    def delete(self, request):
        self.get_recent().forget(self.session_scope(request))
        return JsonResponse({"customer": None})


# =============================================================================
# Employee
# =============================================================================


class EmployeeLoginView(JsonView):
    def post(self, request):
        data = self.json_body(request)
        session = StampService.login(data.get("password", ""), label=data.get("label"))
        request.session.cycle_key()
        request.session[SESSION_KEY] = session.as_dict()
        return JsonResponse({"status": "ok", "expires_at": session.expires_at.isoformat()})


class EmployeeLogoutView(JsonView):
    def post(self, request):
        request.session.pop(SESSION_KEY, None)
        return JsonResponse({"status": "ok"})


class EmployeeView(JsonView):
    """Base for employee-only endpoints; the gate runs in StampService."""

    def employee_session(self, request) -> EmployeeSession | None:
        session = EmployeeSession.from_dict(request.session.get(SESSION_KEY))
        if session is not None and session.is_expired():
            request.session.pop(SESSION_KEY, None)
        return session


class EmployeeSearchView(EmployeeView):
    sequencer_class = SearchSequencer

    def get(self, request):
        session = self.employee_session(request)
        Gates.employee_session(session)
        query = request.GET.get("q", "")
        seq = request.GET.get("seq")

        if seq is None:
            return JsonResponse(lookup_payload(StampService.search(session, query)))

        try:
            seq = int(seq)
        except ValueError:
            raise BadRequest("seq must be an integer")

        scope = self.session_scope(request)
        sequencer = self.sequencer_class()
        stale = {"state": str(LookupState.NEEDS_DISAMBIGUATION), "stale": True, "seq": seq, "candidates": []}
        if not sequencer.begin(scope, seq):
            return JsonResponse(stale)

        result = StampService.search(session, query)
        if not sequencer.is_current(scope, seq):
            return JsonResponse(stale)

        payload = lookup_payload(result)
        payload.update({"stale": False, "seq": seq})
        return JsonResponse(payload)


class EmployeeCustomerView(EmployeeView):
    def get(self, request, customer_id):
        session = self.employee_session(request)
        history = StampService.history(session, customer_id)
        customer = StampService.card(customer_id)
        return JsonResponse(
            {
                "customer": customer_payload(customer),
                "activity": [activity_payload(e) for e in history],
            }
        )


class EmployeeTransactionView(EmployeeView):
    """POST one ledger transaction; `action` is set in urls.py."""

    action = None

    _actions = {
        "stamp": StampService.add_stamp,
        "redeem": StampService.redeem_free_item,
        "purchase": StampService.purchase_while_eligible,
    }

    def post(self, request, customer_id):
        session = self.employee_session(request)
        operation = self._actions[self.action]
        return JsonResponse(ledger_payload(operation(session, customer_id)))
