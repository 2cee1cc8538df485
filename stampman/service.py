"""
Stampman public API.

CUSTOMER (kiosk, no login):
    StampService.lookup(digits)             - Suffix lookup
    StampService.verify(digits, name)       - Name disambiguation
    StampService.choose(customer_id, digits) - Manual pick
    StampService.register(name, phone)      - Registration
    StampService.card(customer_id)          - Current stamp card

EMPLOYEE (require an EmployeeSession):
    StampService.login(password)
    StampService.search(session, query)
    StampService.add_stamp(session, customer_id)
    StampService.redeem_free_item(session, customer_id)
    StampService.purchase_while_eligible(session, customer_id)
    StampService.history(session, customer_id)
"""

from stampman.gates import Gates
from stampman.models import ActivityEntry, Customer
from stampman.services.ledger import LedgerResult, StampLedger
from stampman.services.lookup import LookupResult, LookupService
from stampman.services.session import EmployeeSession, EmployeeSessionService


class StampService:
    """
    Stampman public API.

    Employee-only operations take the EmployeeSession explicitly and check
    it through Gates.employee_session (G2) before touching the store.
    """

    # ======================================================================
    # CUSTOMER API
    # ======================================================================

    @classmethod
    def lookup(cls, digits: str) -> LookupResult:
        return LookupService.by_suffix(digits)

    @classmethod
    def verify(cls, digits: str, name: str) -> LookupResult:
        return LookupService.verify_by_name(digits, name)

    @classmethod
    def choose(cls, customer_id: int, digits: str | None = None) -> LookupResult:
        return LookupService.choose(customer_id, digits)

    @classmethod
    def register(cls, name: str, phone: str) -> LookupResult:
        return LookupService.register(name, phone)

    @classmethod
    def card(cls, customer_id: int) -> Customer:
        return StampLedger.get_card(customer_id)

    # ======================================================================
    # EMPLOYEE API
    # ======================================================================

    @classmethod
    def login(cls, password: str, label: str = "employee") -> EmployeeSession:
        return EmployeeSessionService.login(password, label=label)

    @classmethod
    def search(cls, session: EmployeeSession | None, query: str) -> LookupResult:
        Gates.employee_session(session)
        return LookupService.staff_search(query)

    @classmethod
    def add_stamp(cls, session: EmployeeSession | None, customer_id: int) -> LedgerResult:
        Gates.employee_session(session)
        return StampLedger.add_stamp(customer_id, created_by=session.label)

    @classmethod
    def redeem_free_item(
        cls, session: EmployeeSession | None, customer_id: int
    ) -> LedgerResult:
        Gates.employee_session(session)
        return StampLedger.redeem_free_item(customer_id, created_by=session.label)

    @classmethod
    def purchase_while_eligible(
        cls, session: EmployeeSession | None, customer_id: int
    ) -> LedgerResult:
        Gates.employee_session(session)
        return StampLedger.purchase_while_eligible(customer_id, created_by=session.label)

    @classmethod
    def history(
        cls,
        session: EmployeeSession | None,
        customer_id: int,
        limit: int | None = None,
    ) -> list[ActivityEntry]:
        Gates.employee_session(session)
        return StampLedger.history(customer_id, limit=limit)
