"""
Stampman Gates - Validation rules.

G1: FreeItemInvariant - free_item_available == (stamps >= FREE_ITEM_THRESHOLD)
G2: EmployeeSession - Employee-only actions need a live employee session
"""

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stampman.services.session import EmployeeSession


class GateError(Exception):
    """Gate validation error."""

    def __init__(self, gate_name: str, message: str, details: dict | None = None):
        self.gate_name = gate_name
        self.message = message
        self.details = details or {}
        super().__init__(f"[{gate_name}] {message}")


@dataclass
class GateResult:
    """Result of a gate check."""

    passed: bool
    gate_name: str
    message: str = ""


# =============================================================================
# Gates
# =============================================================================


class Gates:
    """Stampman validation gates."""

    # =========================================================================
    # G1: Free Item Invariant
    # =========================================================================

    @classmethod
    def free_item_invariant(
        cls,
        stamps: int,
        free_item_available: bool,
        threshold: int | None = None,
    ) -> GateResult:
        """
        G1: The stored flag must agree with the stamp count.

        Args:
            stamps: Stamp count
            free_item_available: Stored flag
            threshold: Stamps per free item (defaults to FREE_ITEM_THRESHOLD)

        Raises:
            GateError: If stamps is negative or the flag disagrees
        """
        if threshold is None:
            from stampman.conf import stampman_settings

            threshold = stampman_settings.FREE_ITEM_THRESHOLD

        if stamps < 0:
            raise GateError(
                "G1_FreeItemInvariant",
                "Stamp count cannot be negative.",
                {"stamps": stamps},
            )

        expected = stamps >= threshold
        if free_item_available != expected:
            raise GateError(
                "G1_FreeItemInvariant",
                f"free_item_available={free_item_available} with {stamps} stamps.",
                {"stamps": stamps, "expected": expected, "threshold": threshold},
            )

        return GateResult(True, "G1_FreeItemInvariant")

    @classmethod
    def check_free_item_invariant(cls, *args, **kwargs) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.free_item_invariant(*args, **kwargs)
            return True
        except GateError:
            return False

    # =========================================================================
    # G2: Employee Session
    # =========================================================================

    @classmethod
    def employee_session(
        cls,
        session: "EmployeeSession | None",
        now: datetime | None = None,
    ) -> GateResult:
        """
        G2: Employee-only actions require an unexpired employee session.

        Args:
            session: EmployeeSession (None when not logged in)
            now: Reference time (defaults to timezone.now())

        Raises:
            GateError: If the session is missing or expired
        """
        if session is None:
            raise GateError(
                "G2_EmployeeSession",
                "Employee login required.",
            )

        if session.is_expired(now):
            raise GateError(
                "G2_EmployeeSession",
                "Employee session expired.",
                {"expired_at": session.expires_at.isoformat()},
            )

        return GateResult(True, "G2_EmployeeSession")

    @classmethod
    def check_employee_session(cls, *args, **kwargs) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.employee_session(*args, **kwargs)
            return True
        except GateError:
            return False
