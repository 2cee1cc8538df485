"""Employee session: shared-password login for the staff panel.

The session is an explicit value passed to every employee-only operation
(see StampService) and checked by Gates.employee_session (G2). It is stored
in the Django session by the HTTP layer via as_dict()/from_dict().
"""

import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from stampman.conf import stampman_settings
from stampman.exceptions import StampmanError
from stampman.models import ActivityEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmployeeSession:
    """Authenticated employee panel session."""

    label: str
    started_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or timezone.now()) >= self.expires_at

    def as_dict(self) -> dict:
        return {
            "label": self.label,
            "started_at": self.started_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "EmployeeSession | None":
        """Rebuild from as_dict() output. Returns None for missing/corrupt data."""
        if not data:
            return None
        try:
            started_at = parse_datetime(data["started_at"])
            expires_at = parse_datetime(data["expires_at"])
            label = str(data["label"])
        except (KeyError, TypeError, ValueError):
            return None
        if started_at is None or expires_at is None:
            return None
        return cls(label=label, started_at=started_at, expires_at=expires_at)


class EmployeeSessionService:
    """
    Service for employee login.

    Uses @classmethod for extensibility (consistent with other services).
    """

    @classmethod
    def login(
        cls,
        password: str,
        label: str = "employee",
        now: datetime | None = None,
    ) -> EmployeeSession:
        """
        Check the shared employee password and open a session.

        Args:
            password: Password typed by the employee
            label: Recorded as created_by on stamp transactions
            now: Session start (defaults to timezone.now())

        Returns:
            EmployeeSession valid for EMPLOYEE_SESSION_TTL seconds

        Raises:
            ImproperlyConfigured: If EMPLOYEE_PASSWORD is empty
            StampmanError: INVALID_LABEL, or EMPLOYEE_AUTH_FAILED on a wrong password
        """
        expected = stampman_settings.EMPLOYEE_PASSWORD
        if not expected:
            raise ImproperlyConfigured("STAMPMAN['EMPLOYEE_PASSWORD'] is not configured")

        label = cls._clean_label(label)

        if not isinstance(password, str) or not hmac.compare_digest(
            password.encode(), expected.encode()
        ):
            logger.warning("Employee login rejected (label=%s)", label)
            raise StampmanError("EMPLOYEE_AUTH_FAILED")

        started_at = now or timezone.now()
        return EmployeeSession(
            label=label,
            started_at=started_at,
            expires_at=started_at + timedelta(seconds=stampman_settings.EMPLOYEE_SESSION_TTL),
        )

    @staticmethod
    def _clean_label(label) -> str:
        """The label ends up in ActivityEntry.created_by, so it must fit there."""
        if label is None:
            return "employee"
        if not isinstance(label, str):
            raise StampmanError("INVALID_LABEL")
        clean = label.strip() or "employee"
        if len(clean) > ActivityEntry._meta.get_field("created_by").max_length:
            raise StampmanError(
                "INVALID_LABEL",
                max_length=ActivityEntry._meta.get_field("created_by").max_length,
            )
        return clean
