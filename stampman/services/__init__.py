"""Stampman services.

- stampman.services.ledger: StampLedger (stamp accrual and redemption)
- stampman.services.lookup: LookupService, SearchSequencer (identification)
- stampman.services.session: EmployeeSessionService (staff login)
- stampman.services.cache: RecentSelectionCache (kiosk convenience)
"""

from stampman.services import ledger
from stampman.services import lookup

__all__ = ["ledger", "lookup"]
