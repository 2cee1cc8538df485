"""
Django Stampman - Loyalty stamp cards.

Usage:
    from stampman import StampService, StampLedger, LookupService
    from stampman.gates import Gates, GateError, GateResult

    result = LookupService.by_suffix("5678")
    if result.state == "auto_selected":
        card = result.customer

    session = StampService.login(password)
    StampService.add_stamp(session, card.pk)
    StampService.redeem_free_item(session, card.pk)
"""


def __getattr__(name):
    if name == "StampService":
        from stampman.service import StampService

        return StampService
    if name == "StampLedger":
        from stampman.services.ledger import StampLedger

        return StampLedger
    if name == "LookupService":
        from stampman.services.lookup import LookupService

        return LookupService
    if name == "Gates":
        from stampman.gates import Gates

        return Gates
    if name == "GateError":
        from stampman.gates import GateError

        return GateError
    if name == "GateResult":
        from stampman.gates import GateResult

        return GateResult
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "StampService",
    "StampLedger",
    "LookupService",
    "Gates",
    "GateError",
    "GateResult",
]
__version__ = "0.1.0"
