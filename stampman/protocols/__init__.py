"""Stampman protocols."""

from stampman.protocols.store import CustomerRecordStore

__all__ = [
    "CustomerRecordStore",
]
