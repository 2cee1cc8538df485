"""Stampman models."""

from stampman.models.customer import Customer
from stampman.models.activity import ActivityEntry, ActivityReason

__all__ = [
    "Customer",
    "ActivityEntry",
    "ActivityReason",
]
