"""
Stampman signals: public event API.

Emitted signals:
- customer_registered: Emitted by LookupService.register() for new records
- stamps_changed: Emitted by StampLedger after every committed card mutation
"""

from django.dispatch import Signal

customer_registered = Signal()  # sender=Customer, customer
stamps_changed = Signal()  # sender=Customer, customer, reason, stamps_before
