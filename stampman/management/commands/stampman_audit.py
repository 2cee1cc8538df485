"""Management command to audit the free item flag against stamp counts."""

from django.core.management.base import BaseCommand
from django.db.models import Q

from stampman.conf import stampman_settings
from stampman.models import Customer
from stampman.services.ledger import StampLedger


class Command(BaseCommand):
    help = "List customers whose free_item_available disagrees with their stamps"

    def add_arguments(self, parser):
        parser.add_argument(
            "--fix",
            action="store_true",
            help="Recompute the flag for every mismatched customer",
        )

    def handle(self, *args, **options):
        threshold = stampman_settings.FREE_ITEM_THRESHOLD
        mismatched = Customer.objects.filter(
            Q(stamps__gte=threshold, free_item_available=False)
            | Q(stamps__lt=threshold, free_item_available=True)
        ).order_by("pk")

        count = 0
        for customer in mismatched:
            count += 1
            self.stdout.write(
                f"{customer.pk}: {customer} stamps={customer.stamps} "
                f"free_item_available={customer.free_item_available}"
            )
            if options["fix"]:
                StampLedger.reconcile(customer.pk)

        if not count:
            self.stdout.write(self.style.SUCCESS("All stamp cards are consistent."))
        elif options["fix"]:
            self.stdout.write(self.style.SUCCESS(f"Fixed {count} stamp card(s)."))
        else:
            self.stdout.write(self.style.WARNING(f"Found {count} inconsistent stamp card(s)."))
