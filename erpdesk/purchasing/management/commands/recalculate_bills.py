from django.core.management.base import BaseCommand
from erpdesk.core.cache_signals import suspend_cache_signals, invalidate_purchase_caches
from erpdesk.core.utils import money
from erpdesk.purchasing import services
from erpdesk.purchasing.models import PurchaseBill


class Command(BaseCommand):
    help = 'Recomputes stored totals, paid/outstanding amounts and status of purchase bills'

    def add_arguments(self, parser):
        parser.add_argument(
            '--vendor',
            type=int,
            help='Only bills of this vendor id',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report differences without saving changes',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE: No changes will be saved."))

        bills = PurchaseBill.objects.prefetch_related('items').order_by('id')
        if options.get('vendor'):
            bills = bills.filter(vendor_id=options['vendor'])

        self.stdout.write(f"Checking {bills.count()} bills...")
        changed = 0
        vendor_ids = set()

        with suspend_cache_signals():
            for bill in bills:
                totals = services.compute_bill_totals(bill.items.all(), bill.discount)
                paid = money(bill.get_allocated_amount())
                outstanding = money(totals['total_amount'] - paid)
                expected = {
                    'total_amount': totals['total_amount'],
                    'paid_amount': paid,
                    'outstanding_amount': outstanding,
                    'status': services.bill_status(totals['total_amount'], paid, outstanding),
                }
                current = {key: getattr(bill, key) for key in expected}
                if current == expected:
                    continue

                changed += 1
                vendor_ids.add(bill.vendor_id)
                self.stdout.write(self.style.NOTICE(f"  - {bill}: {current} -> {expected}"))
                if not dry_run:
                    services.recalculate_bill(bill)

        for vendor_id in vendor_ids:
            invalidate_purchase_caches(vendor_id)

        self.stdout.write(self.style.SUCCESS(f"Done. {changed} bill(s) {'would change' if dry_run else 'updated'}."))
