"""
Management command to compare stock levels with movement history.

Each medication's stock_level should equal the sum of its signed stock
movement deltas. Mismatches are reported, and corrected with --fix.

Usage:
    python manage.py check_stock_sync
    python manage.py check_stock_sync --fix
"""

from django.core.management.base import BaseCommand

from apps.inventory.services import reconcile_stock_levels


class Command(BaseCommand):
    help = 'Check medication stock levels against stock movement history'

    def add_arguments(self, parser):
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Overwrite mismatched stock levels with the movement total',
        )

    def handle(self, *args, **options):
        fix = options['fix']
        mismatches = reconcile_stock_levels(fix=fix)

        if not mismatches:
            self.stdout.write(self.style.SUCCESS('All stock levels match their movement history.'))
            return

        self.stdout.write(f'\nFound {len(mismatches)} mismatch(es):\n')
        for row in mismatches:
            self.stdout.write(
                f"  - {row['name']} | stock {row['stock_level']} | "
                f"movements {row['calculated_stock']} | difference {row['difference']:+d}"
            )

        if fix:
            self.stdout.write(self.style.SUCCESS(f'\nCorrected {len(mismatches)} stock level(s).'))
        else:
            self.stdout.write(self.style.WARNING('\nRun with --fix to correct them.'))
