"""
Management command to check balances against the movement ledger.

Usage:
    python manage.py check_stock_ledger
    python manage.py check_stock_ledger --product 42

Exits with an error when any balance differs from the signed sum of its
movements. Never rewrites balances.
"""

from django.core.management.base import BaseCommand, CommandError

from ledgerman import stock


class Command(BaseCommand):
    """Reconcile balances with the ledger."""

    help = 'Confere saldos contra o razão de movimentos'

    def add_arguments(self, parser):
        parser.add_argument(
            '--product',
            type=int,
            default=None,
            help='Confere apenas este produto'
        )

    def handle(self, *args, **options):
        mismatches = stock.reconcile(options['product'])

        if not mismatches:
            self.stdout.write(self.style.SUCCESS('Saldos consistentes com o razão'))
            return

        for m in mismatches:
            self.stdout.write(
                f"#{m['product_id']}: saldo={m['balance']} razão={m['ledger']} diferença={m['diff']}"
            )
        raise CommandError(f'{len(mismatches)} saldo(s) divergente(s)')
