"""
Management command to check min stock alerts.

Usage:
    python manage.py check_stock_alerts
    python manage.py check_stock_alerts --product 42
"""

from django.core.management.base import BaseCommand

from ledgerman.services.alerts import check_alerts


class Command(BaseCommand):
    """Check stock alerts command."""

    help = 'Verifica alertas de estoque mínimo'

    def add_arguments(self, parser):
        parser.add_argument(
            '--product',
            type=int,
            default=None,
            help='Verifica apenas este produto'
        )

    def handle(self, *args, **options):
        triggered = check_alerts(options['product'])

        for alert, quantity in triggered:
            self.stdout.write(
                self.style.WARNING(f'#{alert.product_id}: {quantity} < {alert.min_quantity}')
            )
        self.stdout.write(f'{len(triggered)} alerta(s) disparado(s)')
