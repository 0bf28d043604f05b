"""
Reprice bookings that were stored without a valid total.

Usage:
    python manage.py reconcile_bookings
    python manage.py reconcile_bookings --booking BK20250301101500A1B2C3
"""

from django.core.management.base import BaseCommand, CommandError

from shared.domain.exceptions import DomainError
from apps.bookings.bootstrap import build_reconciliation_service


class Command(BaseCommand):
    help = "Reconcile bookings with a missing, zero or negative total"

    def add_arguments(self, parser):
        parser.add_argument(
            '--booking',
            action='append',
            dest='bookings',
            default=[],
            help='Reconcile only this booking id (repeatable)',
        )

    def handle(self, *args, **options):
        service = build_reconciliation_service()

        if options['bookings']:
            for booking_id in options['bookings']:
                try:
                    result = service.reconcile(booking_id)
                except DomainError as e:
                    raise CommandError(f"{booking_id}: {e.message}")
                if result.changed:
                    self.stdout.write(self.style.SUCCESS(f"{booking_id}: {', '.join(result.changes)}"))
                else:
                    self.stdout.write(f"{booking_id}: already consistent")
            return

        report = service.reconcile_all()
        for entry in report['results']:
            if entry['status'] == 'fixed':
                self.stdout.write(self.style.SUCCESS(
                    f"{entry['booking_id']}: {entry['total_amount']} ({', '.join(entry['changes'])})"
                ))
            elif 'error' in entry:
                self.stdout.write(self.style.WARNING(f"{entry['booking_id']}: {entry['error']['message']}"))

        self.stdout.write(
            f"Checked {report['total']} bookings: {report['fixed']} fixed, {report['skipped']} skipped"
        )
