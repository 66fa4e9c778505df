"""
Management command to release expired reservations.

Usage:
    python manage.py release_expired_reservations
    python manage.py release_expired_reservations --dry-run
    python manage.py release_expired_reservations --loop --interval 30
"""

from django.core.management.base import BaseCommand

from stockpool.services.sweeper import ExpirySweeper


class Command(BaseCommand):
    """Release expired reservations command."""

    help = 'Releases reservations past their expiry time'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show how many reservations would be released without releasing them',
        )
        parser.add_argument(
            '--loop',
            action='store_true',
            help='Keep sweeping until interrupted',
        )
        parser.add_argument(
            '--interval',
            type=float,
            default=None,
            help='Seconds between sweeps in --loop mode (default: SWEEP_INTERVAL_SECONDS)',
        )
        parser.add_argument(
            '--max-sweeps',
            type=int,
            default=None,
            help='Stop --loop mode after this many sweeps',
        )

    def handle(self, *args, **options):
        if options['dry_run']:
            pending = ExpirySweeper.pending()
            self.stdout.write(f'{pending} reservation(s) would be released')
            return

        if options['loop']:
            try:
                count = ExpirySweeper.run(
                    interval=options['interval'],
                    max_sweeps=options['max_sweeps'],
                )
            except KeyboardInterrupt:
                self.stdout.write('Interrupted')
                return
        else:
            count = ExpirySweeper.sweep()

        self.stdout.write(
            self.style.SUCCESS(f'{count} reservation(s) released')
        )
