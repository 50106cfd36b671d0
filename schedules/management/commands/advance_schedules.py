import time

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from schedules.scheduler import advance


class Command(BaseCommand):
    help = 'Move bookings through pending, active and completed based on the current time.'

    def add_arguments(self, parser):
        parser.add_argument('--at', help='ISO timestamp to evaluate instead of now')
        parser.add_argument('--loop', type=int, default=0,
                            help='Repeat every N seconds instead of running once')

    def handle(self, *args, **options):
        at = None
        if options['at']:
            at = parse_datetime(options['at'])
            if at is None:
                raise CommandError(f"Invalid timestamp: {options['at']}")
            if timezone.is_naive(at):
                at = timezone.make_aware(at)

        while True:
            transitions = advance(at)
            for schedule_id, (old, new) in sorted(transitions.items()):
                self.stdout.write(f"schedule {schedule_id}: {old} -> {new}")
            self.stdout.write(self.style.SUCCESS(f"{len(transitions)} schedules advanced"))
            if not options['loop'] or at is not None:
                break
            time.sleep(options['loop'])
