"""Run the inline (non-durable) watermark dispatcher.

Each cycle reclaims stuck tasks, then starts pending tasks until the number
of PROCESSING tasks reaches ``WATERMARK_INLINE_CONCURRENCY``.
"""

import time

from django.core.management.base import BaseCommand, CommandError

from unmark.checks import validate_watermark_settings
from unmark.services.inline import InlineDispatcher
from unmark.utils import ConfigurationError


class Command(BaseCommand):
    """Poll the task table and process watermark tasks in this process."""

    help = "Process pending watermark tasks without a Celery worker"

    def add_arguments(self, parser):
        parser.add_argument(
            "--once",
            action="store_true",
            help="Run a single dispatch cycle, wait for it and exit",
        )
        parser.add_argument(
            "--interval",
            type=float,
            default=5.0,
            help="Seconds between dispatch cycles (default: 5)",
        )

    def handle(self, *args, **options):
        try:
            validate_watermark_settings(require_broker=False)
        except ConfigurationError as exc:
            raise CommandError(str(exc)) from exc

        dispatcher = InlineDispatcher()

        if options["once"]:
            started = dispatcher.run_cycle()
            dispatcher.shutdown(wait=True)
            self.stdout.write(self.style.SUCCESS(f"Dispatched {len(started)} watermark tasks"))
            return

        self.stdout.write(self.style.SUCCESS("Watermark dispatcher started"))
        try:
            while True:
                started = dispatcher.run_cycle()
                if started:
                    self.stdout.write(f"Dispatched {len(started)} watermark tasks")
                time.sleep(options["interval"])
        except KeyboardInterrupt:
            self.stdout.write(self.style.WARNING("Stopping watermark dispatcher..."))
        finally:
            dispatcher.shutdown(wait=True)
            self.stdout.write(self.style.SUCCESS("Watermark dispatcher stopped"))
