import logging
import time

from django.core.management.base import BaseCommand

from logistics.services import build_dispatcher

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Drains due vendor/rider assignment retries. Runs forever unless --once is given."

    def add_arguments(self, parser):
        parser.add_argument("--once", action="store_true", help="Process due retries a single time and exit")
        parser.add_argument("--interval", type=float, default=5.0, help="Seconds to sleep between polls")
        parser.add_argument("--limit", type=int, default=100, help="Max retries claimed per poll")

    def handle(self, *args, **options):
        dispatcher = build_dispatcher()
        interval = options["interval"]

        while True:
            results = dispatcher.run_due_retries(limit=options["limit"])
            if results:
                logger.info("Processed %s due retries", len(results))
            for result in results:
                self.stdout.write(f"{result.order_id}: {result.status.value}")

            if options["once"]:
                return
            time.sleep(interval)
