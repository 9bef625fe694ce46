import logging

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger
from django.core.management.base import BaseCommand
from django.db import close_old_connections

from guest_access.conf import GuestAccessConfig
from guest_access.monitor import ExpiryMonitor

logger = logging.getLogger("guest_access.monitor")


class Command(BaseCommand):
    help = "Vence pases pendientes y avisa permanencias excedidas (una vez o en intervalo)."

    def add_arguments(self, parser):
        parser.add_argument("--once", action="store_true", help="Un solo barrido y salir.")
        parser.add_argument("--interval", type=int, default=None, help="Segundos entre barridos.")

    def handle(self, *args, **options):
        config = GuestAccessConfig.from_settings()
        monitor = ExpiryMonitor(config)

        if options["once"]:
            report = monitor.sweep()
            self.stdout.write(
                f"expirados={report.expired} permanencia={report.overstay_flagged} "
                f"carreras_perdidas={report.lost_races}"
            )
            return

        interval = options["interval"] or config.monitor_interval_seconds

        def tick():
            close_old_connections()
            try:
                monitor.sweep()
            except Exception:
                # El siguiente tick vuelve a intentar
                logger.exception("Falló el barrido de pases")
            finally:
                close_old_connections()

        scheduler = BlockingScheduler(timezone="UTC")
        scheduler.add_job(
            tick,
            trigger=IntervalTrigger(seconds=interval),
            id="guest_access_sweep",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.stdout.write(f"Monitor de pases cada {interval}s")
        try:
            scheduler.start()
        except (KeyboardInterrupt, SystemExit):
            scheduler.shutdown(wait=False)
