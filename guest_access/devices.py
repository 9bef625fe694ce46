"""
Apertura física de barreras. Se llama solo después de un Granted.
"""
import logging

import requests
from django.utils.module_loading import import_string

from .conf import setting

logger = logging.getLogger(__name__)


class BaseBarrierDriver:
    def open(self, barrier) -> None:
        raise NotImplementedError


class LoggingBarrierDriver(BaseBarrierDriver):
    def open(self, barrier):
        logger.info("Apertura de barrera %s (%s)", barrier.pk, barrier.name)


class HttpBarrierDriver(BaseBarrierDriver):
    """Controlador con endpoint HTTP en device_ip:device_port."""

    timeout = 5

    def open(self, barrier):
        if not barrier.device_ip:
            raise ValueError(f"Barrera {barrier.pk} sin device_ip")
        port = barrier.device_port or 80
        response = requests.post(
            f"http://{barrier.device_ip}:{port}/open",
            headers={"X-Api-Key": barrier.api_key},
            timeout=self.timeout,
        )
        response.raise_for_status()


def get_driver() -> BaseBarrierDriver:
    return import_string(setting("BARRIER_DRIVER"))()


def open_barrier(barrier, driver=None) -> bool:
    driver = driver or get_driver()
    try:
        driver.open(barrier)
    except Exception:
        logger.exception("No se pudo abrir la barrera %s", barrier.pk)
        return False
    return True
