from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from django.conf import settings

from .codes import MAX_CODE_LENGTH

DEFAULTS = {
    "MAX_DURATION_MINUTES": 240,
    "DEFAULT_DURATION_MINUTES": 30,
    "CODE_LENGTH": 6,
    "CODE_ALPHABET": "0123456789",
    "CODE_MAX_ATTEMPTS": 5,
    "OVERSTAY_THRESHOLD_MINUTES": None,
    "NOTIFY_ON_EXPIRY": False,
    "CHAIRMAN_NOTIFY_EVENTS": ("guest_overstay",),
    "MONITOR_INTERVAL_SECONDS": 60,
    "NOTIFIER": "guest_access.notifications.LoggingNotifier",
    "BARRIER_DRIVER": "guest_access.devices.LoggingBarrierDriver",
}


def setting(name: str):
    return {**DEFAULTS, **getattr(settings, "GUEST_ACCESS", {})}[name]


@dataclass(frozen=True)
class GuestAccessConfig:
    """
    Parámetros del emisor y del monitor. Se construye una vez y se pasa
    explícitamente; los tests arman el suyo con otros umbrales.
    """
    max_duration_minutes: int = 240
    default_duration_minutes: int = 30
    code_length: int = 6
    code_alphabet: str = "0123456789"
    code_max_attempts: int = 5
    # None: cada pase usa su propia duración como umbral
    overstay_threshold_minutes: Optional[int] = None
    notify_on_expiry: bool = False
    chairman_notify_events: Tuple[str, ...] = ("guest_overstay",)
    monitor_interval_seconds: int = 60

    def __post_init__(self):
        if self.max_duration_minutes <= 0:
            raise ValueError("max_duration_minutes debe ser positivo")
        if not 0 < self.default_duration_minutes <= self.max_duration_minutes:
            raise ValueError("default_duration_minutes fuera de rango")
        if self.code_length < 4 or len(set(self.code_alphabet)) < 2:
            raise ValueError("Espacio de códigos demasiado pequeño")
        if self.code_length > MAX_CODE_LENGTH:
            raise ValueError(f"code_length no puede exceder {MAX_CODE_LENGTH}")
        if self.code_max_attempts < 1:
            raise ValueError("code_max_attempts debe ser >= 1")

    @classmethod
    def from_settings(cls) -> "GuestAccessConfig":
        return cls(
            max_duration_minutes=setting("MAX_DURATION_MINUTES"),
            default_duration_minutes=setting("DEFAULT_DURATION_MINUTES"),
            code_length=setting("CODE_LENGTH"),
            code_alphabet=setting("CODE_ALPHABET"),
            code_max_attempts=setting("CODE_MAX_ATTEMPTS"),
            overstay_threshold_minutes=setting("OVERSTAY_THRESHOLD_MINUTES"),
            notify_on_expiry=setting("NOTIFY_ON_EXPIRY"),
            chairman_notify_events=tuple(setting("CHAIRMAN_NOTIFY_EVENTS")),
            monitor_interval_seconds=setting("MONITOR_INTERVAL_SECONDS"),
        )
