"""
Puente de notificaciones (SMS/push) para eventos de pases de invitado.

Siempre se invoca DESPUÉS de que la transición quedó guardada; una falla aquí
se registra en el log y nunca revierte ni cambia la decisión en la barrera.
"""
from __future__ import annotations

import logging
from typing import Optional

import requests
from django.conf import settings
from django.db import models
from django.utils.module_loading import import_string

from accounts.roles import chairmen_of, contact_phone

from . import store
from .conf import GuestAccessConfig, setting
from .exceptions import StorageUnavailable

logger = logging.getLogger(__name__)


class EventKind(models.TextChoices):
    GUEST_ENTERED = "guest_entered", "Invitado entró"
    GUEST_OVERSTAY = "guest_overstay", "Invitado excedió su tiempo"
    GUEST_EXPIRED = "guest_expired", "Pase expirado sin uso"


class BaseNotifier:
    def send(self, target_user, event_kind: str, payload: dict) -> None:
        raise NotImplementedError


class LoggingNotifier(BaseNotifier):
    """Backend por defecto: solo deja constancia en el log."""

    def send(self, target_user, event_kind, payload):
        logger.info("Aviso %s para usuario %s: %s", event_kind, target_user.pk, payload)


class SmsNotifier(BaseNotifier):
    """Envía SMS por el gateway HTTP configurado en settings.SMS_*."""

    MESSAGES = {
        EventKind.GUEST_ENTERED.value: "LocalHood: su invitado {guest} entró a las {time}.",
        EventKind.GUEST_OVERSTAY.value: "LocalHood: su invitado {guest} lleva más de {minutes} min dentro.",
        EventKind.GUEST_EXPIRED.value: "LocalHood: el pase de {guest} expiró sin usarse.",
    }

    def __init__(self, session: Optional[requests.Session] = None):
        self.session = session or requests.Session()

    def send(self, target_user, event_kind, payload):
        phone = contact_phone(target_user)
        if not phone:
            logger.warning("Usuario %s sin teléfono; aviso %s omitido", target_user.pk, event_kind)
            return
        text = self.MESSAGES[str(event_kind)].format(
            guest=payload.get("guest_name") or "Invitado",
            time=payload.get("at", ""),
            minutes=payload.get("duration_minutes", ""),
        )
        if not settings.SMS_ENABLED:
            logger.info("SMS deshabilitado. Aviso %s para %s", event_kind, phone)
            return

        response = self.session.post(
            settings.SMS_API_URL,
            params={"apiKey": settings.SMS_API_KEY},
            data={"recipient": phone, "text": text, "from": settings.SMS_SENDER},
            timeout=settings.SMS_TIMEOUT_SECONDS,
        )
        response.raise_for_status()


def get_notifier() -> BaseNotifier:
    return import_string(setting("NOTIFIER"))()


def deliver(notifier: BaseNotifier, target_user, event_kind: str, payload: dict) -> bool:
    try:
        notifier.send(target_user, event_kind, payload)
    except Exception:
        logger.exception("Falló el aviso %s para usuario %s", event_kind, target_user.pk)
        return False
    return True


def build_payload(credential, now) -> dict:
    return {
        "credential_id": str(credential.pk),
        "residential_id": str(credential.residential_id),
        "guest_name": credential.guest_name,
        "vehicle_number": credential.vehicle_number,
        "duration_minutes": credential.duration_minutes,
        "at": now.isoformat(),
    }


class NotificationBridge:
    """
    Reparte un evento al creador del pase y, según la política, a los
    presidentes del residencial (marcando chairman_notified la primera vez).
    """

    def __init__(self, config: GuestAccessConfig, notifier: Optional[BaseNotifier] = None):
        self.config = config
        self.notifier = notifier or get_notifier()

    def announce(self, credential, event_kind: str, now) -> None:
        payload = build_payload(credential, now)
        deliver(self.notifier, credential.created_by, event_kind, payload)

        if str(event_kind) not in self.config.chairman_notify_events:
            return

        try:
            with store.storage_errors():
                chairmen = [u for u in chairmen_of(credential.residential_id) if u.pk != credential.created_by_id]
            if chairmen:
                store.mark_flag(credential.pk, "chairman_notified")
        except StorageUnavailable:
            logger.exception("No se pudo avisar a los presidentes del pase %s", credential.pk)
            return
        for chairman in chairmen:
            deliver(self.notifier, chairman, event_kind, payload)
