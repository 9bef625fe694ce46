"""
Barrido periódico de pases: vencimiento de pendientes y aviso de permanencia.

- Solo el monitor escribe "expired", y solo sobre pases pending.
- Un pase active nunca vence por tiempo: el invitado está físicamente dentro.
  Se avisa una vez (overstay_notified) y se deja active.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from django.db.models import Q
from django.utils import timezone

from . import store
from .conf import GuestAccessConfig
from .exceptions import StorageUnavailable
from .models import GuestAccess, GuestAccessStatus
from .notifications import BaseNotifier, EventKind, NotificationBridge

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    expired: int = 0
    overstay_flagged: int = 0
    lost_races: int = 0


class ExpiryMonitor:
    def __init__(self, config: Optional[GuestAccessConfig] = None,
                 notifier: Optional[BaseNotifier] = None):
        self.config = config or GuestAccessConfig.from_settings()
        self.bridge = NotificationBridge(self.config, notifier)

    def sweep(self, now=None) -> SweepReport:
        now = now or timezone.now()
        report = SweepReport()
        self.expire_pending(now, report)
        self.flag_overstays(now, report)
        if report.expired or report.overstay_flagged or report.lost_races:
            logger.info(
                "Barrido: %s expirados, %s con permanencia excedida, %s carreras perdidas",
                report.expired, report.overstay_flagged, report.lost_races,
            )
        return report

    def overstay_threshold(self, credential: GuestAccess) -> timedelta:
        minutes = self.config.overstay_threshold_minutes
        if minutes is None:
            minutes = credential.duration_minutes
        return timedelta(minutes=minutes)

    def overdue_pending(self, now) -> list:
        with store.storage_errors():
            return list(
                GuestAccess.objects
                .filter(status=GuestAccessStatus.PENDING, expires_at__lte=now)
                .values_list("pk", flat=True)
            )

    def expire_pending(self, now, report: SweepReport) -> None:
        for pk in self.overdue_pending(now):
            # Si el validador lo activó primero, este update no toca nada
            outcome = store.transition(
                pk,
                expected=GuestAccessStatus.PENDING,
                new_status=GuestAccessStatus.EXPIRED,
                guard=Q(expires_at__lte=now),
            )
            if not outcome.won:
                report.lost_races += 1
                continue
            report.expired += 1
            if self.config.notify_on_expiry:
                self.bridge.announce(outcome.credential, EventKind.GUEST_EXPIRED, now)

    def flag_overstays(self, now, report: SweepReport) -> None:
        with store.storage_errors():
            candidates = list(
                GuestAccess.objects
                .select_related("created_by")
                .filter(
                    status=GuestAccessStatus.ACTIVE,
                    entered_at__isnull=False,
                    overstay_notified=False,
                )
            )

        for credential in candidates:
            if now - credential.entered_at < self.overstay_threshold(credential):
                continue
            try:
                first = store.mark_flag(
                    credential.pk,
                    "overstay_notified",
                    guard=Q(status=GuestAccessStatus.ACTIVE),
                )
            except StorageUnavailable:
                logger.exception("No se pudo marcar overstay_notified en %s", credential.pk)
                continue
            if not first:
                report.lost_races += 1
                continue
            report.overstay_flagged += 1
            self.bridge.announce(credential, EventKind.GUEST_OVERSTAY, now)
