"""
Emisión, validación en barrera, cancelación y consulta de pases de invitado.

Reglas de concurrencia:
- Cada cambio de estado es un update condicionado (store.transition); quien
  pierde la carrera recibe un resultado, no una excepción.
- La bitácora y los avisos van DESPUÉS de la transición y sus fallas solo se
  registran: nunca convierten un Granted en Denied.
- El validador jamás escribe "expired": eso es exclusivo del monitor.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from accounts.roles import resolve_user

from . import devices, ledger, store
from .codes import generate_access_code, normalize_code, qr_data_uri, qr_payload
from .conf import GuestAccessConfig
from .exceptions import CodeSpaceExhausted, InvalidDuration, NotAllowed, StorageUnavailable
from .models import BarrierAction, DenialReason, GuestAccess, GuestAccessStatus, LIVE_STATUSES
from .notifications import BaseNotifier, EventKind, NotificationBridge

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GuestInfo:
    name: str = ""
    phone: str = ""
    vehicle_number: str = ""


@dataclass(frozen=True)
class ValidationResult:
    granted: bool
    reason: Optional[str] = None
    credential: Optional[GuestAccess] = None

    @classmethod
    def grant(cls, credential=None) -> "ValidationResult":
        return cls(granted=True, reason=None, credential=credential)

    @classmethod
    def deny(cls, reason: str, credential=None) -> "ValidationResult":
        return cls(granted=False, reason=reason, credential=credential)


@dataclass(frozen=True)
class CredentialStatus:
    """Foto de solo lectura para la app del residente."""
    id: object
    status: str
    access_code: str
    qr_code_url: str
    guest_name: str
    vehicle_number: str
    duration_minutes: int
    created_at: object
    expires_at: object
    entered_at: object
    exited_at: object
    owner_notified: bool
    chairman_notified: bool
    overstay_notified: bool

    @property
    def qr_payload(self) -> str:
        return qr_payload(self.access_code)

    @classmethod
    def from_credential(cls, credential: GuestAccess) -> "CredentialStatus":
        return cls(
            id=credential.pk,
            status=credential.status,
            access_code=credential.access_code,
            qr_code_url=credential.qr_code_url,
            guest_name=credential.guest_name,
            vehicle_number=credential.vehicle_number,
            duration_minutes=credential.duration_minutes,
            created_at=credential.created_at,
            expires_at=credential.expires_at,
            entered_at=credential.entered_at,
            exited_at=credential.exited_at,
            owner_notified=credential.owner_notified,
            chairman_notified=credential.chairman_notified,
            overstay_notified=credential.overstay_notified,
        )


def _pk(obj):
    return getattr(obj, "pk", obj)


class CredentialIssuer:
    def __init__(self, config: Optional[GuestAccessConfig] = None):
        self.config = config or GuestAccessConfig.from_settings()

    def check_duration(self, duration_minutes) -> int:
        if duration_minutes is None:
            return self.config.default_duration_minutes
        if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
            raise InvalidDuration(duration_minutes, self.config.max_duration_minutes)
        if duration_minutes <= 0 or duration_minutes > self.config.max_duration_minutes:
            raise InvalidDuration(duration_minutes, self.config.max_duration_minutes)
        return duration_minutes

    def issue(self, creator, residential, guest_info: Optional[GuestInfo] = None,
              duration_minutes=None, now=None) -> GuestAccess:
        """
        Crea un pase pending con código único entre los pases vivos.

        Un choque de código (IntegrityError del índice parcial) se reintenta con
        un código nuevo hasta code_max_attempts; después CodeSpaceExhausted.
        Cualquier otro IntegrityError se propaga sin reintentar.
        """
        duration = self.check_duration(duration_minutes)
        residential_id = _pk(residential)

        if not resolve_user(creator).can_issue_for(residential_id):
            raise NotAllowed("Solo dueños o el presidente del residencial pueden emitir pases.")

        guest_info = guest_info or GuestInfo()
        now = now or timezone.now()
        expires_at = now + timedelta(minutes=duration)

        attempts = self.config.code_max_attempts
        for attempt in range(1, attempts + 1):
            code = generate_access_code(self.config.code_length, self.config.code_alphabet)
            try:
                with transaction.atomic():
                    credential = store.create_credential(
                        residential_id=residential_id,
                        created_by=creator,
                        guest_name=guest_info.name,
                        guest_phone=guest_info.phone,
                        vehicle_number=guest_info.vehicle_number,
                        access_code=code,
                        qr_code_url=qr_data_uri(code),
                        duration_minutes=duration,
                        expires_at=expires_at,
                        status=GuestAccessStatus.PENDING,
                        created_at=now,
                    )
            except IntegrityError:
                if not store.code_in_use(code):
                    raise
                logger.warning("Código repetido entre pases vivos (intento %s/%s)", attempt, attempts)
                continue

            logger.info(
                "Pase %s emitido por %s en %s, vence %s",
                credential.pk, creator.pk, residential_id, expires_at.isoformat(),
            )
            return credential

        raise CodeSpaceExhausted(attempts)


class AccessValidator:
    """
    Decide Granted/Denied para un código presentado en una barrera.
    """

    def __init__(self, config: Optional[GuestAccessConfig] = None,
                 notifier: Optional[BaseNotifier] = None):
        self.config = config or GuestAccessConfig.from_settings()
        self.bridge = NotificationBridge(self.config, notifier)

    def validate(self, access_code, action: str, barrier=None, residential_id=None,
                 vehicle_number: str = "", now=None) -> ValidationResult:
        if action not in BarrierAction.values:
            raise ValueError(f"Acción desconocida: {action}")
        now = now or timezone.now()

        if barrier is not None:
            if not barrier.is_active:
                logger.info("Escaneo en barrera inactiva %s", barrier.pk)
                return ValidationResult.deny(DenialReason.BARRIER_INACTIVE)
            residential_id = barrier.residential_id

        credential = store.find_live_by_code(normalize_code(access_code))
        if credential is None:
            return self._deny(DenialReason.CODE_INVALID, action, barrier)

        # Un código nunca sirve en otro residencial
        if residential_id is not None and credential.residential_id != residential_id:
            return self._deny(DenialReason.CODE_INVALID, action, barrier)

        if action == BarrierAction.ENTRY:
            result = self._enter(credential, now)
        else:
            result = self._exit(credential, now)

        if not result.granted:
            return self._deny(result.reason, action, barrier, result.credential)

        self._record(result.credential, action, barrier, vehicle_number, now)
        if action == BarrierAction.ENTRY:
            self._notify_entry(result.credential, now)

        logger.info("Granted %s pase %s en barrera %s", action, credential.pk, _pk(barrier))
        return result

    def _enter(self, credential: GuestAccess, now) -> ValidationResult:
        # Vencido equivale a no encontrado; marcarlo expired le toca al monitor
        if credential.is_expired_at(now):
            return ValidationResult.deny(DenialReason.CODE_INVALID)
        if credential.status != GuestAccessStatus.PENDING:
            return ValidationResult.deny(DenialReason.CODE_ALREADY_USED, credential)

        outcome = store.transition(
            credential.pk,
            expected=GuestAccessStatus.PENDING,
            new_status=GuestAccessStatus.ACTIVE,
            guard=Q(expires_at__gt=now),
            entered_at=now,
        )
        if not outcome.won:
            return ValidationResult.deny(DenialReason.CODE_ALREADY_USED, outcome.credential)
        return ValidationResult.grant(outcome.credential)

    def _exit(self, credential: GuestAccess, now) -> ValidationResult:
        if credential.status != GuestAccessStatus.ACTIVE:
            # Nunca entró: no hay salida que registrar
            return ValidationResult.deny(DenialReason.CODE_INVALID)

        exited_at = max(now, credential.entered_at) if credential.entered_at else now
        outcome = store.transition(
            credential.pk,
            expected=GuestAccessStatus.ACTIVE,
            new_status=GuestAccessStatus.COMPLETED,
            exited_at=exited_at,
        )
        if not outcome.won:
            return ValidationResult.deny(DenialReason.CODE_ALREADY_USED, outcome.credential)
        return ValidationResult.grant(outcome.credential)

    def _deny(self, reason, action, barrier, credential=None) -> ValidationResult:
        logger.info("Denied %s en barrera %s: %s", action, _pk(barrier), reason)
        return ValidationResult.deny(reason, credential)

    def _record(self, credential, action, barrier, vehicle_number, now):
        try:
            ledger.record(
                residential_id=credential.residential_id,
                action=action,
                guest_access_id=credential.pk,
                barrier_id=_pk(barrier),
                vehicle_number=vehicle_number or credential.vehicle_number,
                now=now,
            )
        except StorageUnavailable:
            logger.exception("No se registró %s del pase %s en la bitácora", action, credential.pk)

    def _notify_entry(self, credential, now):
        try:
            first = store.mark_flag(credential.pk, "owner_notified")
        except StorageUnavailable:
            logger.exception("No se pudo marcar owner_notified en %s", credential.pk)
            return
        if first:
            self.bridge.announce(credential, EventKind.GUEST_ENTERED, now)


def issue_guest_access(creator, residential, guest_info=None, duration_minutes=None,
                       config=None, now=None) -> GuestAccess:
    return CredentialIssuer(config).issue(creator, residential, guest_info, duration_minutes, now=now)


def validate_at_barrier(access_code, action, barrier=None, residential_id=None,
                        vehicle_number="", validator=None, driver=None, now=None) -> ValidationResult:
    """
    Punto de entrada del adaptador de barrera: valida y, solo si hay Granted,
    abre el equipo físico (fuera de cualquier sección crítica).
    """
    validator = validator or AccessValidator()
    result = validator.validate(
        access_code, action,
        barrier=barrier,
        residential_id=residential_id,
        vehicle_number=vehicle_number,
        now=now,
    )
    if result.granted and barrier is not None:
        devices.open_barrier(barrier, driver)
    return result


def cancel_guest_access(credential_id, by_user, now=None) -> store.TransitionResult:
    """
    pending|active -> cancelled. Solo el creador o el presidente del residencial.
    Si otra transición ganó antes, devuelve won=False (no-op).
    """
    credential = store.get_credential(credential_id)
    identity = resolve_user(by_user)
    if identity.is_blocked:
        raise NotAllowed("Usuario bloqueado.")
    if credential.created_by_id != by_user.pk and not identity.is_chairman_of(credential.residential_id):
        raise NotAllowed("Solo el creador o el presidente pueden cancelar este pase.")

    outcome = store.transition(
        credential.pk,
        expected=LIVE_STATUSES,
        new_status=GuestAccessStatus.CANCELLED,
    )
    if outcome.won:
        logger.info("Pase %s cancelado por %s", credential.pk, by_user.pk)
    else:
        logger.info("Cancelación sin efecto del pase %s (status=%s)", credential.pk, outcome.credential.status)
    return outcome


def get_credential_status(credential_id, by_user=None) -> CredentialStatus:
    credential = store.get_credential(credential_id)
    if by_user is not None:
        identity = resolve_user(by_user)
        if credential.created_by_id != by_user.pk and not identity.is_chairman_of(credential.residential_id):
            raise NotAllowed("No puede consultar este pase.")
    return CredentialStatus.from_credential(credential)


def list_active_guests(residential_id, created_by=None):
    qs = GuestAccess.objects.filter(residential_id=residential_id, status__in=LIVE_STATUSES)
    if created_by is not None:
        qs = qs.filter(created_by=created_by)
    return qs.order_by("-created_at")


def open_barrier_for_resident(user, barrier, vehicle_number="", driver=None, now=None) -> ValidationResult:
    """
    Apertura directa desde la app del residente: bitácora con user_id.
    """
    identity = resolve_user(user)
    if not identity.can_issue_for(barrier.residential_id):
        raise NotAllowed("Solo residentes del complejo pueden abrir esta barrera.")
    if not barrier.is_active:
        return ValidationResult.deny(DenialReason.BARRIER_INACTIVE)

    try:
        ledger.record(
            residential_id=barrier.residential_id,
            action=BarrierAction.ENTRY,
            user_id=user.pk,
            barrier_id=barrier.pk,
            vehicle_number=vehicle_number,
            now=now,
        )
    except StorageUnavailable:
        logger.exception("No se registró la apertura de %s por %s", barrier.pk, user.pk)

    devices.open_barrier(barrier, driver)
    return ValidationResult.grant()
