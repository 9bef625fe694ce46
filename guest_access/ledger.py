"""
Bitácora de barreras: solo inserción y consulta.
"""
import logging

from django.db import DatabaseError, transaction
from django.utils import timezone

from .exceptions import StorageUnavailable
from .models import BarrierAccessLog

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50


def record(
    *,
    residential_id,
    action: str,
    guest_access_id=None,
    user_id=None,
    barrier_id=None,
    vehicle_number: str = "",
    now=None,
) -> BarrierAccessLog:
    """
    Agrega un evento de entrada/salida. Solo falla con StorageUnavailable,
    también ante IntegrityError (p. ej. una barrera borrada).
    """
    if (guest_access_id is None) == (user_id is None):
        raise ValueError("Un registro lleva user_id o guest_access_id, no ambos ni ninguno.")

    try:
        with transaction.atomic():
            entry = BarrierAccessLog.objects.create(
                residential_id=residential_id,
                barrier_id=barrier_id,
                guest_access_id=guest_access_id,
                user_id=user_id,
                action=action,
                vehicle_number=vehicle_number or "",
                created_at=now or timezone.now(),
            )
    except DatabaseError as exc:
        raise StorageUnavailable(str(exc)) from exc
    logger.debug("Bitácora: %s %s en %s", action, guest_access_id or user_id, barrier_id)
    return entry


def history(residential_id):
    """Eventos del residencial, del más reciente al más antiguo."""
    return (
        BarrierAccessLog.objects
        .filter(residential_id=residential_id)
        .select_related("barrier", "user", "guest_access")
        .order_by("-created_at")
    )


def for_credential(guest_access_id):
    return BarrierAccessLog.objects.filter(guest_access_id=guest_access_id).order_by("created_at")
