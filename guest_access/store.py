"""
Acceso a los pases de invitado.

Toda mutación de un pase pasa por transition() o mark_flag(): un UPDATE con la
condición del estado esperado en el WHERE. El número de filas afectadas dice
si esta llamada ganó la carrera; nunca se hace leer-y-luego-guardar.
"""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from django.core.exceptions import ValidationError
from django.db import DatabaseError, IntegrityError
from django.db.models import Q

from .exceptions import CredentialNotFound, StorageUnavailable
from .models import Barrier, GuestAccess, LIVE_STATUSES

NOTIFICATION_FLAGS = ("owner_notified", "chairman_notified", "overstay_notified")


@dataclass(frozen=True)
class TransitionResult:
    won: bool
    credential: Optional[GuestAccess]  # estado leído después del intento


@contextmanager
def storage_errors():
    """Traduce fallas de BD a StorageUnavailable. IntegrityError se deja pasar."""
    try:
        yield
    except IntegrityError:
        raise
    except DatabaseError as exc:
        raise StorageUnavailable(str(exc)) from exc


def create_credential(**fields) -> GuestAccess:
    with storage_errors():
        return GuestAccess.objects.create(**fields)


def find_live_by_code(access_code: str) -> Optional[GuestAccess]:
    with storage_errors():
        return (
            GuestAccess.objects
            .select_related("residential", "created_by")
            .filter(access_code=access_code, status__in=LIVE_STATUSES)
            .first()
        )


def get_credential(credential_id) -> GuestAccess:
    with storage_errors():
        try:
            return GuestAccess.objects.select_related("residential", "created_by").get(pk=credential_id)
        except (GuestAccess.DoesNotExist, ValidationError, ValueError):
            raise CredentialNotFound(credential_id)


def _reload(pk) -> Optional[GuestAccess]:
    return GuestAccess.objects.select_related("residential", "created_by").filter(pk=pk).first()


def transition(
    pk,
    expected: Union[str, Iterable[str]],
    new_status: str,
    guard: Optional[Q] = None,
    **fields,
) -> TransitionResult:
    """
    Cambia el status solo si sigue siendo `expected` (y cumple `guard`).
    """
    expected = [expected] if isinstance(expected, str) else list(expected)
    qs = GuestAccess.objects.filter(pk=pk, status__in=expected)
    if guard is not None:
        qs = qs.filter(guard)

    with storage_errors():
        rows = qs.update(status=new_status, **fields)
        return TransitionResult(won=rows == 1, credential=_reload(pk))


def mark_flag(pk, flag: str, guard: Optional[Q] = None) -> bool:
    """Aviso de un solo disparo: True solo para quien lo pasa de False a True."""
    if flag not in NOTIFICATION_FLAGS:
        raise ValueError(f"Bandera desconocida: {flag}")

    qs = GuestAccess.objects.filter(pk=pk, **{flag: False})
    if guard is not None:
        qs = qs.filter(guard)

    with storage_errors():
        return qs.update(**{flag: True}) == 1


def code_in_use(access_code: str) -> bool:
    with storage_errors():
        return GuestAccess.objects.filter(access_code=access_code, status__in=LIVE_STATUSES).exists()


def find_barrier(barrier_id, residential_id=None) -> Optional[Barrier]:
    qs = Barrier.objects.filter(pk=barrier_id)
    if residential_id is not None:
        qs = qs.filter(residential_id=residential_id)
    with storage_errors():
        return qs.first()
