"""
Resolución de rol por usuario.

Es la única puerta de entrada que usa el motor de pases para saber quién puede
emitir, cancelar o consultar: el resto del código no mira owner_account,
chairman_profile ni guard_account directamente.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from django.contrib.auth import get_user_model
from django.db import models


class Role(models.TextChoices):
    ADMIN = "admin", "Superadmin"
    CHAIRMAN = "chairman", "Presidente"
    OWNER = "owner", "Dueño"
    GUARD = "guard", "Guardia"
    NONE = "none", "Sin rol"


@dataclass(frozen=True)
class ResolvedUser:
    user_id: Optional[int]
    role: str
    residential_id: Optional[object]  # UUID del residencial o None
    is_blocked: bool

    def belongs_to(self, residential_id) -> bool:
        if self.role == Role.ADMIN:
            return True
        return self.residential_id is not None and self.residential_id == residential_id

    def can_issue_for(self, residential_id) -> bool:
        if self.is_blocked:
            return False
        return self.role in (Role.OWNER, Role.CHAIRMAN) and self.belongs_to(residential_id)

    def is_chairman_of(self, residential_id) -> bool:
        if self.is_blocked:
            return False
        return self.role in (Role.CHAIRMAN, Role.ADMIN) and self.belongs_to(residential_id)


def resolve_user(user) -> ResolvedUser:
    """
    Devuelve rol, residencial y bloqueo del usuario.
    Prioridad: superadmin > presidente > dueño > guardia.
    """
    if user is None or not getattr(user, "is_authenticated", False):
        return ResolvedUser(user_id=None, role=Role.NONE, residential_id=None, is_blocked=True)

    blocked = not user.is_active

    if user.is_superuser:
        return ResolvedUser(user.pk, Role.ADMIN, None, blocked)

    chairman = getattr(user, "chairman_profile", None)
    if chairman is not None:
        return ResolvedUser(user.pk, Role.CHAIRMAN, chairman.residential_id, blocked)

    account = getattr(user, "owner_account", None)
    if account is not None:
        owner = account.owner
        return ResolvedUser(user.pk, Role.OWNER, owner.residential_id, blocked or not owner.is_active)

    guard = getattr(user, "guard_account", None)
    if guard is not None:
        return ResolvedUser(user.pk, Role.GUARD, guard.residential_id, blocked or not guard.is_active)

    return ResolvedUser(user.pk, Role.NONE, None, blocked)


def chairmen_of(residential_id) -> List:
    """Usuarios activos que presiden el residencial."""
    User = get_user_model()
    return list(
        User.objects.filter(
            chairman_profile__residential_id=residential_id,
            is_active=True,
        ).select_related("chairman_profile")
    )


def contact_phone(user) -> str:
    """Teléfono al que se mandan avisos (dueño o presidente)."""
    chairman = getattr(user, "chairman_profile", None)
    if chairman is not None and chairman.phone:
        return chairman.phone
    account = getattr(user, "owner_account", None)
    if account is not None:
        return account.owner.phone or ""
    return ""
