from rest_framework.permissions import BasePermission

from accounts.roles import Role, resolve_user


class IsGuardUser(BasePermission):
    def has_permission(self, request, view):
        return request.user.is_authenticated and hasattr(request.user, "guard_account") and request.user.guard_account.is_active


class IsResidentOrChairman(BasePermission):
    """Dueños y presidentes no bloqueados (quienes emiten pases)."""

    def has_permission(self, request, view):
        identity = resolve_user(request.user)
        return not identity.is_blocked and identity.role in (Role.OWNER, Role.CHAIRMAN)


class BelongsToResidential(BasePermission):
    """Cualquier rol con residencial asignado (historial de barreras)."""

    def has_permission(self, request, view):
        identity = resolve_user(request.user)
        return not identity.is_blocked and identity.residential_id is not None
