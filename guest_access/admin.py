from django.contrib import admin, messages

from core.admin import ResidentialScopedAdmin

from .exceptions import GuestAccessError
from .models import Barrier, BarrierAccessLog, GuestAccess
from .services import cancel_guest_access


@admin.register(Barrier)
class BarrierAdmin(ResidentialScopedAdmin):
    list_display = ("name", "residential", "location", "device_type", "is_active", "created_at")
    search_fields = ("name", "location", "residential__name")
    list_filter = ("is_active", "residential")
    ordering = ("residential__name", "name")


@admin.register(GuestAccess)
class GuestAccessAdmin(ResidentialScopedAdmin):
    """
    Solo lectura salvo la acción de cancelar: los estados cambian únicamente
    por el motor de pases.
    """
    list_display = (
        "guest_name", "access_code", "status", "residential", "created_by",
        "expires_at", "entered_at", "exited_at",
    )
    search_fields = ("guest_name", "guest_phone", "vehicle_number", "access_code", "created_by__username")
    list_filter = ("status", "residential")
    ordering = ("-created_at",)
    readonly_fields = (
        "residential", "created_by", "guest_name", "guest_phone", "vehicle_number",
        "access_code", "duration_minutes", "created_at", "expires_at",
        "entered_at", "exited_at", "status",
        "owner_notified", "chairman_notified", "overstay_notified",
    )
    actions = ["cancel_selected"]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.action(description="Cancelar pases seleccionados")
    def cancel_selected(self, request, queryset):
        cancelled = 0
        skipped = 0
        for credential in queryset:
            try:
                outcome = cancel_guest_access(credential.pk, request.user)
            except GuestAccessError as exc:
                self.message_user(request, f"{credential}: {exc}", level=messages.ERROR)
                continue
            if outcome.won:
                cancelled += 1
            else:
                skipped += 1

        self.message_user(
            request,
            f"Cancelados: {cancelled}. Ya estaban cerrados: {skipped}.",
            level=messages.SUCCESS if cancelled else messages.WARNING,
        )


@admin.register(BarrierAccessLog)
class BarrierAccessLogAdmin(ResidentialScopedAdmin):
    list_display = ("created_at", "action", "barrier", "guest_access", "user", "vehicle_number", "residential")
    search_fields = ("vehicle_number", "guest_access__guest_name", "guest_access__access_code", "user__username")
    list_filter = ("action", "residential", "barrier")
    ordering = ("-created_at",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
