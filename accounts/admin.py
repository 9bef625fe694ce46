from django.contrib import admin

from core.admin import ResidentialScopedAdmin
from .models import OwnerAccount, GuardAccount


@admin.register(OwnerAccount)
class OwnerAccountAdmin(admin.ModelAdmin):
    list_display = ("owner", "user", "created_at")
    search_fields = ("owner__first_name", "owner__last_name", "user__email")


@admin.register(GuardAccount)
class GuardAccountAdmin(ResidentialScopedAdmin):
    list_display = ("user", "residential", "barrier", "is_active", "created_at")
    search_fields = ("user__username", "residential__name", "barrier__name")
    list_filter = ("is_active", "residential")
