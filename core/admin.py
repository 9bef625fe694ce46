from django.contrib import admin

from .models import Residential, Unit, Owner, ChairmanProfile


def _user_residential(request):
    """
    Superuser: None (sin restricción)
    Presidente: residential asignado en ChairmanProfile
    """
    if request.user.is_superuser:
        return None
    profile = getattr(request.user, "chairman_profile", None)
    return getattr(profile, "residential", None)


class ResidentialScopedAdmin(admin.ModelAdmin):
    """
    Base: superuser ve todo.
    Presidente: solo ve y opera sobre su residential.
    Requiere que el modelo tenga campo residential (FK).
    """

    def has_module_permission(self, request):
        if request.user.is_superuser:
            return True
        return request.user.is_staff and _user_residential(request) is not None

    def has_add_permission(self, request):
        return self.has_module_permission(request)

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        if request.user.is_superuser:
            return qs
        res = _user_residential(request)
        if not request.user.is_staff or res is None:
            return qs.none()
        return qs.filter(residential_id=res.pk)

    def _obj_allowed(self, request, obj) -> bool:
        if request.user.is_superuser:
            return True
        res = _user_residential(request)
        return request.user.is_staff and res is not None and getattr(obj, "residential_id", None) == res.pk

    def has_view_permission(self, request, obj=None):
        if obj is None:
            return self.has_module_permission(request)
        return self._obj_allowed(request, obj)

    def has_change_permission(self, request, obj=None):
        if obj is None:
            return self.has_module_permission(request)
        return self._obj_allowed(request, obj)

    def has_delete_permission(self, request, obj=None):
        if request.user.is_superuser:
            return True
        if obj is None:
            return self.has_module_permission(request)
        return self._obj_allowed(request, obj)

    # --- OCULTAR CAMPO RESIDENTIAL PARA EL PRESIDENTE ---
    def get_fields(self, request, obj=None):
        fields = list(super().get_fields(request, obj))
        if not request.user.is_superuser and "residential" in fields:
            fields.remove("residential")
        return fields

    # --- FORZAR RESIDENTIAL EN GUARDADO (ANTI-HACK POST) ---
    def save_model(self, request, obj, form, change):
        if not request.user.is_superuser:
            res = _user_residential(request)
            if res is not None:
                obj.residential = res
        super().save_model(request, obj, form, change)


@admin.register(ChairmanProfile)
class ChairmanProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "residential", "phone", "created_at")
    search_fields = ("user__username", "user__email", "residential__name", "residential__code")
    list_filter = ("residential",)
    autocomplete_fields = ("user", "residential")

    def has_module_permission(self, request):
        # Solo superadmin asigna presidentes.
        return request.user.is_superuser


@admin.register(Residential)
class ResidentialAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "is_active", "created_at")
    search_fields = ("name", "code")
    list_filter = ("is_active",)
    ordering = ("name",)

    def has_module_permission(self, request):
        if request.user.is_superuser:
            return True
        return request.user.is_staff and _user_residential(request) is not None

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        if request.user.is_superuser:
            return qs
        res = _user_residential(request)
        if not request.user.is_staff or res is None:
            return qs.none()
        return qs.filter(pk=res.pk)

    def has_change_permission(self, request, obj=None):
        if request.user.is_superuser:
            return True
        res = _user_residential(request)
        return res is not None and (obj is None or obj.pk == res.pk)

    def has_delete_permission(self, request, obj=None):
        return request.user.is_superuser

    def has_add_permission(self, request):
        return request.user.is_superuser


@admin.register(Owner)
class OwnerAdmin(ResidentialScopedAdmin):
    list_display = ("first_name", "last_name", "email", "phone", "residential", "is_active", "created_at")
    search_fields = ("first_name", "last_name", "email", "phone", "residential__name")
    list_filter = ("is_active", "residential")
    ordering = ("first_name", "last_name")


@admin.register(Unit)
class UnitAdmin(ResidentialScopedAdmin):
    list_display = ("reference", "unit_type", "residential", "owner", "is_active", "created_at")
    search_fields = ("reference", "residential__name", "owner__first_name", "owner__last_name", "owner__email")
    list_filter = ("unit_type", "residential", "is_active")
    ordering = ("residential__name", "reference")
    autocomplete_fields = ("owner",)

    def formfield_for_foreignkey(self, db_field, request, **kwargs):
        # Presidente: solo dueños de su residential
        if db_field.name == "owner" and not request.user.is_superuser:
            res = _user_residential(request)
            if res is not None:
                kwargs["queryset"] = Owner.objects.filter(residential_id=res.pk)
        return super().formfield_for_foreignkey(db_field, request, **kwargs)
