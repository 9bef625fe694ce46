from django.apps import AppConfig


class GuestAccessAppConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "guest_access"
    verbose_name = "Pases de invitado y barreras"
