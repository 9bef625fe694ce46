import uuid
from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from .codes import MAX_CODE_LENGTH, qr_payload
from .exceptions import AuditLogImmutable


class UUIDModel(models.Model):
    uuid = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    class Meta:
        abstract = True


class GuestAccessStatus(models.TextChoices):
    PENDING = "pending", "Pendiente"
    ACTIVE = "active", "Dentro"
    COMPLETED = "completed", "Completado"
    EXPIRED = "expired", "Expirado"
    CANCELLED = "cancelled", "Cancelado"


# Estados desde los que todavía hay transiciones posibles
LIVE_STATUSES = (GuestAccessStatus.PENDING, GuestAccessStatus.ACTIVE)
TERMINAL_STATUSES = (
    GuestAccessStatus.COMPLETED,
    GuestAccessStatus.EXPIRED,
    GuestAccessStatus.CANCELLED,
)


class BarrierAction(models.TextChoices):
    ENTRY = "entry", "Entrada"
    EXIT = "exit", "Salida"


class DenialReason(models.TextChoices):
    CODE_INVALID = "code_invalid", "Código inválido"
    CODE_ALREADY_USED = "code_already_used", "Código ya utilizado"
    BARRIER_INACTIVE = "barrier_inactive", "Barrera inactiva"


class Barrier(UUIDModel):
    """
    Punto de acceso físico (pluma/portón). Configuración de solo lectura para
    la validación: nunca se modifica al escanear.
    """
    residential = models.ForeignKey(
        "core.Residential",
        on_delete=models.PROTECT,
        related_name="barriers",
    )
    name = models.CharField(max_length=100)
    location = models.CharField(max_length=200, blank=True, default="")

    # Integración con el equipo
    device_type = models.CharField(max_length=50, blank=True, default="")
    device_ip = models.GenericIPAddressField(null=True, blank=True)
    device_port = models.PositiveIntegerField(null=True, blank=True)
    api_key = models.CharField(max_length=255, blank=True, default="")

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.residential.name} - {self.name}"


class GuestAccess(UUIDModel):
    """
    Pase de invitado emitido por un residente.
    Solo se modifica con updates condicionados al estado actual (ver store.py).
    """
    residential = models.ForeignKey(
        "core.Residential",
        on_delete=models.PROTECT,
        related_name="guest_accesses",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="created_guest_accesses",
    )

    guest_name = models.CharField(max_length=100, blank=True, default="")
    guest_phone = models.CharField(max_length=20, blank=True, default="")
    vehicle_number = models.CharField(max_length=20, blank=True, default="")

    access_code = models.CharField(max_length=MAX_CODE_LENGTH, editable=False)
    # PNG del QR en data URI, generado al emitir
    qr_code_url = models.TextField(blank=True, default="", editable=False)

    duration_minutes = models.PositiveIntegerField()
    expires_at = models.DateTimeField()

    entered_at = models.DateTimeField(null=True, blank=True)
    exited_at = models.DateTimeField(null=True, blank=True)

    status = models.CharField(
        max_length=10,
        choices=GuestAccessStatus.choices,
        default=GuestAccessStatus.PENDING,
    )

    # Avisos de un solo disparo: false -> true, nunca de regreso
    owner_notified = models.BooleanField(default=False)
    chairman_notified = models.BooleanField(default=False)
    overstay_notified = models.BooleanField(default=False)

    created_at = models.DateTimeField(default=timezone.now, editable=False)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            # Un código se puede reciclar, pero nunca hay dos pases vivos con el mismo
            models.UniqueConstraint(
                fields=["access_code"],
                condition=Q(status__in=["pending", "active"]),
                name="guest_access_live_code_unique",
            ),
            models.CheckConstraint(
                condition=Q(expires_at__gt=F("created_at")),
                name="guest_access_expires_after_creation",
            ),
            models.CheckConstraint(
                condition=Q(exited_at__isnull=True) | Q(exited_at__gte=F("entered_at")),
                name="guest_access_exit_after_entry",
            ),
        ]
        indexes = [
            models.Index(fields=["access_code"], name="guest_access_code_idx"),
            models.Index(fields=["status", "expires_at"], name="guest_access_status_exp_idx"),
            models.Index(fields=["residential", "status"], name="guest_access_res_status_idx"),
        ]

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def qr_payload(self) -> str:
        # Lo que la app del residente convierte en imagen QR
        return qr_payload(self.access_code)

    def is_expired_at(self, now=None) -> bool:
        now = now or timezone.now()
        return now >= self.expires_at

    def __str__(self):
        return f"{self.guest_name or 'Invitado'} [{self.access_code}] ({self.status})"


class BarrierAccessLogQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise AuditLogImmutable("La bitácora de barreras no se actualiza.")

    def delete(self):
        raise AuditLogImmutable("La bitácora de barreras no se borra.")


class BarrierAccessLog(UUIDModel):
    """
    Hecho de auditoría: quién pasó, cuándo y por dónde.
    Solo inserción; independiente del estado del pase.
    """
    residential = models.ForeignKey(
        "core.Residential",
        on_delete=models.PROTECT,
        related_name="barrier_logs",
    )
    barrier = models.ForeignKey(
        Barrier,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="access_logs",
    )

    # Exactamente uno: residente (apertura propia) o pase de invitado
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="barrier_logs",
    )
    guest_access = models.ForeignKey(
        GuestAccess,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="access_logs",
    )

    action = models.CharField(max_length=5, choices=BarrierAction.choices)
    vehicle_number = models.CharField(max_length=20, blank=True, default="")

    created_at = models.DateTimeField(default=timezone.now, editable=False)

    objects = BarrierAccessLogQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(user__isnull=False, guest_access__isnull=True)
                    | Q(user__isnull=True, guest_access__isnull=False)
                ),
                name="barrier_log_single_subject",
            ),
        ]
        indexes = [
            models.Index(fields=["residential", "created_at"], name="barrier_log_res_created_idx"),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise AuditLogImmutable("La bitácora de barreras no se actualiza.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise AuditLogImmutable("La bitácora de barreras no se borra.")

    def __str__(self):
        subject = self.guest_access_id or self.user_id
        return f"{self.action} {subject} @ {self.barrier_id or '-'}"
