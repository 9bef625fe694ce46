import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models


class UUIDModel(models.Model):
    uuid = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    class Meta:
        abstract = True


class Residential(UUIDModel):
    """
    Complejo residencial (el "complex" de los pases de invitado).
    Dueño de barreras, pases y bitácora de accesos.
    """
    name = models.CharField(max_length=200)

    # Clave corta opcional, única cuando existe.
    code = models.CharField(max_length=50, blank=True, null=True, unique=True)

    address = models.TextField(blank=True, default="")
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["name"], name="core_residential_name_idx"),
        ]

    def __str__(self) -> str:
        return self.name


class Owner(UUIDModel):
    residential = models.ForeignKey(
        "Residential",
        on_delete=models.PROTECT,
        related_name="owners",
    )

    first_name = models.CharField(max_length=80)
    last_name = models.CharField(max_length=120, blank=True, default="")

    email = models.EmailField(unique=True)
    # Teléfono al que llegan los avisos de entrada/permanencia de sus invitados
    phone = models.CharField(max_length=30, blank=True, default="")

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def save(self, *args, **kwargs):
        if self.email:
            self.email = self.email.strip().lower()
        super().save(*args, **kwargs)


class UnitType(models.TextChoices):
    HOUSE = "HOUSE", "Casa"
    APARTMENT = "APT", "Departamento"


class Unit(UUIDModel):
    residential = models.ForeignKey(
        Residential,
        on_delete=models.PROTECT,
        related_name="units",
    )

    unit_type = models.CharField(max_length=10, choices=UnitType.choices, default=UnitType.APARTMENT)

    reference = models.CharField(
        max_length=80,
        help_text="Ej: Casa 4A, Depto 301"
    )

    owner = models.OneToOneField(
        Owner,
        on_delete=models.PROTECT,
        related_name="unit",
        null=True,
        blank=True,
        help_text="Dueño actual (1 unidad por dueño)"
    )

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = [("residential", "reference")]

    def clean(self):
        if self.owner and self.residential_id:
            if self.owner.residential_id != self.residential_id:
                raise ValidationError({"owner": "El dueño seleccionado no pertenece a este residencial."})

    def __str__(self) -> str:
        return f"{self.residential.name} - {self.reference}"


class ChairmanProfile(UUIDModel):
    """
    Presidente/administrador de UN residencial.
    Puede emitir y cancelar pases de cualquier residente y recibe los avisos
    configurados en GUEST_ACCESS["CHAIRMAN_NOTIFY_EVENTS"].
    """
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="chairman_profile",
    )
    residential = models.ForeignKey(
        Residential,
        on_delete=models.PROTECT,
        related_name="chairmen",
    )
    phone = models.CharField(max_length=30, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Presidente de residencial"
        verbose_name_plural = "Presidentes de residencial"

    def clean(self):
        if self.user and not self.user.is_staff:
            raise ValidationError("El usuario debe tener is_staff=True para administrar un residencial.")
        if self.user and self.user.is_superuser:
            raise ValidationError("Un superusuario no requiere perfil de presidente.")

    def __str__(self) -> str:
        return f"{self.user.username} -> {self.residential.name}"
