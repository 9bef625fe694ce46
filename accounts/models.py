from django.db import models
from django.conf import settings
from core.models import Owner
from core.models import Residential
import uuid

class UUIDModel(models.Model):
    uuid = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    class Meta:
        abstract = True


class OwnerAccount(UUIDModel):
    """
    Login de un dueño. Es quien emite pases para sus invitados.
    is_active=False en el user o en el Owner bloquea la emisión.
    """
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="owner_account",
    )

    owner = models.OneToOneField(
        Owner,
        on_delete=models.CASCADE,
        related_name="account",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.owner} -> {self.user.email}"


class GuardAccount(UUIDModel):
    """
    Guardia/caseta que escanea códigos en las barreras de su residencial.
    """
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="guard_account",
    )
    residential = models.ForeignKey(
        Residential,
        on_delete=models.PROTECT,
        related_name="guards",
    )
    # Barrera de la caseta; se usa cuando el escaneo no indica barrier_id
    barrier = models.ForeignKey(
        "guest_access.Barrier",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="guards",
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"Guard {self.user.username} -> {self.residential.name}"
