"""
Errores del motor de pases de invitado.

Los rechazos en barrera (código inválido, ya usado, barrera inactiva) NO son
excepciones: viajan como DenialReason dentro de ValidationResult.
"""


class GuestAccessError(Exception):
    """Base de los errores del motor de pases."""


class InvalidDuration(GuestAccessError):
    def __init__(self, duration_minutes, max_minutes: int):
        self.duration_minutes = duration_minutes
        self.max_minutes = max_minutes
        super().__init__(
            f"La duración debe estar entre 1 y {max_minutes} minutos (recibido: {duration_minutes})."
        )


class CodeSpaceExhausted(GuestAccessError):
    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"No se pudo generar un código libre tras {attempts} intentos.")


class NotAllowed(GuestAccessError):
    """El usuario no puede operar sobre este pase o residencial."""


class CredentialNotFound(GuestAccessError):
    def __init__(self, credential_id):
        self.credential_id = credential_id
        super().__init__(f"Pase '{credential_id}' no encontrado.")


class StorageUnavailable(GuestAccessError):
    """Falla de base de datos; reintentable por el llamador."""


class AuditLogImmutable(GuestAccessError):
    """La bitácora de barreras solo admite inserciones."""
