import base64
import io
import secrets

import qrcode

QR_PREFIX = "LOCALHOOD:"
# Igual al max_length de GuestAccess.access_code
MAX_CODE_LENGTH = 16


def generate_access_code(length: int = 6, alphabet: str = "0123456789") -> str:
    """Código corto para teclear en el intercomunicador o mostrar en QR."""
    return "".join(secrets.choice(alphabet) for _ in range(length))


def qr_payload(access_code: str) -> str:
    return f"{QR_PREFIX}{access_code}"


def qr_data_uri(access_code: str) -> str:
    """PNG del QR como data URI, listo para un <img src=...> en la app."""
    buffer = io.BytesIO()
    qrcode.make(qr_payload(access_code)).save(buffer)
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def normalize_code(raw) -> str:
    """
    Acepta el código tecleado o el contenido leído del QR ("LOCALHOOD:123456").
    """
    code = "".join(str(raw or "").split())
    if code.startswith(QR_PREFIX):
        code = code[len(QR_PREFIX):]
    return code
