"""
Génération et vérification des QR codes de présence des séances en ligne.

Le QR encode un JSON signé : {"sessionId", "timestamp", "signature", "type": "attendance"}.
La signature est un HMAC-SHA256 de "{sessionId}-{timestamp}" avec QR_SECRET :
un QR modifié ou forgé est rejeté sans accès à la base.
"""

import base64
import hashlib
import hmac
import io
import json
import uuid
from datetime import datetime, timedelta
from typing import Optional, Tuple

import qrcode

from programtrack.config import settings

QR_TYPE = "attendance"


def generate_qr_image(data: str) -> bytes:
    """Génère une image PNG du QR code encodant la chaîne donnée."""
    qr = qrcode.QRCode(version=1, box_size=10, border=4)
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def qr_image_data_url(data: str) -> str:
    """Image du QR code sous forme de data URL, affichable directement par le navigateur."""
    encoded = base64.b64encode(generate_qr_image(data)).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def _sign(session_id: str, timestamp: int) -> str:
    message = f"{session_id}-{timestamp}".encode("utf-8")
    return hmac.new(settings.QR_SECRET.encode("utf-8"), message, hashlib.sha256).hexdigest()


def build_session_qr(
    session_id: uuid.UUID, now: datetime, ttl_minutes: Optional[int] = None
) -> Tuple[str, datetime]:
    """
    Construit la charge utile signée d'une séance et sa date d'expiration
    (QR_TTL_MINUTES par défaut). Retourne (qr_data, expires_at).
    """
    timestamp = int(now.timestamp() * 1000)
    payload = {
        "sessionId": str(session_id),
        "timestamp": timestamp,
        "signature": _sign(str(session_id), timestamp),
        "type": QR_TYPE,
    }
    expires_at = now + timedelta(minutes=ttl_minutes or settings.QR_TTL_MINUTES)
    return json.dumps(payload, separators=(",", ":")), expires_at


def verify_session_qr(qr_data: str) -> uuid.UUID:
    """
    Vérifie le format, le type et la signature d'un QR scanné.
    Retourne l'identifiant de la séance. Lève ValueError si le QR est invalide.
    L'expiration est contrôlée par l'appelant, à partir de la séance en base.
    """
    try:
        payload = json.loads(qr_data)
        session_id = str(payload["sessionId"])
        timestamp = int(payload["timestamp"])
        signature = str(payload["signature"])
    except (ValueError, KeyError, TypeError):
        raise ValueError("QR code invalide : contenu illisible.")

    if payload.get("type") != QR_TYPE:
        raise ValueError("QR code invalide : ce n'est pas un QR de présence.")

    if not hmac.compare_digest(signature, _sign(session_id, timestamp)):
        raise ValueError("QR code invalide : signature incorrecte.")

    try:
        return uuid.UUID(session_id)
    except ValueError:
        raise ValueError("QR code invalide : identifiant de séance incorrect.")
