"""
Schémas Pydantic pour les séances de cours et leur démarrage.

Note : le champ `type` (physical / online) suit le contrat JSON du front-end ;
côté modèle SQLAlchemy il est stocké dans `session_type`.
"""

import uuid
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import field_validator

from programtrack.config import settings
from programtrack.schemas.common import CamelModel

SessionType = Literal["physical", "online"]
SessionStatus = Literal["scheduled", "active", "completed", "cancelled"]


def _check_latitude(v: Optional[float]) -> Optional[float]:
    if v is not None and not -90 <= v <= 90:
        raise ValueError("La latitude doit être comprise entre -90 et 90.")
    return v


def _check_longitude(v: Optional[float]) -> Optional[float]:
    if v is not None and not -180 <= v <= 180:
        raise ValueError("La longitude doit être comprise entre -180 et 180.")
    return v


class SessionCreate(CamelModel):
    """Données saisies par le formateur pour planifier une séance."""
    program_id: uuid.UUID
    title: str
    type: SessionType
    start_time: datetime
    description: Optional[str] = None
    duration_minutes: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    radius_meters: Optional[int] = None
    allow_late_attendance: bool = True
    late_threshold_minutes: Optional[int] = None

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le titre de la séance ne peut pas être vide.")
        return v.strip()

    @field_validator("start_time")
    @classmethod
    def start_time_aware(cls, v: datetime) -> datetime:
        # Une heure sans fuseau est interprétée comme UTC
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @field_validator("duration_minutes", "radius_meters", "late_threshold_minutes")
    @classmethod
    def strictly_positive(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError("La valeur doit être strictement positive.")
        return v

    @field_validator("latitude")
    @classmethod
    def valid_latitude(cls, v: Optional[float]) -> Optional[float]:
        return _check_latitude(v)

    @field_validator("longitude")
    @classmethod
    def valid_longitude(cls, v: Optional[float]) -> Optional[float]:
        return _check_longitude(v)


class LocationPayload(CamelModel):
    """Position GPS transmise par l'appareil (formateur ou apprenant)."""
    latitude: float
    longitude: float

    @field_validator("latitude")
    @classmethod
    def valid_latitude(cls, v: float) -> float:
        return _check_latitude(v)

    @field_validator("longitude")
    @classmethod
    def valid_longitude(cls, v: float) -> float:
        return _check_longitude(v)


class QrIssueRequest(CamelModel):
    """Corps optionnel du démarrage en ligne et de la régénération du QR."""
    expiration_minutes: Optional[int] = None

    @field_validator("expiration_minutes")
    @classmethod
    def valid_expiration(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and not 1 <= v <= settings.QR_MAX_TTL_MINUTES:
            raise ValueError(
                f"La durée de validité du QR doit être comprise entre 1 et {settings.QR_MAX_TTL_MINUTES} minutes."
            )
        return v


class SessionResponse(CamelModel):
    id: uuid.UUID
    program_id: uuid.UUID
    facilitator_id: uuid.UUID
    title: str
    description: Optional[str] = None
    type: str
    start_time: datetime
    duration_minutes: int
    status: str
    access_link: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    radius_meters: Optional[int] = None
    expires_at: Optional[datetime] = None
    total_present: int = 0
    total_absent: int = 0
    created_at: Optional[datetime] = None


class SessionDetails(CamelModel):
    session: SessionResponse
    attendance_count: int


class OnlineSessionStarted(CamelModel):
    """Réponse du démarrage d'une séance en ligne : QR signé + lien d'accès."""
    session: SessionResponse
    qr_data_string: str
    qr_code_image: str  # data URL PNG (base64)
    access_link: str
    expires_at: datetime
