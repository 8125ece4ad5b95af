"""
Schémas Pydantic pour l'enregistrement des présences (QR, géolocalisation, manuel).
"""

import uuid
import datetime as dt
from datetime import datetime
from typing import Optional

from pydantic import field_validator, model_validator

from programtrack.schemas.class_session import LocationPayload
from programtrack.schemas.common import CamelModel

VALID_STATUSES = {"Present", "Absent", "Excused", "Late"}


class GeolocationCheckIn(LocationPayload):
    """Pointage d'un apprenant par géolocalisation (séance présentielle)."""
    session_id: uuid.UUID


class QrCheckIn(CamelModel):
    """Pointage d'un apprenant par scan du QR code (séance en ligne)."""
    qr_data: str

    @field_validator("qr_data")
    @classmethod
    def qr_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Les données du QR code sont obligatoires.")
        return v


class ManualAttendanceCreate(CamelModel):
    """Saisie manuelle par le personnel (formateur, responsable de programme)."""
    user_id: uuid.UUID
    status: str
    reason: Optional[str] = None

    @field_validator("status")
    @classmethod
    def valid_status(cls, v: str) -> str:
        if v not in VALID_STATUSES:
            raise ValueError(f"Statut invalide. Valeurs acceptées : {VALID_STATUSES}")
        return v

    @model_validator(mode="after")
    def excused_requires_reason(self) -> "ManualAttendanceCreate":
        if self.status == "Excused" and not (self.reason and self.reason.strip()):
            raise ValueError("Une justification est obligatoire pour une absence excusée.")
        return self


class AttendanceResponse(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    session_id: uuid.UUID
    program_id: uuid.UUID
    date: dt.date
    status: str
    check_in: Optional[datetime] = None
    method: str
    reason: Optional[str] = None
    created_at: Optional[datetime] = None


class CheckInResult(CamelModel):
    attendance: AttendanceResponse
    access_link: Optional[str] = None
