"""
Schémas Pydantic pour les programmes de formation.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import field_validator

from programtrack.schemas.common import CamelModel


class ProgramCreate(CamelModel):
    name: str
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le nom du programme ne peut pas être vide.")
        return v.strip()


class ProgramResponse(CamelModel):
    id: uuid.UUID
    name: str
    description: Optional[str]
    status: str
    manager_id: Optional[uuid.UUID] = None
    trainee_count: int = 0
    created_at: Optional[datetime] = None


class ProgramTraineesAdd(CamelModel):
    """Corps de requête pour inscrire des apprenants à un programme."""
    trainee_ids: List[uuid.UUID]

    @field_validator("trainee_ids")
    @classmethod
    def not_empty(cls, v: List[uuid.UUID]) -> List[uuid.UUID]:
        if not v:
            raise ValueError("La liste d'apprenants ne peut pas être vide.")
        return v
