"""
Router pour les programmes de formation.
Liste filtrée selon le rôle, création et inscription des apprenants.
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from programtrack.database import get_db
from programtrack.routers.errors import http_error
from programtrack.schemas.program import ProgramCreate, ProgramResponse, ProgramTraineesAdd
from programtrack.security import RequestContext, require
from programtrack.services import program_service

router = APIRouter(prefix="/api/v1/programs", tags=["Programmes"])


@router.get("", response_model=List[ProgramResponse], summary="Lister les programmes")
def list_programs(
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require("programs.view")),
):
    """Retourne les programmes visibles par l'appelant, selon son rôle."""
    return program_service.list_programs(db, ctx)


@router.post("", response_model=ProgramResponse, status_code=201, summary="Créer un programme")
def create_program(
    data: ProgramCreate,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require("programs.manage")),
):
    """Crée un programme actif dont l'appelant devient le responsable."""
    return program_service.create_program(db, ctx, data)


@router.post(
    "/{program_id}/trainees",
    response_model=ProgramResponse,
    summary="Inscrire des apprenants à un programme",
)
def add_trainees(
    program_id: uuid.UUID,
    data: ProgramTraineesAdd,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require("programs.manage")),
):
    """Inscrit les apprenants fournis. Les apprenants déjà inscrits sont ignorés."""
    try:
        return program_service.add_trainees(db, ctx, program_id, data)
    except ValueError as e:
        raise http_error(e)
