"""
Service métier pour les programmes de formation.
Liste filtrée selon le rôle de l'appelant, création et inscription des apprenants.
"""

import uuid
import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from programtrack.models.program import Program, ProgramFacilitator, ProgramTrainee
from programtrack.schemas.program import ProgramCreate, ProgramResponse, ProgramTraineesAdd
from programtrack.security import FACILITATOR, PROGRAM_MANAGER, TRAINEE, RequestContext
from programtrack.services.audit_service import log_action

logger = logging.getLogger(__name__)


def list_programs(db: Session, ctx: RequestContext) -> list[ProgramResponse]:
    """
    Retourne les programmes visibles par l'appelant, triés par nom :
    - Responsable : les programmes qu'il gère
    - Formateur : les programmes auxquels il est assigné
    - Apprenant : les programmes auxquels il est inscrit
    - SuperAdmin / IT-Support : tous les programmes
    """
    query = select(Program)
    if ctx.role == PROGRAM_MANAGER:
        query = query.where(Program.manager_id == ctx.user_id)
    elif ctx.role == FACILITATOR:
        query = query.join(ProgramFacilitator, ProgramFacilitator.program_id == Program.id).where(
            ProgramFacilitator.facilitator_id == ctx.user_id
        )
    elif ctx.role == TRAINEE:
        query = query.join(ProgramTrainee, ProgramTrainee.program_id == Program.id).where(
            ProgramTrainee.trainee_id == ctx.user_id
        )

    programs = db.execute(query.order_by(Program.name)).scalars().all()
    return [_to_response(db, p) for p in programs]


def create_program(db: Session, ctx: RequestContext, data: ProgramCreate) -> ProgramResponse:
    """Crée un programme actif, géré par l'appelant."""
    program = Program(
        id=uuid.uuid4(),
        name=data.name,
        description=data.description,
        status="active",
        manager_id=ctx.user_id,
    )
    db.add(program)
    log_action(db, ctx.user_id, "PROGRAM_CREATED", f"Programme « {program.name} » ({program.id})")
    db.commit()
    db.refresh(program)

    logger.info("Programme créé : %s (%s)", program.name, program.id)
    return _to_response(db, program)


def add_trainees(
    db: Session,
    ctx: RequestContext,
    program_id: uuid.UUID,
    data: ProgramTraineesAdd,
) -> ProgramResponse:
    """
    Inscrit des apprenants à un programme.
    Les apprenants déjà inscrits sont ignorés (pas de doublon).
    """
    program = get_accessible_program(db, ctx, program_id)

    existing = set(db.execute(
        select(ProgramTrainee.trainee_id)
        .where(ProgramTrainee.program_id == program_id)
    ).scalars().all())

    to_insert = [
        {"program_id": program_id, "trainee_id": tid}
        for tid in dict.fromkeys(data.trainee_ids)
        if tid not in existing
    ]

    if to_insert:
        db.bulk_insert_mappings(ProgramTrainee, to_insert)
        log_action(
            db, ctx.user_id, "PROGRAM_TRAINEES_ADDED",
            f"{len(to_insert)} apprenant(s) inscrit(s) au programme {program_id}",
        )
        db.commit()

    return _to_response(db, program)


def get_accessible_program(db: Session, ctx: RequestContext, program_id: uuid.UUID) -> Program:
    """
    Charge un programme en vérifiant qu'un responsable n'agit que sur les programmes qu'il gère.
    Les autres rôles autorisés ne sont pas restreints ici.
    """
    program = db.get(Program, program_id)
    if program is None:
        raise ValueError(f"Programme {program_id} introuvable.")
    if ctx.role == PROGRAM_MANAGER and program.manager_id != ctx.user_id:
        raise ValueError(f"Programme {program_id} introuvable pour ce responsable.")
    return program


def is_trainee_enrolled(db: Session, program_id: uuid.UUID, trainee_id: uuid.UUID) -> bool:
    """Vrai si l'apprenant est inscrit au programme."""
    return db.get(ProgramTrainee, (program_id, trainee_id)) is not None


def _to_response(db: Session, program: Program) -> ProgramResponse:
    """Construit le schéma de réponse avec le nombre d'apprenants inscrits."""
    trainee_count = db.execute(
        select(func.count())
        .select_from(ProgramTrainee)
        .where(ProgramTrainee.program_id == program.id)
    ).scalar() or 0

    return ProgramResponse(
        id=program.id,
        name=program.name,
        description=program.description,
        status=program.status,
        manager_id=program.manager_id,
        trainee_count=trainee_count,
        created_at=program.created_at,
    )
