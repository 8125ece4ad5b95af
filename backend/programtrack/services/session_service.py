"""
Service métier pour les séances de cours.

Cycle de vie :
  scheduled → active (démarrage en ligne par QR ou présentiel par géolocalisation)
  active → completed (clôture manuelle ou automatique à la fin de la durée prévue)
  scheduled | active → cancelled
completed et cancelled sont des états terminaux.
"""

import uuid
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from programtrack.config import settings
from programtrack.models.attendance import Attendance
from programtrack.models.class_session import ClassSession
from programtrack.models.program import Program, ProgramTrainee
from programtrack.schemas.attendance import AttendanceResponse
from programtrack.schemas.class_session import (
    LocationPayload,
    OnlineSessionStarted,
    SessionCreate,
    SessionDetails,
    SessionResponse,
)
from programtrack.security import FACILITATOR, PROGRAM_MANAGER, RequestContext
from programtrack.services.audit_service import log_action
from programtrack.services.geolocation_service import distance_meters
from programtrack.services.program_service import get_accessible_program
from programtrack.services.qr_service import build_session_qr, qr_image_data_url

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = ("completed", "cancelled")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Les datetimes sans fuseau stockés en base sont en UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def create_session(db: Session, ctx: RequestContext, data: SessionCreate) -> SessionResponse:
    """
    Planifie une séance en statut scheduled pour un programme.

    Le lien d'accès est généré dès la création (consultable avant le démarrage).
    Lève ValueError si le programme est introuvable ou archivé.
    """
    program = db.get(Program, data.program_id)
    if program is None:
        raise ValueError(f"Programme {data.program_id} introuvable.")
    if program.status == "archived":
        raise ValueError("Impossible de planifier une séance : le programme est archivé.")

    session_id = uuid.uuid4()
    session = ClassSession(
        id=session_id,
        program_id=data.program_id,
        facilitator_id=ctx.user_id,
        title=data.title,
        description=data.description,
        session_type=data.type,
        start_time=data.start_time,
        duration_minutes=data.duration_minutes or settings.DEFAULT_SESSION_DURATION_MINUTES,
        status="scheduled",
        latitude=data.latitude,
        longitude=data.longitude,
        radius_meters=data.radius_meters or settings.DEFAULT_SESSION_RADIUS_METERS,
        access_link=f"{settings.FRONTEND_URL}/dashboard/classroom/{session_id}",
        allow_late_attendance=data.allow_late_attendance,
        late_threshold_minutes=data.late_threshold_minutes or settings.DEFAULT_LATE_THRESHOLD_MINUTES,
        total_present=0,
        total_absent=0,
    )
    db.add(session)
    log_action(db, ctx.user_id, "SESSION_CREATED", f"Séance « {data.title} » ({session_id}, {data.type})")
    db.commit()
    db.refresh(session)

    logger.info("Séance créée : %s (%s, %s)", session.title, session.id, session.session_type)
    return to_response(session)


def list_facilitator_sessions(
    db: Session,
    ctx: RequestContext,
    status: Optional[str] = None,
    session_type: Optional[str] = None,
) -> list[SessionResponse]:
    """Séances du formateur appelant, de la plus récente à la plus ancienne."""
    query = select(ClassSession).where(ClassSession.facilitator_id == ctx.user_id)
    if status:
        query = query.where(ClassSession.status == status)
    if session_type:
        query = query.where(ClassSession.session_type == session_type)

    sessions = db.execute(query.order_by(ClassSession.start_time.desc())).scalars().all()
    return [to_response(s) for s in sessions]


def list_trainee_sessions(db: Session, ctx: RequestContext) -> list[SessionResponse]:
    """Séances des programmes auxquels l'apprenant appelant est inscrit."""
    sessions = db.execute(
        select(ClassSession)
        .join(ProgramTrainee, ProgramTrainee.program_id == ClassSession.program_id)
        .where(ProgramTrainee.trainee_id == ctx.user_id)
        .order_by(ClassSession.start_time.desc())
    ).scalars().all()
    return [to_response(s) for s in sessions]


def get_session_details(db: Session, session_id: uuid.UUID) -> SessionDetails:
    """Détail d'une séance avec le nombre de présences enregistrées."""
    session = db.get(ClassSession, session_id)
    if session is None:
        raise ValueError(f"Séance {session_id} introuvable.")

    attendance_count = db.execute(
        select(func.count())
        .select_from(Attendance)
        .where(Attendance.session_id == session_id)
    ).scalar() or 0

    return SessionDetails(session=to_response(session), attendance_count=attendance_count)


def get_session_attendance(db: Session, session_id: uuid.UUID) -> list[AttendanceResponse]:
    """Présences d'une séance, de la plus récente à la plus ancienne."""
    session = db.get(ClassSession, session_id)
    if session is None:
        raise ValueError(f"Séance {session_id} introuvable.")

    records = db.execute(
        select(Attendance)
        .where(Attendance.session_id == session_id)
        .order_by(Attendance.created_at.desc())
    ).scalars().all()
    return [AttendanceResponse.model_validate(r) for r in records]


def start_online_session(
    db: Session,
    ctx: RequestContext,
    session_id: uuid.UUID,
    now: Optional[datetime] = None,
    expiration_minutes: Optional[int] = None,
) -> OnlineSessionStarted:
    """
    Démarre une séance en ligne : scheduled → active.

    Génère un QR code signé valable expiration_minutes (QR_TTL_MINUTES par défaut)
    et le stocke sur la séance (seul le dernier QR émis est accepté au pointage).
    Lève ValueError si la séance est introuvable, présentielle ou déjà démarrée.
    """
    now = now or utcnow()
    session = get_owned_session(db, ctx, session_id)
    if session.session_type != "online":
        raise ValueError("Cette séance est présentielle : démarrage par QR code impossible.")
    if session.status != "scheduled":
        raise ValueError(f"Impossible de démarrer la séance : elle est en statut {session.status}.")

    session.status = "active"
    qr_data = _issue_qr(session, now, expiration_minutes)
    log_action(db, ctx.user_id, "SESSION_STARTED", f"Séance en ligne {session.id}")
    db.commit()
    db.refresh(session)

    logger.info("Séance en ligne démarrée : %s, QR valable jusqu'à %s", session.id, session.expires_at)
    return _online_started(session, qr_data)


def regenerate_session_qr(
    db: Session,
    ctx: RequestContext,
    session_id: uuid.UUID,
    now: Optional[datetime] = None,
    expiration_minutes: Optional[int] = None,
) -> OnlineSessionStarted:
    """
    Émet un nouveau QR pour une séance en ligne active (le précédent n'est plus accepté).
    Permet les pointages tardifs après l'expiration du premier QR.
    """
    now = now or utcnow()
    session = get_owned_session(db, ctx, session_id)
    if session.session_type != "online":
        raise ValueError("Cette séance est présentielle : aucun QR code à régénérer.")
    if session.status != "active":
        raise ValueError(f"Impossible de régénérer le QR : la séance est en statut {session.status}.")

    qr_data = _issue_qr(session, now, expiration_minutes)
    log_action(db, ctx.user_id, "SESSION_QR_REGENERATED", f"Séance en ligne {session.id}")
    db.commit()
    db.refresh(session)

    logger.info("QR régénéré pour la séance %s, valable jusqu'à %s", session.id, session.expires_at)
    return _online_started(session, qr_data)


def start_physical_session(
    db: Session,
    ctx: RequestContext,
    session_id: uuid.UUID,
    location: LocationPayload,
) -> SessionResponse:
    """
    Démarre une séance présentielle avec la position du formateur : scheduled → active.

    Si le lieu n'a pas été fixé à la planification, la position du formateur devient
    le lieu de la séance. Sinon le formateur doit se trouver dans le périmètre.
    """
    session = get_owned_session(db, ctx, session_id)
    if session.session_type != "physical":
        raise ValueError("Cette séance est en ligne : démarrage par géolocalisation impossible.")
    if session.status != "scheduled":
        raise ValueError(f"Impossible de démarrer la séance : elle est en statut {session.status}.")

    if session.latitude is None or session.longitude is None:
        session.latitude = location.latitude
        session.longitude = location.longitude
    else:
        distance = distance_meters(
            location.latitude, location.longitude, session.latitude, session.longitude
        )
        if distance > session.radius_meters:
            raise ValueError(
                f"Vous êtes hors du périmètre de la séance ({round(distance)} m, "
                f"maximum {session.radius_meters} m)."
            )

    session.status = "active"
    log_action(db, ctx.user_id, "SESSION_STARTED", f"Séance présentielle {session.id}")
    db.commit()
    db.refresh(session)

    logger.info("Séance présentielle démarrée : %s", session.id)
    return to_response(session)


def complete_session(db: Session, ctx: RequestContext, session_id: uuid.UUID) -> SessionResponse:
    """
    Clôture une séance active → completed et recalcule ses compteurs.
    Lève ValueError si la séance n'est pas active.
    """
    session = get_owned_session(db, ctx, session_id)
    if session.status != "active":
        raise ValueError(f"Impossible de clôturer la séance : elle est en statut {session.status}.")

    _finalize(db, session)
    log_action(db, ctx.user_id, "SESSION_COMPLETED", f"Séance {session.id}")
    db.commit()
    db.refresh(session)
    return to_response(session)


def cancel_session(db: Session, ctx: RequestContext, session_id: uuid.UUID) -> SessionResponse:
    """Annule une séance planifiée ou active. Lève ValueError si elle est déjà terminée."""
    session = get_owned_session(db, ctx, session_id)
    if session.status in TERMINAL_STATUSES:
        raise ValueError(f"Impossible d'annuler la séance : elle est déjà en statut {session.status}.")

    session.status = "cancelled"
    session.expires_at = None
    log_action(db, ctx.user_id, "SESSION_CANCELLED", f"Séance {session.id}")
    db.commit()
    db.refresh(session)

    logger.info("Séance annulée : %s", session.id)
    return to_response(session)


def complete_expired_sessions(db: Session, now: Optional[datetime] = None) -> int:
    """
    Tâche planifiée : clôture les séances actives dont la durée prévue est écoulée.
    Retourne le nombre de séances clôturées.
    """
    now = now or utcnow()
    active_sessions = db.execute(
        select(ClassSession).where(ClassSession.status == "active")
    ).scalars().all()

    completed = 0
    for session in active_sessions:
        duration = session.duration_minutes or settings.DEFAULT_SESSION_DURATION_MINUTES
        end_time = as_utc(session.start_time) + timedelta(minutes=duration)
        if now > end_time:
            _finalize(db, session)
            log_action(db, None, "SESSION_COMPLETED", f"Séance {session.id} (clôture automatique)")
            completed += 1

    if completed:
        db.commit()
        logger.info("%d séance(s) expirée(s) clôturée(s)", completed)
    return completed


def get_owned_session(db: Session, ctx: RequestContext, session_id: uuid.UUID) -> ClassSession:
    """
    Charge une séance en vérifiant que l'appelant peut agir dessus :
    - Formateur : ses propres séances
    - Responsable : les séances des programmes qu'il gère
    - SuperAdmin : toutes
    """
    session = db.get(ClassSession, session_id)
    if session is None:
        raise ValueError(f"Séance {session_id} introuvable.")
    if ctx.role == FACILITATOR and session.facilitator_id != ctx.user_id:
        raise ValueError(f"Séance {session_id} introuvable pour ce formateur.")
    if ctx.role == PROGRAM_MANAGER:
        get_accessible_program(db, ctx, session.program_id)
    return session


def _issue_qr(session: ClassSession, now: datetime, expiration_minutes: Optional[int]) -> str:
    qr_data, expires_at = build_session_qr(session.id, now, expiration_minutes)
    session.qr_data = qr_data
    session.expires_at = expires_at
    return qr_data


def _online_started(session: ClassSession, qr_data: str) -> OnlineSessionStarted:
    return OnlineSessionStarted(
        session=to_response(session),
        qr_data_string=qr_data,
        qr_code_image=qr_image_data_url(qr_data),
        access_link=session.access_link,
        expires_at=session.expires_at,
    )


def _finalize(db: Session, session: ClassSession) -> None:
    """Passe la séance en completed, invalide le QR et recalcule présents / absents."""
    counts = dict(db.execute(
        select(Attendance.status, func.count())
        .where(Attendance.session_id == session.id)
        .group_by(Attendance.status)
    ).all())

    enrolled = db.execute(
        select(func.count())
        .select_from(ProgramTrainee)
        .where(ProgramTrainee.program_id == session.program_id)
    ).scalar() or 0

    present = counts.get("Present", 0) + counts.get("Late", 0)
    excused = counts.get("Excused", 0)

    session.status = "completed"
    session.expires_at = None
    session.total_present = present
    session.total_absent = max(0, enrolled - present - excused)


def to_response(session: ClassSession) -> SessionResponse:
    return SessionResponse(
        id=session.id,
        program_id=session.program_id,
        facilitator_id=session.facilitator_id,
        title=session.title,
        description=session.description,
        type=session.session_type,
        start_time=session.start_time,
        duration_minutes=session.duration_minutes or settings.DEFAULT_SESSION_DURATION_MINUTES,
        status=session.status,
        access_link=session.access_link,
        latitude=session.latitude,
        longitude=session.longitude,
        radius_meters=session.radius_meters,
        expires_at=session.expires_at,
        total_present=session.total_present or 0,
        total_absent=session.total_absent or 0,
        created_at=session.created_at,
    )
