"""
Service d'enregistrement des présences (pointage).

Trois méthodes, selon le type de séance :
- qr_code     : apprenant, séance en ligne active, QR signé et non expiré
- geolocation : apprenant, séance présentielle active, position dans le périmètre
- manual      : personnel (formateur, responsable), toujours disponible, tout statut

Une présence est unique par couple (apprenant, séance) et n'est jamais modifiée.
"""

import uuid
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from programtrack.config import settings
from programtrack.models.attendance import Attendance
from programtrack.models.class_session import ClassSession
from programtrack.schemas.attendance import (
    AttendanceResponse,
    CheckInResult,
    GeolocationCheckIn,
    ManualAttendanceCreate,
    QrCheckIn,
)
from programtrack.security import RequestContext
from programtrack.services.audit_service import log_action
from programtrack.services.geolocation_service import distance_meters
from programtrack.services.program_service import is_trainee_enrolled
from programtrack.services.qr_service import verify_session_qr
from programtrack.services.session_service import as_utc, get_owned_session, utcnow

logger = logging.getLogger(__name__)


def resolve_checkin_status(session: ClassSession, now: datetime) -> str:
    """
    Present jusqu'à start_time + late_threshold_minutes, Late au-delà.
    Lève ValueError si la séance n'accepte pas les retards.
    """
    threshold = session.late_threshold_minutes or settings.DEFAULT_LATE_THRESHOLD_MINUTES
    deadline = as_utc(session.start_time) + timedelta(minutes=threshold)
    if now <= deadline:
        return "Present"
    if not session.allow_late_attendance:
        raise ValueError("Pointage refusé : les retards ne sont pas acceptés pour cette séance.")
    return "Late"


def mark_geolocation_attendance(
    db: Session,
    ctx: RequestContext,
    data: GeolocationCheckIn,
    now: Optional[datetime] = None,
) -> CheckInResult:
    """
    Pointage d'un apprenant par géolocalisation.

    Lève ValueError si la séance est introuvable, non présentielle, non active,
    si l'apprenant n'est pas inscrit, hors périmètre, ou a déjà pointé.
    """
    now = now or utcnow()
    session = db.get(ClassSession, data.session_id)
    if session is None:
        raise ValueError(f"Séance {data.session_id} introuvable.")
    if session.session_type != "physical":
        raise ValueError("La géolocalisation n'est acceptée que pour une séance présentielle.")
    if session.status != "active":
        raise ValueError(f"Pointage impossible : la séance est en statut {session.status}.")
    if not is_trainee_enrolled(db, session.program_id, ctx.user_id):
        raise ValueError("Vous n'êtes pas inscrit à ce programme.")
    if session.latitude is None or session.longitude is None:
        raise ValueError("Le lieu de la séance n'est pas encore défini.")

    distance = distance_meters(data.latitude, data.longitude, session.latitude, session.longitude)
    if distance > session.radius_meters:
        raise ValueError(
            f"Vous êtes hors du périmètre de la séance ({round(distance)} m, "
            f"maximum {session.radius_meters} m)."
        )

    status = resolve_checkin_status(session, now)
    attendance = _record(
        db, session, ctx,
        user_id=ctx.user_id,
        status=status,
        method="geolocation",
        check_in=now,
        latitude=data.latitude,
        longitude=data.longitude,
    )
    return CheckInResult(attendance=attendance, access_link=session.access_link)


def mark_qr_attendance(
    db: Session,
    ctx: RequestContext,
    data: QrCheckIn,
    now: Optional[datetime] = None,
) -> CheckInResult:
    """
    Pointage d'un apprenant par scan du QR code d'une séance en ligne.

    Seul le dernier QR émis pour la séance est accepté, jusqu'à son expiration.
    """
    now = now or utcnow()
    session_id = verify_session_qr(data.qr_data)

    session = db.get(ClassSession, session_id)
    if session is None:
        raise ValueError(f"Séance {session_id} introuvable.")
    if session.session_type != "online":
        raise ValueError("Le QR code n'est accepté que pour une séance en ligne.")
    if session.status != "active":
        raise ValueError(f"Pointage impossible : la séance est en statut {session.status}.")
    if session.qr_data != data.qr_data:
        raise ValueError("QR code invalide : un QR plus récent a été émis pour cette séance.")
    if session.expires_at is None or now > as_utc(session.expires_at):
        raise ValueError("QR code expiré : demandez au formateur d'en générer un nouveau.")
    if not is_trainee_enrolled(db, session.program_id, ctx.user_id):
        raise ValueError("Vous n'êtes pas inscrit à ce programme.")

    status = resolve_checkin_status(session, now)
    attendance = _record(
        db, session, ctx,
        user_id=ctx.user_id,
        status=status,
        method="qr_code",
        check_in=now,
    )
    return CheckInResult(attendance=attendance, access_link=session.access_link)


def mark_manual_attendance(
    db: Session,
    ctx: RequestContext,
    session_id: uuid.UUID,
    data: ManualAttendanceCreate,
    now: Optional[datetime] = None,
) -> AttendanceResponse:
    """
    Saisie manuelle par le personnel, quel que soit le type de séance.

    Une absence excusée peut être saisie avant la séance (statut scheduled).
    Lève ValueError si la séance est annulée ou si l'apprenant n'est pas inscrit.
    """
    now = now or utcnow()
    session = get_owned_session(db, ctx, session_id)
    if session.status == "cancelled":
        raise ValueError("Impossible de saisir une présence : la séance est annulée.")
    if not is_trainee_enrolled(db, session.program_id, data.user_id):
        raise ValueError(f"L'apprenant {data.user_id} n'est pas inscrit à ce programme.")

    check_in = now if data.status in ("Present", "Late") else None
    return _record(
        db, session, ctx,
        user_id=data.user_id,
        status=data.status,
        method="manual",
        check_in=check_in,
        reason=data.reason,
    )


def _record(
    db: Session,
    session: ClassSession,
    ctx: RequestContext,
    user_id: uuid.UUID,
    status: str,
    method: str,
    check_in: Optional[datetime],
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    reason: Optional[str] = None,
) -> AttendanceResponse:
    """Crée la présence, met à jour les compteurs de la séance et trace l'action."""
    existing = db.execute(
        select(Attendance).where(
            Attendance.user_id == user_id,
            Attendance.session_id == session.id,
        )
    ).scalar()
    if existing:
        raise ValueError("Présence déjà enregistrée pour cette séance.")

    attendance = Attendance(
        id=uuid.uuid4(),
        user_id=user_id,
        session_id=session.id,
        program_id=session.program_id,
        date=as_utc(session.start_time).date(),
        status=status,
        check_in=check_in,
        method=method,
        latitude=latitude,
        longitude=longitude,
        reason=reason,
        marked_by=ctx.user_id,
    )
    db.add(attendance)

    if status in ("Present", "Late"):
        session.total_present = (session.total_present or 0) + 1
    elif status == "Absent":
        session.total_absent = (session.total_absent or 0) + 1

    action = "ATTENDANCE_EXCUSED" if status == "Excused" else "ATTENDANCE_MARKED"
    log_action(db, ctx.user_id, action, f"{user_id}, séance {session.id} : {status} ({method})")

    try:
        db.commit()
    except IntegrityError:
        # Pointage concurrent sur le même couple (apprenant, séance)
        db.rollback()
        raise ValueError("Présence déjà enregistrée pour cette séance.")
    db.refresh(attendance)

    logger.info(
        "Présence enregistrée : apprenant %s, séance %s, %s (%s)",
        user_id, session.id, status, method,
    )
    return AttendanceResponse.model_validate(attendance)
