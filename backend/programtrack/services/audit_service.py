"""
Journal d'audit (master log) : écriture des actions et consultation paginée.
"""

import math
import uuid
from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from programtrack.models.audit_log import AuditLog
from programtrack.schemas.audit_log import LogEntry, MasterLogPage

LOG_ACTIONS = {
    "PROGRAM_CREATED",
    "PROGRAM_TRAINEES_ADDED",
    "SESSION_CREATED",
    "SESSION_STARTED",
    "SESSION_COMPLETED",
    "SESSION_CANCELLED",
    "SESSION_QR_REGENERATED",
    "ATTENDANCE_MARKED",
    "ATTENDANCE_EXCUSED",
}


def log_action(db: Session, user_id: Optional[uuid.UUID], action: str, details: str = "") -> AuditLog:
    """
    Ajoute une entrée au journal dans la transaction en cours.
    Le commit reste à la charge de l'appelant (l'action et sa trace sont atomiques).
    """
    entry = AuditLog(user_id=user_id, action=action, details=details)
    db.add(entry)
    return entry


def get_master_log(
    db: Session,
    page: int = 1,
    limit: int = 20,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    action: Optional[str] = None,
) -> MasterLogPage:
    """
    Retourne une page du journal, du plus récent au plus ancien.
    Les bornes de dates sont inclusives. Lève ValueError si la période est incohérente.
    """
    if start_date and end_date and start_date > end_date:
        raise ValueError("La date de début doit précéder la date de fin.")

    conditions = []
    if start_date:
        conditions.append(AuditLog.created_at >= datetime.combine(start_date, time.min))
    if end_date:
        conditions.append(AuditLog.created_at < datetime.combine(end_date + timedelta(days=1), time.min))
    if action:
        conditions.append(AuditLog.action == action)

    total = db.execute(
        select(func.count()).select_from(AuditLog).where(*conditions)
    ).scalar() or 0

    entries = db.execute(
        select(AuditLog)
        .where(*conditions)
        .order_by(AuditLog.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).scalars().all()

    total_pages = max(1, math.ceil(total / limit))

    return MasterLogPage(
        docs=[LogEntry.model_validate(e) for e in entries],
        page=page,
        limit=limit,
        total_pages=total_pages,
        has_next_page=page < total_pages,
        has_prev_page=page > 1,
        total_docs=total,
    )
