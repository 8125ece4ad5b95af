"""
Rappels automatiques envoyés aux apprenants avant le début d'une séance.

Flux :
  1. Chercher les séances scheduled qui commencent dans les REMINDER_LEAD_MINUTES
     et dont le rappel n'a pas encore été envoyé
  2. Pour chaque apprenant inscrit au programme :
     a. Skip si pas d'email
     b. Envoyer l'email (une erreur SMTP n'interrompt pas le lot)
  3. Marquer la séance comme notifiée (reminder_sent_at)
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from programtrack.config import settings
from programtrack.models.class_session import ClassSession
from programtrack.models.program import ProgramTrainee
from programtrack.models.user import User
from programtrack.schemas.notification import ReminderResult
from programtrack.services.email_service import send_session_reminder_email
from programtrack.services.session_service import as_utc, utcnow

logger = logging.getLogger(__name__)


def send_session_reminders(db: Session, now: Optional[datetime] = None) -> ReminderResult:
    """Envoie les rappels dus et retourne le rapport d'envoi."""
    now = now or utcnow()
    horizon = now + timedelta(minutes=settings.REMINDER_LEAD_MINUTES)

    sessions = db.execute(
        select(ClassSession).where(
            ClassSession.status == "scheduled",
            ClassSession.reminder_sent_at.is_(None),
            ClassSession.start_time > now,
            ClassSession.start_time <= horizon,
        )
    ).scalars().all()

    result = ReminderResult(sessions_count=len(sessions), sent_count=0, no_email_count=0, errors=[])

    for session in sessions:
        trainees = db.execute(
            select(User)
            .join(ProgramTrainee, ProgramTrainee.trainee_id == User.id)
            .where(ProgramTrainee.program_id == session.program_id)
        ).scalars().all()

        link = session.access_link or f"{settings.FRONTEND_URL}/dashboard/attendance"

        for trainee in trainees:
            if not trainee.email:
                result.no_email_count += 1
                continue
            try:
                send_session_reminder_email(
                    to_email=trainee.email,
                    trainee_name=trainee.name,
                    session_title=session.title,
                    start_time=as_utc(session.start_time),
                    session_link=link,
                )
                result.sent_count += 1
            except Exception as exc:
                error_msg = f"Erreur envoi rappel {trainee.email} : {exc}"
                result.errors.append(error_msg)
                logger.error(error_msg)

        session.reminder_sent_at = now

    if sessions:
        db.commit()

    return result
