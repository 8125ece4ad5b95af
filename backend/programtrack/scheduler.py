"""
Planificateur APScheduler des tâches de fond liées aux séances.

Deux tâches, toutes les SCHEDULER_INTERVAL_MINUTES :
- clôture automatique des séances actives dont la durée prévue est écoulée
- envoi des rappels email REMINDER_LEAD_MINUTES avant le début d'une séance
"""

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from programtrack.config import settings
from programtrack.database import session_scope

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def complete_expired_sessions_job() -> None:
    """
    Tâche planifiée : passe en completed les séances dont la fin est dépassée.
    Import local pour éviter les imports circulaires.
    """
    from programtrack.services.session_service import complete_expired_sessions

    try:
        with session_scope() as db:
            count = complete_expired_sessions(db)
        if count:
            logger.info("Clôture automatique : %d séance(s) terminée(s)", count)
    except Exception as exc:
        logger.error("Erreur lors de la clôture automatique des séances : %s", exc)


def send_session_reminders_job() -> None:
    """Tâche planifiée : envoie les rappels des séances qui commencent bientôt."""
    from programtrack.services.notification_service import send_session_reminders

    try:
        with session_scope() as db:
            result = send_session_reminders(db)
        if result.sessions_count:
            logger.info(
                "Rappels : %d séance(s), %d envoyés, %d sans email, %d erreurs",
                result.sessions_count,
                result.sent_count,
                result.no_email_count,
                len(result.errors),
            )
    except Exception as exc:
        logger.error("Erreur lors de l'envoi des rappels de séance : %s", exc)


def start_scheduler() -> None:
    """Démarre le planificateur en arrière-plan (appelé au démarrage de l'API)."""
    scheduler.add_job(
        complete_expired_sessions_job,
        trigger="interval",
        minutes=settings.SCHEDULER_INTERVAL_MINUTES,
        id="complete_expired_sessions",
        replace_existing=True,
    )
    scheduler.add_job(
        send_session_reminders_job,
        trigger="interval",
        minutes=settings.SCHEDULER_INTERVAL_MINUTES,
        id="session_reminders",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        "Scheduler démarré : clôture des séances et rappels toutes les %d minutes.",
        settings.SCHEDULER_INTERVAL_MINUTES,
    )


def stop_scheduler() -> None:
    """Arrête le planificateur proprement (appelé à l'arrêt de l'API)."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler arrêté.")
