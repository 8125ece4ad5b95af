"""
Tests des tâches planifiées (clôture automatique et rappels).
"""

from unittest.mock import MagicMock, patch

from programtrack.schemas.notification import ReminderResult
from programtrack.scheduler import complete_expired_sessions_job, send_session_reminders_job


def test_job_cloture_avec_sa_propre_session():
    db = MagicMock()
    with patch("programtrack.scheduler.session_scope") as scope, \
            patch("programtrack.services.session_service.complete_expired_sessions", return_value=2) as mock:
        scope.return_value.__enter__.return_value = db
        complete_expired_sessions_job()

    mock.assert_called_once_with(db)


def test_job_cloture_erreur_journalisee_sans_exception():
    with patch("programtrack.scheduler.session_scope"), \
            patch("programtrack.services.session_service.complete_expired_sessions",
                  side_effect=RuntimeError("BDD indisponible")), \
            patch("programtrack.scheduler.logger") as mock_logger:
        complete_expired_sessions_job()

    mock_logger.error.assert_called_once()


def test_job_rappels():
    result = ReminderResult(sessions_count=1, sent_count=3, no_email_count=0, errors=[])
    with patch("programtrack.scheduler.session_scope"), \
            patch("programtrack.services.notification_service.send_session_reminders",
                  return_value=result) as mock, \
            patch("programtrack.scheduler.logger") as mock_logger:
        send_session_reminders_job()

    mock.assert_called_once()
    mock_logger.info.assert_called_once()
