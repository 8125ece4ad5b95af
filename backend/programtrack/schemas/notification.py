"""
Schémas Pydantic pour les rappels de séance envoyés par email.
"""

from typing import List

from programtrack.schemas.common import CamelModel


class ReminderResult(CamelModel):
    """Rapport d'un passage de la tâche de rappel."""

    sessions_count: int
    sent_count: int
    no_email_count: int
    errors: List[str]
