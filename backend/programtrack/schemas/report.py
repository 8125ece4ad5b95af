"""
Schémas Pydantic des rapports de présence (vue responsable de programme).

Ces objets sont dérivés des présences brutes et ne sont jamais persistés.
"""

import uuid
import datetime as dt
from datetime import datetime
from typing import List, Optional

from programtrack.schemas.common import CamelModel


class AttendanceRecordView(CamelModel):
    """Présence telle qu'affichée dans le résumé et la fiche détaillée."""
    date: dt.date
    status: str
    method: str
    check_in: Optional[datetime] = None
    session_title: Optional[str] = None


class StudentSummary(CamelModel):
    user_id: uuid.UUID
    name: str
    email: str
    role: str = "TRAINEE"
    present: int
    absent: int
    late: int
    excused: int
    attendance_rate: int
    records: List[AttendanceRecordView] = []


class OverallStats(CamelModel):
    rate: int
    present: int
    absent: int
    late: int


class ProgramSummaryReport(CamelModel):
    report: List[StudentSummary]
    total_sessions: int
    overall: OverallStats


class StatCard(CamelModel):
    key: str
    title: str
    value: str
    subtext: str


class CalendarBucket(CamelModel):
    """Dates à surligner dans le calendrier pour un statut donné."""
    status: str
    color: str
    dates: List[dt.date]


class LogRow(CamelModel):
    date: dt.date
    session_title: str
    status: str
    check_in: str  # "HH:MM" ou "N/A"


class AttendanceSheet(CamelModel):
    """Fiche détaillée d'un apprenant : cartes, calendrier et journal."""
    user_id: uuid.UUID
    name: str
    email: str
    stats: List[StatCard]
    calendar: List[CalendarBucket]
    rows: List[LogRow]
    empty_message: Optional[str] = None
