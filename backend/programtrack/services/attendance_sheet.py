"""
Construction de la fiche détaillée d'un apprenant (cartes, calendrier, journal).

La fiche est une simple mise en forme d'un StudentSummary déjà calculé :
aucun compteur n'est recalculé ici.
"""

from programtrack.schemas.report import (
    AttendanceSheet,
    CalendarBucket,
    LogRow,
    StatCard,
    StudentSummary,
)

# Ordre d'affichage de la légende et couleur de surlignage par statut
CALENDAR_BUCKETS = [
    ("present", "Present", "#4ade80"),
    ("late", "Late", "#facc15"),
    ("absent", "Absent", "#f87171"),
    ("excused", "Excused", "#60a5fa"),
]

NOT_AVAILABLE = "N/A"
EMPTY_MESSAGE = "Aucune présence enregistrée sur cette période."


def build_attendance_sheet(student: StudentSummary) -> AttendanceSheet:
    """Met en forme la fiche d'un apprenant à partir de son résumé."""
    stats = [
        StatCard(
            key="rate",
            title="Taux de présence",
            value=f"{student.attendance_rate}%",
            subtext="Séances suivies / séances tenues (hors excusées)",
        ),
        StatCard(
            key="present",
            title="Présent",
            value=str(student.present),
            subtext="Retards inclus",
        ),
        StatCard(
            key="absent",
            title="Absent",
            value=str(student.absent),
            subtext="Absences non excusées",
        ),
        StatCard(
            key="late",
            title="En retard",
            value=str(student.late),
            subtext="Comptés comme présents",
        ),
    ]

    # Nouveau dictionnaire à chaque appel : aucune date ne fuit d'un apprenant à l'autre
    dates_by_status = {status: [] for _, status, _ in CALENDAR_BUCKETS}
    for record in student.records:
        if record.status in dates_by_status:
            dates_by_status[record.status].append(record.date)

    calendar = [
        CalendarBucket(status=key, color=color, dates=dates_by_status[status])
        for key, status, color in CALENDAR_BUCKETS
    ]

    rows = [
        LogRow(
            date=record.date,
            session_title=record.session_title or NOT_AVAILABLE,
            status=record.status,
            check_in=_format_check_in(record),
        )
        for record in student.records
    ]

    return AttendanceSheet(
        user_id=student.user_id,
        name=student.name,
        email=student.email,
        stats=stats,
        calendar=calendar,
        rows=rows,
        empty_message=None if rows else EMPTY_MESSAGE,
    )


def _format_check_in(record) -> str:
    """Heure de pointage HH:MM, ou N/A pour une absence ou sans pointage."""
    if record.check_in is None or record.status == "Absent":
        return NOT_AVAILABLE
    return record.check_in.strftime("%H:%M")
