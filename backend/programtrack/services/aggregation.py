"""
Agrégation des présences : taux par apprenant et statistiques globales d'un programme.

Règles métier :
- `Late` compte comme présent (sous-catégorie de `Present`)
- `Excused` est retiré du dénominateur : une absence excusée ne pénalise pas le taux
- Dénominateur nul ou négatif → taux 0 (jamais de division par zéro)

Fonctions pures : aucune dépendance à la base, aucun état caché.
Toute l'agrégation de l'application passe par ce module.
"""

import uuid
from typing import Iterable, List

from programtrack.schemas.report import AttendanceRecordView, OverallStats, StudentSummary

PRESENT_STATUSES = {"Present", "Late"}


def attendance_rate(present: int, total_sessions: int, excused: int) -> int:
    """
    Taux de présence entier (0-100), arrondi au plus proche (.5 vers le haut).

    Le calcul reste en arithmétique entière : round() de Python arrondit au pair
    (round(0.5) == 0), ce qui ne correspond pas au comportement attendu.
    """
    denominator = total_sessions - excused
    if denominator <= 0:
        return 0
    rate = (200 * present + denominator) // (2 * denominator)
    return max(0, min(100, rate))


def summarize_student(
    records: Iterable[AttendanceRecordView],
    total_sessions: int,
    user_id: uuid.UUID,
    name: str,
    email: str,
    role: str = "TRAINEE",
) -> StudentSummary:
    """
    Réduit les présences d'un apprenant sur une période en un résumé.

    Les présences doivent déjà être filtrées sur la période ; `total_sessions`
    est le nombre de séances tenues par le programme sur cette même période.
    """
    records = list(records)
    present = sum(1 for r in records if r.status in PRESENT_STATUSES)
    absent = sum(1 for r in records if r.status == "Absent")
    late = sum(1 for r in records if r.status == "Late")
    excused = sum(1 for r in records if r.status == "Excused")

    return StudentSummary(
        user_id=user_id,
        name=name,
        email=email,
        role=role,
        present=present,
        absent=absent,
        late=late,
        excused=excused,
        attendance_rate=attendance_rate(present, total_sessions, excused),
        records=records,
    )


def aggregate_program(summaries: List[StudentSummary], total_sessions: int) -> OverallStats:
    """
    Somme les résumés des apprenants en statistiques globales.

    Présences possibles = nb apprenants × séances tenues, moins les excusés.
    Une liste vide donne des compteurs et un taux à 0.
    """
    total_present = sum(s.present for s in summaries)
    total_absent = sum(s.absent for s in summaries)
    total_late = sum(s.late for s in summaries)
    total_excused = sum(s.excused for s in summaries)

    total_possible = len(summaries) * total_sessions

    return OverallStats(
        rate=attendance_rate(total_present, total_possible, total_excused),
        present=total_present,
        absent=total_absent,
        late=total_late,
    )
