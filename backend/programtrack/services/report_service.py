"""
Rapports de présence d'un programme (vue responsable de programme).

Flux :
  1. Compter les séances tenues (active ou completed) sur la période
  2. Charger les apprenants inscrits et leurs présences sur la période
  3. Réduire par apprenant (aggregation.summarize_student)
  4. Réduire le programme (aggregation.aggregate_program)

Les taux ne sont calculés qu'ici : le front-end se contente d'afficher les valeurs.
"""

import csv
import io
import uuid
import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from programtrack.models.attendance import Attendance
from programtrack.models.class_session import ClassSession
from programtrack.models.program import Program, ProgramTrainee
from programtrack.models.user import User
from programtrack.schemas.report import (
    AttendanceRecordView,
    AttendanceSheet,
    ProgramSummaryReport,
)
from programtrack.security import RequestContext
from programtrack.services.aggregation import aggregate_program, summarize_student
from programtrack.services.attendance_sheet import build_attendance_sheet

logger = logging.getLogger(__name__)

HELD_STATUSES = ("active", "completed")


def get_program_summary(
    db: Session,
    program_id: uuid.UUID,
    start_date: date,
    end_date: date,
) -> ProgramSummaryReport:
    """
    Résumé de présence par apprenant et statistiques globales sur [start_date, end_date].

    Un apprenant sans aucune présence apparaît quand même (compteurs à 0).
    Lève ValueError si le programme est introuvable ou la période incohérente.
    """
    if start_date > end_date:
        raise ValueError("La date de début doit précéder la date de fin.")

    program = db.get(Program, program_id)
    if program is None:
        raise ValueError(f"Programme {program_id} introuvable.")

    period_start = datetime.combine(start_date, time.min, tzinfo=timezone.utc)
    period_end = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=timezone.utc)

    total_sessions = db.execute(
        select(func.count())
        .select_from(ClassSession)
        .where(
            ClassSession.program_id == program_id,
            ClassSession.status.in_(HELD_STATUSES),
            ClassSession.start_time >= period_start,
            ClassSession.start_time < period_end,
        )
    ).scalar() or 0

    trainees = db.execute(
        select(User)
        .join(ProgramTrainee, ProgramTrainee.trainee_id == User.id)
        .where(ProgramTrainee.program_id == program_id)
        .order_by(User.name)
    ).scalars().all()

    rows = db.execute(
        select(Attendance, ClassSession.title)
        .join(ClassSession, ClassSession.id == Attendance.session_id)
        .where(
            Attendance.program_id == program_id,
            # Mêmes séances que le dénominateur total_sessions
            ClassSession.status.in_(HELD_STATUSES),
            ClassSession.start_time >= period_start,
            ClassSession.start_time < period_end,
        )
        .order_by(Attendance.date, Attendance.check_in)
    ).all()

    records_by_user = defaultdict(list)
    for attendance, session_title in rows:
        records_by_user[attendance.user_id].append(_to_record_view(attendance, session_title))

    report = [
        summarize_student(
            records_by_user.get(trainee.id, []),
            total_sessions,
            user_id=trainee.id,
            name=trainee.name,
            email=trainee.email,
            role=trainee.role,
        )
        for trainee in trainees
    ]

    logger.info(
        "Résumé de présence, programme %s du %s au %s : %d apprenants, %d séances",
        program_id, start_date, end_date, len(report), total_sessions,
    )

    return ProgramSummaryReport(
        report=report,
        total_sessions=total_sessions,
        overall=aggregate_program(report, total_sessions),
    )


def get_student_sheet(
    db: Session,
    program_id: uuid.UUID,
    user_id: uuid.UUID,
    start_date: date,
    end_date: date,
) -> AttendanceSheet:
    """Fiche détaillée d'un apprenant, construite à partir du résumé du programme."""
    summary = get_program_summary(db, program_id, start_date, end_date)
    student = next((s for s in summary.report if s.user_id == user_id), None)
    if student is None:
        raise ValueError(f"Apprenant {user_id} introuvable dans ce programme.")
    return build_attendance_sheet(student)


def export_program_summary_csv(
    db: Session,
    program_id: uuid.UUID,
    start_date: date,
    end_date: date,
) -> str:
    """
    Exporte le résumé en CSV (séparateur ;, UTF-8 BOM pour Excel).
    La dernière ligne reprend les totaux du programme.
    """
    summary = get_program_summary(db, program_id, start_date, end_date)

    output = io.StringIO()
    writer = csv.writer(output, delimiter=";")
    writer.writerow(["name", "email", "present", "absent", "late", "excused", "attendance_rate"])

    for s in summary.report:
        writer.writerow([s.name, s.email, s.present, s.absent, s.late, s.excused, s.attendance_rate])

    overall = summary.overall
    writer.writerow(["TOTAL", "", overall.present, overall.absent, overall.late, "", overall.rate])

    return "\ufeff" + output.getvalue()  # BOM pour compatibilité Excel


def get_my_history(db: Session, ctx: RequestContext) -> list[AttendanceRecordView]:
    """Historique de présence de l'apprenant appelant, du plus récent au plus ancien."""
    rows = db.execute(
        select(Attendance, ClassSession.title)
        .join(ClassSession, ClassSession.id == Attendance.session_id)
        .where(Attendance.user_id == ctx.user_id)
        .order_by(Attendance.date.desc())
    ).all()
    return [_to_record_view(attendance, title) for attendance, title in rows]


def _to_record_view(attendance: Attendance, session_title: str) -> AttendanceRecordView:
    return AttendanceRecordView(
        date=attendance.date,
        status=attendance.status,
        method=attendance.method,
        check_in=attendance.check_in,
        session_title=session_title,
    )
