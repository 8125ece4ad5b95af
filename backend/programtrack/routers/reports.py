"""
Router pour les rapports de présence et le journal d'audit.
Résumé par programme, export CSV, fiche détaillée d'un apprenant, master log.
"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from programtrack.config import settings
from programtrack.database import get_db
from programtrack.routers.errors import http_error
from programtrack.schemas.audit_log import MasterLogPage
from programtrack.schemas.report import AttendanceSheet, ProgramSummaryReport
from programtrack.security import RequestContext, require
from programtrack.services import audit_service, program_service, report_service

router = APIRouter(prefix="/api/v1", tags=["Rapports"])


@router.get(
    "/attendance/report/program/{program_id}/summary",
    response_model=ProgramSummaryReport,
    summary="Résumé de présence d'un programme",
)
def program_summary(
    program_id: uuid.UUID,
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require("reports.summary")),
):
    """
    Une ligne par apprenant inscrit (compteurs et taux), plus les statistiques globales.
    Un programme sans présence sur la période renvoie des compteurs à zéro.
    """
    try:
        program_service.get_accessible_program(db, ctx, program_id)
        return report_service.get_program_summary(db, program_id, start_date, end_date)
    except ValueError as e:
        raise http_error(e)


@router.get(
    "/attendance/report/program/{program_id}/summary/export",
    summary="Exporter le résumé de présence (CSV)",
)
def export_program_summary(
    program_id: uuid.UUID,
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require("reports.export")),
):
    """Export CSV (séparateur ;, UTF-8 BOM) du résumé, ouvrable directement dans Excel."""
    try:
        program_service.get_accessible_program(db, ctx, program_id)
        content = report_service.export_program_summary_csv(db, program_id, start_date, end_date)
    except ValueError as e:
        raise http_error(e)

    filename = f"presences_{program_id}_{start_date}_{end_date}.csv"
    return StreamingResponse(
        iter([content]),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get(
    "/attendance/report/program/{program_id}/students/{user_id}/sheet",
    response_model=AttendanceSheet,
    summary="Fiche de présence détaillée d'un apprenant",
)
def student_sheet(
    program_id: uuid.UUID,
    user_id: uuid.UUID,
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require("reports.summary")),
):
    try:
        program_service.get_accessible_program(db, ctx, program_id)
        return report_service.get_student_sheet(db, program_id, user_id, start_date, end_date)
    except ValueError as e:
        raise http_error(e)


@router.get("/reports/master-log", response_model=MasterLogPage, summary="Journal d'audit paginé")
def master_log(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=settings.MASTER_LOG_MAX_LIMIT),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    action: Optional[str] = None,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require("reports.master_log")),
):
    """Réservé au SuperAdmin. Filtres optionnels : période (bornes incluses) et type d'action."""
    if action and action not in audit_service.LOG_ACTIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Action inconnue. Valeurs acceptées : {sorted(audit_service.LOG_ACTIONS)}",
        )
    try:
        return audit_service.get_master_log(db, page, limit, start_date, end_date, action)
    except ValueError as e:
        raise http_error(e)
