"""
Router pour le pointage des présences.
- Apprenant : QR code (séance en ligne) ou géolocalisation (séance présentielle)
- Personnel : saisie manuelle, tout statut, y compris absence excusée
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from programtrack.database import get_db
from programtrack.routers.errors import http_error
from programtrack.schemas.attendance import (
    AttendanceResponse,
    CheckInResult,
    GeolocationCheckIn,
    ManualAttendanceCreate,
    QrCheckIn,
)
from programtrack.schemas.report import AttendanceRecordView
from programtrack.security import RequestContext, require
from programtrack.services import checkin_service, report_service

router = APIRouter(prefix="/api/v1/attendance", tags=["Présences"])


@router.post(
    "/mark-geolocation",
    response_model=CheckInResult,
    status_code=201,
    summary="Pointer par géolocalisation",
)
def mark_geolocation(
    data: GeolocationCheckIn,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require("attendance.check_in")),
):
    """
    Enregistre la présence de l'apprenant si sa position est dans le périmètre
    de la séance. La distance est toujours vérifiée côté serveur.
    """
    try:
        return checkin_service.mark_geolocation_attendance(db, ctx, data)
    except ValueError as e:
        raise http_error(e)


@router.post("/qr-attendance", response_model=CheckInResult, status_code=201, summary="Pointer par QR code")
def mark_qr(
    data: QrCheckIn,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require("attendance.check_in")),
):
    """
    Enregistre la présence de l'apprenant à partir du QR scanné.
    Retourne le lien d'accès à la séance en ligne.
    """
    try:
        return checkin_service.mark_qr_attendance(db, ctx, data)
    except ValueError as e:
        raise http_error(e)


@router.post(
    "/sessions/{session_id}/manual",
    response_model=AttendanceResponse,
    status_code=201,
    summary="Saisie manuelle d'une présence",
)
def mark_manual(
    session_id: uuid.UUID,
    data: ManualAttendanceCreate,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require("attendance.manual")),
):
    """
    Saisie par le formateur ou le responsable de programme.
    Une absence excusée exige une justification et est tracée dans le journal d'audit.
    """
    try:
        return checkin_service.mark_manual_attendance(db, ctx, session_id, data)
    except ValueError as e:
        raise http_error(e)


@router.get("/my-history", response_model=List[AttendanceRecordView], summary="Mon historique de présence")
def my_history(
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require("attendance.history")),
):
    return report_service.get_my_history(db, ctx)
