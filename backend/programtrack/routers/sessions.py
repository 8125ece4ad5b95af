"""
Router pour les séances de cours : planification, consultation et cycle de vie
(démarrage en ligne par QR code, démarrage présentiel par géolocalisation,
clôture et annulation).
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from programtrack.database import get_db
from programtrack.routers.errors import http_error
from programtrack.schemas.attendance import AttendanceResponse
from programtrack.schemas.class_session import (
    LocationPayload,
    OnlineSessionStarted,
    QrIssueRequest,
    SessionCreate,
    SessionDetails,
    SessionResponse,
    SessionStatus,
    SessionType,
)
from programtrack.security import RequestContext, require
from programtrack.services import session_service

router = APIRouter(prefix="/api/v1/attendance", tags=["Séances"])


@router.post("/sessions", response_model=SessionResponse, status_code=201, summary="Planifier une séance")
def create_session(
    data: SessionCreate,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require("sessions.manage")),
):
    """
    Planifie une séance (statut scheduled) pour un programme.
    Le type (physical / online) et l'heure de début sont obligatoires.
    """
    try:
        return session_service.create_session(db, ctx, data)
    except ValueError as e:
        raise http_error(e)


@router.get(
    "/facilitator/sessions",
    response_model=List[SessionResponse],
    summary="Séances du formateur",
)
def list_facilitator_sessions(
    status: Optional[SessionStatus] = None,
    session_type: Optional[SessionType] = Query(None, alias="type"),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require("sessions.manage")),
):
    return session_service.list_facilitator_sessions(db, ctx, status=status, session_type=session_type)


@router.get("/trainee/sessions", response_model=List[SessionResponse], summary="Séances de l'apprenant")
def list_trainee_sessions(
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require("attendance.history")),
):
    """Séances des programmes auxquels l'apprenant est inscrit."""
    return session_service.list_trainee_sessions(db, ctx)


@router.get("/sessions/{session_id}", response_model=SessionDetails, summary="Détail d'une séance")
def get_session(
    session_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require("sessions.view")),
):
    try:
        return session_service.get_session_details(db, session_id)
    except ValueError as e:
        raise http_error(e)


@router.get(
    "/sessions/{session_id}/attendance",
    response_model=List[AttendanceResponse],
    summary="Présences d'une séance",
)
def get_session_attendance(
    session_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require("sessions.attendance")),
):
    try:
        return session_service.get_session_attendance(db, session_id)
    except ValueError as e:
        raise http_error(e)


@router.post(
    "/sessions/{session_id}/start-online",
    response_model=OnlineSessionStarted,
    summary="Démarrer une séance en ligne (QR code)",
)
def start_online_session(
    session_id: uuid.UUID,
    data: Optional[QrIssueRequest] = None,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require("sessions.manage")),
):
    """
    Passe la séance en active et génère un QR code signé.

    - Le QR expire après expirationMinutes (QR_TTL_MINUTES par défaut)
    - Seul le dernier QR émis est accepté au pointage
    - Réservé au formateur de la séance
    """
    expiration = data.expiration_minutes if data else None
    try:
        return session_service.start_online_session(db, ctx, session_id, expiration_minutes=expiration)
    except ValueError as e:
        raise http_error(e)


@router.post(
    "/sessions/{session_id}/regenerate-qr",
    response_model=OnlineSessionStarted,
    summary="Régénérer le QR code d'une séance en ligne",
)
def regenerate_session_qr(
    session_id: uuid.UUID,
    data: Optional[QrIssueRequest] = None,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require("sessions.manage")),
):
    """Émet un nouveau QR pour une séance active : l'ancien n'est plus accepté au pointage."""
    expiration = data.expiration_minutes if data else None
    try:
        return session_service.regenerate_session_qr(db, ctx, session_id, expiration_minutes=expiration)
    except ValueError as e:
        raise http_error(e)


@router.post(
    "/sessions/{session_id}/physical-attendance",
    response_model=SessionResponse,
    summary="Démarrer une séance présentielle (géolocalisation)",
)
def start_physical_session(
    session_id: uuid.UUID,
    location: LocationPayload,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require("sessions.manage")),
):
    """
    Passe la séance en active à partir de la position du formateur.
    Sans lieu prédéfini, cette position devient le lieu de la séance.
    """
    try:
        return session_service.start_physical_session(db, ctx, session_id, location)
    except ValueError as e:
        raise http_error(e)


@router.post("/sessions/{session_id}/complete", response_model=SessionResponse, summary="Clôturer une séance")
def complete_session(
    session_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require("sessions.close")),
):
    """Clôture une séance active et recalcule ses compteurs de présents et d'absents."""
    try:
        return session_service.complete_session(db, ctx, session_id)
    except ValueError as e:
        raise http_error(e)


@router.post("/sessions/{session_id}/cancel", response_model=SessionResponse, summary="Annuler une séance")
def cancel_session(
    session_id: uuid.UUID,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require("sessions.close")),
):
    try:
        return session_service.cancel_session(db, ctx, session_id)
    except ValueError as e:
        raise http_error(e)
