"""
Contexte de requête et contrôle d'accès par rôle.

Le token Bearer (JWT HS256) est émis par le service d'authentification ;
l'API se contente de le vérifier et d'en extraire l'identité (`sub`) et le rôle.
Le contexte obtenu est passé explicitement aux services qui en ont besoin.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from programtrack.config import settings

SUPER_ADMIN = "SUPER_ADMIN"
PROGRAM_MANAGER = "PROGRAM_MANAGER"
FACILITATOR = "FACILITATOR"
TRAINEE = "TRAINEE"
IT_SUPPORT = "IT_SUPPORT"

ROLES = {SUPER_ADMIN, PROGRAM_MANAGER, FACILITATOR, TRAINEE, IT_SUPPORT}
STAFF_ROLES = {FACILITATOR, PROGRAM_MANAGER}

# Ressource → rôles autorisés. Le SuperAdmin passe tous les contrôles.
RESOURCE_ROLES = {
    "programs.view": ROLES,
    "programs.manage": {PROGRAM_MANAGER},
    "sessions.manage": {FACILITATOR},
    "sessions.close": STAFF_ROLES,
    "sessions.view": STAFF_ROLES | {TRAINEE},
    "sessions.attendance": STAFF_ROLES,
    "attendance.check_in": {TRAINEE},
    "attendance.manual": STAFF_ROLES,
    "attendance.history": {TRAINEE},
    "reports.summary": STAFF_ROLES,
    "reports.export": {PROGRAM_MANAGER},
    "reports.master_log": set(),
}

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class RequestContext:
    """Identité de l'appelant pour la durée d'une requête."""
    user_id: uuid.UUID
    role: str
    token: str = ""


def can_view(role: str, resource: str) -> bool:
    """Indique si un rôle a accès à une ressource. Ressource inconnue → refus."""
    if role not in ROLES or resource not in RESOURCE_ROLES:
        return False
    if role == SUPER_ADMIN:
        return True
    return role in RESOURCE_ROLES[resource]


def create_access_token(user_id: uuid.UUID, role: str, expires_minutes: Optional[int] = None) -> str:
    """Génère un JWT signé (outillage de test et scripts d'administration)."""
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    )
    payload = {"sub": str(user_id), "role": role, "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> RequestContext:
    """
    Vérifie la signature et l'expiration du token et construit le contexte.
    Lève ValueError si le token est invalide, expiré ou incomplet.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise ValueError("Token expiré.")
    except jwt.InvalidTokenError:
        raise ValueError("Token invalide.")

    role = payload.get("role")
    if role not in ROLES:
        raise ValueError("Rôle absent ou inconnu dans le token.")
    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise ValueError("Identifiant utilisateur invalide dans le token.")

    return RequestContext(user_id=user_id, role=role, token=token)


def get_request_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> RequestContext:
    """Dépendance FastAPI : 401 si le token est absent ou invalide."""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Authentification requise.")
    try:
        return decode_token(credentials.credentials)
    except ValueError as e:
        raise HTTPException(status_code=401, detail=str(e))


def require(resource: str):
    """Fabrique une dépendance qui vérifie l'accès du rôle à la ressource (403 sinon)."""

    def dependency(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
        if not can_view(ctx.role, resource):
            raise HTTPException(
                status_code=403,
                detail="Accès refusé : votre rôle ne permet pas cette action.",
            )
        return ctx

    return dependency
