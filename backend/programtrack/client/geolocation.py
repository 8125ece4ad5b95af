"""
Lecture de la position de l'appareil avant les opérations de géolocalisation.

Si la position ne peut pas être lue, aucune requête n'est envoyée à l'API :
la séance reste dans son état courant (scheduled) et l'utilisateur peut réessayer.
"""

import asyncio
import uuid
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from programtrack.client.data_source import AttendanceDataSource
from programtrack.config import settings
from programtrack.schemas.attendance import CheckInResult
from programtrack.schemas.class_session import SessionResponse

logger = logging.getLogger(__name__)


class GeolocationErrorKind(str, Enum):
    PERMISSION_DENIED = "PERMISSION_DENIED"
    POSITION_UNAVAILABLE = "POSITION_UNAVAILABLE"
    TIMEOUT = "TIMEOUT"


GEOLOCATION_MESSAGES = {
    GeolocationErrorKind.PERMISSION_DENIED: (
        "Accès à la position refusé (permission denied). "
        "Autorisez la géolocalisation dans les réglages de l'appareil puis réessayez."
    ),
    GeolocationErrorKind.POSITION_UNAVAILABLE: (
        "Position indisponible : le signal GPS ou réseau ne permet pas de vous localiser."
    ),
    GeolocationErrorKind.TIMEOUT: (
        "La lecture de la position a pris trop de temps. Réessayez à découvert ou près d'une fenêtre."
    ),
}


class LocationUnavailable(Exception):
    """La position de l'appareil n'a pas pu être lue. Toujours récupérable."""

    def __init__(self, kind: GeolocationErrorKind):
        super().__init__(GEOLOCATION_MESSAGES[kind])
        self.kind = kind


@dataclass(frozen=True)
class Position:
    latitude: float
    longitude: float


class GeolocationProvider(ABC):
    """Accès à la position de l'appareil. Lève LocationUnavailable en cas d'échec."""

    @abstractmethod
    async def current_position(self) -> Position:
        ...


class StaticGeolocationProvider(GeolocationProvider):
    """Position fixe, ou échec systématique d'un type donné (démonstration, tests)."""

    def __init__(
        self,
        position: Optional[Position] = None,
        error: Optional[GeolocationErrorKind] = None,
    ):
        self._position = position
        self._error = error

    async def current_position(self) -> Position:
        if self._error is not None:
            raise LocationUnavailable(self._error)
        if self._position is None:
            raise LocationUnavailable(GeolocationErrorKind.POSITION_UNAVAILABLE)
        return self._position


async def read_position(provider: GeolocationProvider, timeout: Optional[float] = None) -> Position:
    """Lit la position, une lecture trop longue devient LocationUnavailable(TIMEOUT)."""
    try:
        return await asyncio.wait_for(
            provider.current_position(),
            timeout or settings.CLIENT_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError:
        raise LocationUnavailable(GeolocationErrorKind.TIMEOUT)


async def start_physical_session(
    source: AttendanceDataSource,
    session: SessionResponse,
    provider: GeolocationProvider,
    timeout: Optional[float] = None,
) -> SessionResponse:
    """
    Démarre une séance présentielle avec la position du formateur.
    Lève LocationUnavailable avant tout appel à l'API si la position n'est pas lisible.
    """
    try:
        position = await read_position(provider, timeout)
    except LocationUnavailable as exc:
        logger.warning("Démarrage de la séance %s impossible : %s", session.id, exc.kind.value)
        raise
    return await source.start_physical_session(session.id, position.latitude, position.longitude)


async def mark_geolocation_attendance(
    source: AttendanceDataSource,
    session_id: uuid.UUID,
    provider: GeolocationProvider,
    timeout: Optional[float] = None,
) -> CheckInResult:
    """Pointage de l'apprenant : la distance est vérifiée par l'API, pas ici."""
    position = await read_position(provider, timeout)
    return await source.mark_geolocation_attendance(session_id, position.latitude, position.longitude)
