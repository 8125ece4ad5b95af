"""
Sources de données des tableaux de bord (client asynchrone).

Deux implémentations de la même interface, jamais mélangées champ par champ :
- LiveDataSource    : appels REST à l'API ProgramTrack (httpx, token Bearer du contexte)
- FixtureDataSource : données en mémoire, pour les démonstrations et les tests
"""

import uuid
import logging
from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, TypeVar

import httpx
from pydantic import ValidationError

from programtrack.config import settings
from programtrack.schemas.attendance import AttendanceResponse, CheckInResult
from programtrack.schemas.class_session import OnlineSessionStarted, SessionResponse
from programtrack.schemas.program import ProgramResponse
from programtrack.schemas.report import OverallStats, ProgramSummaryReport
from programtrack.security import RequestContext

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FetchError(Exception):
    """Échec d'un appel à l'API : erreur réseau (status_code None) ou réponse HTTP en erreur."""

    def __init__(self, status_code: Optional[int], detail: str):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


class AttendanceDataSource(ABC):

    @abstractmethod
    async def list_programs(self) -> List[ProgramResponse]:
        ...

    @abstractmethod
    async def list_facilitator_sessions(self) -> List[SessionResponse]:
        ...

    @abstractmethod
    async def get_program_summary(
        self, program_id: uuid.UUID, start_date: date, end_date: date
    ) -> ProgramSummaryReport:
        ...

    @abstractmethod
    async def start_online_session(
        self, session_id: uuid.UUID, expiration_minutes: Optional[int] = None
    ) -> OnlineSessionStarted:
        ...

    @abstractmethod
    async def regenerate_session_qr(
        self, session_id: uuid.UUID, expiration_minutes: Optional[int] = None
    ) -> OnlineSessionStarted:
        ...

    @abstractmethod
    async def start_physical_session(
        self, session_id: uuid.UUID, latitude: float, longitude: float
    ) -> SessionResponse:
        ...

    @abstractmethod
    async def mark_geolocation_attendance(
        self, session_id: uuid.UUID, latitude: float, longitude: float
    ) -> CheckInResult:
        ...


class LiveDataSource(AttendanceDataSource):
    """
    Client de l'API REST. Le contexte de requête (token Bearer) est fourni
    explicitement à la construction, il n'y a pas d'état d'authentification global.
    """

    def __init__(
        self,
        ctx: RequestContext,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            headers={"Authorization": f"Bearer {ctx.token}", "Accept": "application/json"},
            timeout=timeout or settings.CLIENT_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def __aenter__(self) -> "LiveDataSource":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, parse: Callable[[Any], T], **kwargs) -> T:
        """
        Appelle l'API puis convertit le corps JSON avec `parse`.
        Toute réponse inexploitable (erreur HTTP, corps non JSON, format inattendu) devient une FetchError.
        """
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("Erreur réseau sur %s %s : %s", method, path, exc)
            raise FetchError(None, f"Erreur réseau : {exc}") from exc

        if response.is_error:
            detail = response.text
            try:
                body = response.json()
                if isinstance(body, dict) and body.get("detail"):
                    detail = str(body["detail"])
            except ValueError:
                pass
            logger.warning("%s %s → %d : %s", method, path, response.status_code, detail)
            raise FetchError(response.status_code, detail)

        try:
            return parse(response.json())
        except (ValueError, TypeError, ValidationError) as exc:
            logger.error("Réponse invalide sur %s %s (%d) : %s", method, path, response.status_code, exc)
            raise FetchError(response.status_code, "Réponse invalide du serveur.") from exc

    async def list_programs(self) -> List[ProgramResponse]:
        return await self._request(
            "GET", "/programs", lambda data: [ProgramResponse.model_validate(p) for p in data]
        )

    async def list_facilitator_sessions(self) -> List[SessionResponse]:
        return await self._request(
            "GET",
            "/attendance/facilitator/sessions",
            lambda data: [SessionResponse.model_validate(s) for s in data],
        )

    async def get_program_summary(
        self, program_id: uuid.UUID, start_date: date, end_date: date
    ) -> ProgramSummaryReport:
        return await self._request(
            "GET",
            f"/attendance/report/program/{program_id}/summary",
            ProgramSummaryReport.model_validate,
            params={"startDate": start_date.isoformat(), "endDate": end_date.isoformat()},
        )

    async def start_online_session(
        self, session_id: uuid.UUID, expiration_minutes: Optional[int] = None
    ) -> OnlineSessionStarted:
        return await self._request(
            "POST",
            f"/attendance/sessions/{session_id}/start-online",
            OnlineSessionStarted.model_validate,
            json={"expirationMinutes": expiration_minutes},
        )

    async def regenerate_session_qr(
        self, session_id: uuid.UUID, expiration_minutes: Optional[int] = None
    ) -> OnlineSessionStarted:
        return await self._request(
            "POST",
            f"/attendance/sessions/{session_id}/regenerate-qr",
            OnlineSessionStarted.model_validate,
            json={"expirationMinutes": expiration_minutes},
        )

    async def start_physical_session(
        self, session_id: uuid.UUID, latitude: float, longitude: float
    ) -> SessionResponse:
        return await self._request(
            "POST",
            f"/attendance/sessions/{session_id}/physical-attendance",
            SessionResponse.model_validate,
            json={"latitude": latitude, "longitude": longitude},
        )

    async def mark_geolocation_attendance(
        self, session_id: uuid.UUID, latitude: float, longitude: float
    ) -> CheckInResult:
        return await self._request(
            "POST",
            "/attendance/mark-geolocation",
            CheckInResult.model_validate,
            json={"sessionId": str(session_id), "latitude": latitude, "longitude": longitude},
        )


class FixtureDataSource(AttendanceDataSource):
    """
    Source en mémoire. Chaque lecture renvoie une copie : un écran ne peut pas
    modifier les données vues par un autre.
    `calls` garde la trace des opérations appelées.
    """

    def __init__(
        self,
        programs: Optional[List[ProgramResponse]] = None,
        sessions: Optional[List[SessionResponse]] = None,
        summaries: Optional[Dict[uuid.UUID, ProgramSummaryReport]] = None,
        trainee_id: Optional[uuid.UUID] = None,
    ):
        self._programs = list(programs or [])
        self._sessions = {s.id: s.model_copy(deep=True) for s in sessions or []}
        self._summaries = dict(summaries or {})
        self._trainee_id = trainee_id or uuid.uuid4()
        self.calls: List[str] = []

    def _session(self, session_id: uuid.UUID) -> SessionResponse:
        session = self._sessions.get(session_id)
        if session is None:
            raise FetchError(404, f"Séance {session_id} introuvable.")
        return session

    async def list_programs(self) -> List[ProgramResponse]:
        self.calls.append("list_programs")
        return [p.model_copy(deep=True) for p in self._programs]

    async def list_facilitator_sessions(self) -> List[SessionResponse]:
        self.calls.append("list_facilitator_sessions")
        return [s.model_copy(deep=True) for s in self._sessions.values()]

    async def get_program_summary(
        self, program_id: uuid.UUID, start_date: date, end_date: date
    ) -> ProgramSummaryReport:
        self.calls.append("get_program_summary")
        summary = self._summaries.get(program_id)
        if summary is None:
            return ProgramSummaryReport(
                report=[],
                total_sessions=0,
                overall=OverallStats(rate=0, present=0, absent=0, late=0),
            )
        return summary.model_copy(deep=True)

    async def start_online_session(
        self, session_id: uuid.UUID, expiration_minutes: Optional[int] = None
    ) -> OnlineSessionStarted:
        self.calls.append("start_online_session")
        session = self._session(session_id)
        if session.status != "scheduled":
            raise FetchError(400, f"Impossible de démarrer la séance : elle est en statut {session.status}.")
        session.status = "active"
        return self._online_started(session, expiration_minutes)

    async def regenerate_session_qr(
        self, session_id: uuid.UUID, expiration_minutes: Optional[int] = None
    ) -> OnlineSessionStarted:
        self.calls.append("regenerate_session_qr")
        session = self._session(session_id)
        if session.status != "active":
            raise FetchError(400, f"Impossible de régénérer le QR : la séance est en statut {session.status}.")
        return self._online_started(session, expiration_minutes)

    def _online_started(
        self, session: SessionResponse, expiration_minutes: Optional[int]
    ) -> OnlineSessionStarted:
        now = datetime.now(timezone.utc)
        session.expires_at = now + timedelta(minutes=expiration_minutes or settings.QR_TTL_MINUTES)
        return OnlineSessionStarted(
            session=session.model_copy(deep=True),
            qr_data_string=f'{{"sessionId":"{session.id}","timestamp":{int(now.timestamp() * 1000)},"type":"attendance"}}',
            qr_code_image="",
            access_link=session.access_link or "",
            expires_at=session.expires_at,
        )

    async def start_physical_session(
        self, session_id: uuid.UUID, latitude: float, longitude: float
    ) -> SessionResponse:
        self.calls.append("start_physical_session")
        session = self._session(session_id)
        if session.status != "scheduled":
            raise FetchError(400, f"Impossible de démarrer la séance : elle est en statut {session.status}.")
        session.status = "active"
        if session.latitude is None or session.longitude is None:
            session.latitude = latitude
            session.longitude = longitude
        return session.model_copy(deep=True)

    async def mark_geolocation_attendance(
        self, session_id: uuid.UUID, latitude: float, longitude: float
    ) -> CheckInResult:
        self.calls.append("mark_geolocation_attendance")
        session = self._session(session_id)
        if session.type != "physical" or session.status != "active":
            raise FetchError(400, f"Pointage impossible : la séance est en statut {session.status}.")
        attendance = AttendanceResponse(
            id=uuid.uuid4(),
            user_id=self._trainee_id,
            session_id=session.id,
            program_id=session.program_id,
            date=session.start_time.date(),
            status="Present",
            check_in=datetime.now(timezone.utc),
            method="geolocation",
        )
        return CheckInResult(attendance=attendance, access_link=session.access_link)

    def session_status(self, session_id: uuid.UUID) -> str:
        return self._session(session_id).status
