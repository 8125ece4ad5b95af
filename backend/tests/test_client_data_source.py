"""
Tests du client REST (LiveDataSource) et de la source en mémoire (FixtureDataSource).
Les appels HTTP sont interceptés par httpx.MockTransport.
"""

import asyncio
import json
import uuid
from datetime import date, datetime, timedelta, timezone

import httpx
import pytest

from programtrack.client.data_source import FetchError, FixtureDataSource, LiveDataSource
from programtrack.schemas.class_session import SessionResponse
from programtrack.schemas.program import ProgramResponse
from programtrack.security import PROGRAM_MANAGER, RequestContext

CTX = RequestContext(user_id=uuid.uuid4(), role=PROGRAM_MANAGER, token="jeton-test")
BASE_URL = "http://api.test/api/v1"

SUMMARY_JSON = {
    "report": [{
        "userId": str(uuid.uuid4()), "name": "Alice", "email": "alice@example.org", "role": "TRAINEE",
        "present": 9, "absent": 1, "late": 1, "excused": 0, "attendanceRate": 90, "records": [],
    }],
    "totalSessions": 10,
    "overall": {"rate": 90, "present": 9, "absent": 1, "late": 1},
}


def run_with(handler, coro_factory):
    async def scenario():
        async with LiveDataSource(CTX, base_url=BASE_URL, transport=httpx.MockTransport(handler)) as source:
            return await coro_factory(source)

    return asyncio.run(scenario())


def test_resume_requete_et_parsing():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(200, json=SUMMARY_JSON)

    program_id = uuid.uuid4()
    summary = run_with(handler, lambda s: s.get_program_summary(program_id, date(2026, 3, 1), date(2026, 3, 31)))

    assert seen["path"] == f"/api/v1/attendance/report/program/{program_id}/summary"
    assert seen["params"] == {"startDate": "2026-03-01", "endDate": "2026-03-31"}
    assert seen["auth"] == "Bearer jeton-test"
    assert summary.total_sessions == 10
    assert summary.report[0].attendance_rate == 90


def test_erreur_http_devient_fetch_error():
    def handler(request):
        return httpx.Response(404, json={"detail": "Programme x introuvable."})

    with pytest.raises(FetchError) as exc:
        run_with(handler, lambda s: s.list_programs())

    assert exc.value.status_code == 404
    assert exc.value.detail == "Programme x introuvable."


def test_erreur_serveur_sans_json():
    def handler(request):
        return httpx.Response(502, text="Bad Gateway")

    with pytest.raises(FetchError) as exc:
        run_with(handler, lambda s: s.list_facilitator_sessions())

    assert exc.value.status_code == 502
    assert "Bad Gateway" in str(exc.value)


def test_erreur_reseau():
    def handler(request):
        raise httpx.ConnectError("connexion refusée", request=request)

    with pytest.raises(FetchError) as exc:
        run_with(handler, lambda s: s.list_programs())

    assert exc.value.status_code is None
    assert "réseau" in exc.value.detail


def test_reponse_200_non_json():
    def handler(request):
        return httpx.Response(200, text="<html>proxy</html>")

    with pytest.raises(FetchError) as exc:
        run_with(handler, lambda s: s.get_program_summary(uuid.uuid4(), date(2026, 3, 1), date(2026, 3, 31)))
    assert exc.value.status_code == 200
    assert "invalide" in exc.value.detail


def test_reponse_200_format_inattendu():
    def handler(request):
        return httpx.Response(200, json={"programmes": []})

    with pytest.raises(FetchError) as exc:
        run_with(handler, lambda s: s.get_program_summary(uuid.uuid4(), date(2026, 3, 1), date(2026, 3, 31)))
    assert exc.value.status_code == 200

    with pytest.raises(FetchError):
        run_with(handler, lambda s: s.list_programs())


def test_demarrage_presentiel_envoie_la_position():
    seen = {}
    session_id = uuid.uuid4()

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = request.content
        return httpx.Response(200, json={
            "id": str(session_id), "programId": str(uuid.uuid4()), "facilitatorId": str(uuid.uuid4()),
            "title": "Pandas", "type": "physical", "startTime": "2026-03-02T09:00:00Z",
            "durationMinutes": 120, "status": "active",
        })

    session = run_with(handler, lambda s: s.start_physical_session(session_id, 50.85, 4.35))

    assert seen["path"] == f"/api/v1/attendance/sessions/{session_id}/physical-attendance"
    assert b'"latitude":50.85' in seen["body"].replace(b" ", b"")
    assert session.status == "active"


def test_regeneration_qr_envoie_la_duree():
    seen = {}
    session_id = uuid.uuid4()

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "session": {
                "id": str(session_id), "programId": str(uuid.uuid4()), "facilitatorId": str(uuid.uuid4()),
                "title": "Pandas", "type": "online", "startTime": "2026-03-02T09:00:00Z",
                "durationMinutes": 120, "status": "active",
            },
            "qrDataString": "{}", "qrCodeImage": "data:image/png;base64,AAAA",
            "accessLink": "http://localhost:3000/dashboard/classroom/x",
            "expiresAt": "2026-03-02T10:30:00Z",
        })

    started = run_with(handler, lambda s: s.regenerate_session_qr(session_id, expiration_minutes=30))

    assert seen["path"] == f"/api/v1/attendance/sessions/{session_id}/regenerate-qr"
    assert seen["body"] == {"expirationMinutes": 30}
    assert started.session.status == "active"


def test_fixture_regeneration_qr_seance_active_uniquement():
    session = SessionResponse(
        id=uuid.uuid4(), program_id=uuid.uuid4(), facilitator_id=uuid.uuid4(), title="Pandas",
        type="online", start_time=datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc),
        duration_minutes=120, status="scheduled",
    )
    source = FixtureDataSource(sessions=[session])

    with pytest.raises(FetchError):
        asyncio.run(source.regenerate_session_qr(session.id))

    asyncio.run(source.start_online_session(session.id))
    regenerated = asyncio.run(source.regenerate_session_qr(session.id, expiration_minutes=60))

    assert regenerated.session.status == "active"
    assert regenerated.expires_at > datetime.now(timezone.utc) + timedelta(minutes=59)
    assert source.calls == ["regenerate_session_qr", "start_online_session", "regenerate_session_qr"]


def test_fixture_renvoie_des_copies():
    program = ProgramResponse(id=uuid.uuid4(), name="Data", description=None, status="active")
    source = FixtureDataSource(programs=[program])

    first = asyncio.run(source.list_programs())
    first[0].name = "Modifié"
    second = asyncio.run(source.list_programs())

    assert second[0].name == "Data"
    assert source.calls == ["list_programs", "list_programs"]


def test_fixture_resume_inconnu_vide():
    source = FixtureDataSource()
    summary = asyncio.run(source.get_program_summary(uuid.uuid4(), date(2026, 3, 1), date(2026, 3, 31)))
    assert summary.report == []
    assert summary.overall.rate == 0
