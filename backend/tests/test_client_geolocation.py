"""
Tests du démarrage d'une séance présentielle côté client (lecture de la position).
"""

import asyncio
import uuid
from datetime import datetime, timezone

import pytest

from programtrack.client.data_source import FixtureDataSource
from programtrack.client.geolocation import (
    GEOLOCATION_MESSAGES,
    GeolocationErrorKind,
    GeolocationProvider,
    LocationUnavailable,
    Position,
    StaticGeolocationProvider,
    mark_geolocation_attendance,
    start_physical_session,
)
from programtrack.schemas.class_session import SessionResponse


def make_session(status="scheduled", latitude=None, longitude=None) -> SessionResponse:
    return SessionResponse(
        id=uuid.uuid4(),
        program_id=uuid.uuid4(),
        facilitator_id=uuid.uuid4(),
        title="Atelier Docker",
        type="physical",
        start_time=datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc),
        duration_minutes=120,
        status=status,
        latitude=latitude,
        longitude=longitude,
    )


class SlowProvider(GeolocationProvider):
    async def current_position(self) -> Position:
        await asyncio.sleep(1)
        return Position(0, 0)


def test_permission_refusee_seance_reste_planifiee():
    session = make_session()
    source = FixtureDataSource(sessions=[session])
    provider = StaticGeolocationProvider(error=GeolocationErrorKind.PERMISSION_DENIED)

    with pytest.raises(LocationUnavailable) as exc:
        asyncio.run(start_physical_session(source, session, provider))

    assert exc.value.kind is GeolocationErrorKind.PERMISSION_DENIED
    assert "denied" in str(exc.value)
    assert source.calls == []
    assert source.session_status(session.id) == "scheduled"


def test_position_indisponible():
    session = make_session()
    source = FixtureDataSource(sessions=[session])

    with pytest.raises(LocationUnavailable) as exc:
        asyncio.run(start_physical_session(source, session, StaticGeolocationProvider()))

    assert exc.value.kind is GeolocationErrorKind.POSITION_UNAVAILABLE
    assert source.session_status(session.id) == "scheduled"


def test_delai_depasse():
    session = make_session()
    source = FixtureDataSource(sessions=[session])

    with pytest.raises(LocationUnavailable) as exc:
        asyncio.run(start_physical_session(source, session, SlowProvider(), timeout=0.01))

    assert exc.value.kind is GeolocationErrorKind.TIMEOUT
    assert source.calls == []


def test_messages_distincts():
    assert len(set(GEOLOCATION_MESSAGES.values())) == 3
    assert "denied" not in GEOLOCATION_MESSAGES[GeolocationErrorKind.TIMEOUT]


def test_demarrage_reussi():
    session = make_session()
    source = FixtureDataSource(sessions=[session])
    provider = StaticGeolocationProvider(position=Position(50.85, 4.35))

    started = asyncio.run(start_physical_session(source, session, provider))

    assert started.status == "active"
    assert (started.latitude, started.longitude) == (50.85, 4.35)
    assert source.calls == ["start_physical_session"]


def test_pointage_apprenant_apres_demarrage():
    session = make_session(status="active", latitude=50.85, longitude=4.35)
    trainee_id = uuid.uuid4()
    source = FixtureDataSource(sessions=[session], trainee_id=trainee_id)
    provider = StaticGeolocationProvider(position=Position(50.85, 4.35))

    result = asyncio.run(mark_geolocation_attendance(source, session.id, provider))

    assert result.attendance.user_id == trainee_id
    assert result.attendance.method == "geolocation"
