"""
Tests unitaires des QR codes signés des séances en ligne.
"""

import json
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from programtrack.services.qr_service import (
    build_session_qr,
    qr_image_data_url,
    verify_session_qr,
)

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def test_qr_contient_les_champs_attendus():
    session_id = uuid.uuid4()
    qr_data, expires_at = build_session_qr(session_id, NOW)
    payload = json.loads(qr_data)

    assert payload["sessionId"] == str(session_id)
    assert payload["type"] == "attendance"
    assert payload["timestamp"] == int(NOW.timestamp() * 1000)
    assert len(payload["signature"]) == 64
    assert expires_at == NOW + timedelta(minutes=15)


def test_qr_valide_retourne_la_seance():
    session_id = uuid.uuid4()
    qr_data, _ = build_session_qr(session_id, NOW)
    assert verify_session_qr(qr_data) == session_id


def test_qr_signature_modifiee_rejetee():
    qr_data, _ = build_session_qr(uuid.uuid4(), NOW)
    payload = json.loads(qr_data)
    payload["sessionId"] = str(uuid.uuid4())

    with pytest.raises(ValueError, match="signature"):
        verify_session_qr(json.dumps(payload))


def test_qr_illisible_rejete():
    with pytest.raises(ValueError, match="illisible"):
        verify_session_qr("pas du json")
    with pytest.raises(ValueError, match="illisible"):
        verify_session_qr(json.dumps({"sessionId": "x"}))


def test_qr_mauvais_type_rejete():
    qr_data, _ = build_session_qr(uuid.uuid4(), NOW)
    payload = json.loads(qr_data)
    payload["type"] = "badge"

    with pytest.raises(ValueError, match="présence"):
        verify_session_qr(json.dumps(payload))


def test_image_qr_en_data_url():
    url = qr_image_data_url("test")
    assert url.startswith("data:image/png;base64,")
    assert len(url) > 100
