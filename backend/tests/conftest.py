"""
Configuration partagée pour tous les tests.
Override la dépendance get_db pour éviter toute connexion réelle à PostgreSQL.
"""

import uuid

import pytest
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from programtrack.database import get_db
from programtrack.main import app
from programtrack.security import create_access_token


@pytest.fixture
def client():
    """Client HTTP de test avec la BDD mockée."""
    mock_db = MagicMock()
    app.dependency_overrides[get_db] = lambda: mock_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Fabrique d'en-têtes Authorization pour un rôle donné (JWT signé avec SECRET_KEY)."""

    def make(role: str, user_id: uuid.UUID = None) -> dict:
        token = create_access_token(user_id or uuid.uuid4(), role)
        return {"Authorization": f"Bearer {token}"}

    return make
