"""
Tests unitaires du contrôle d'accès par rôle et de la vérification des tokens.
"""

import uuid

import jwt
import pytest

from programtrack.config import settings
from programtrack.security import (
    FACILITATOR,
    IT_SUPPORT,
    PROGRAM_MANAGER,
    RESOURCE_ROLES,
    SUPER_ADMIN,
    TRAINEE,
    can_view,
    create_access_token,
    decode_token,
)


@pytest.mark.parametrize("resource", sorted(RESOURCE_ROLES))
def test_super_admin_voit_tout(resource):
    assert can_view(SUPER_ADMIN, resource)


def test_master_log_reserve_au_super_admin():
    for role in (PROGRAM_MANAGER, FACILITATOR, TRAINEE, IT_SUPPORT):
        assert not can_view(role, "reports.master_log")


def test_pointage_reserve_aux_apprenants():
    assert can_view(TRAINEE, "attendance.check_in")
    assert not can_view(FACILITATOR, "attendance.check_in")


def test_saisie_manuelle_reservee_au_personnel():
    assert can_view(FACILITATOR, "attendance.manual")
    assert can_view(PROGRAM_MANAGER, "attendance.manual")
    assert not can_view(TRAINEE, "attendance.manual")


def test_export_reserve_au_responsable():
    assert can_view(PROGRAM_MANAGER, "reports.export")
    assert not can_view(FACILITATOR, "reports.export")


def test_role_ou_ressource_inconnus_refuses():
    assert not can_view("GUEST", "programs.view")
    assert not can_view(SUPER_ADMIN, "inconnue")


def test_token_aller_retour():
    user_id = uuid.uuid4()
    ctx = decode_token(create_access_token(user_id, FACILITATOR))
    assert ctx.user_id == user_id
    assert ctx.role == FACILITATOR
    assert ctx.token


def test_token_expire():
    token = create_access_token(uuid.uuid4(), TRAINEE, expires_minutes=-1)
    with pytest.raises(ValueError, match="expiré"):
        decode_token(token)


def test_token_mauvaise_signature():
    token = jwt.encode({"sub": str(uuid.uuid4()), "role": TRAINEE}, "autre-cle", algorithm="HS256")
    with pytest.raises(ValueError, match="invalide"):
        decode_token(token)


def test_token_sans_role():
    token = jwt.encode({"sub": str(uuid.uuid4())}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    with pytest.raises(ValueError, match="Rôle"):
        decode_token(token)


def test_token_sub_invalide():
    token = jwt.encode({"sub": "abc", "role": TRAINEE}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    with pytest.raises(ValueError, match="Identifiant"):
        decode_token(token)
