"""
Tests unitaires du service des programmes.
"""

import uuid
from unittest.mock import MagicMock

import pytest

from programtrack.models.program import Program, ProgramTrainee
from programtrack.schemas.program import ProgramCreate, ProgramTraineesAdd
from programtrack.security import FACILITATOR, PROGRAM_MANAGER, RequestContext
from programtrack.services.program_service import (
    add_trainees,
    create_program,
    get_accessible_program,
    is_trainee_enrolled,
    list_programs,
)


def make_program(name="Data Science", manager_id=None):
    return Program(id=uuid.uuid4(), name=name, description=None, status="active", manager_id=manager_id)


def make_db(programs=None, trainee_count=0, existing_ids=None):
    db = MagicMock()
    result = MagicMock()
    result.scalars.return_value.all.return_value = programs if programs is not None else (existing_ids or [])
    result.scalar.return_value = trainee_count
    db.execute.return_value = result
    return db


def test_liste_programmes_responsable():
    ctx = RequestContext(user_id=uuid.uuid4(), role=PROGRAM_MANAGER)
    db = make_db([make_program(manager_id=ctx.user_id)], trainee_count=12)

    programs = list_programs(db, ctx)

    assert len(programs) == 1
    assert programs[0].trainee_count == 12
    assert programs[0].manager_id == ctx.user_id


def test_liste_programmes_formateur_filtree():
    ctx = RequestContext(user_id=uuid.uuid4(), role=FACILITATOR)
    db = make_db([])

    assert list_programs(db, ctx) == []
    query = db.execute.call_args_list[0].args[0]
    assert "program_facilitators" in str(query)


def test_creation_programme():
    ctx = RequestContext(user_id=uuid.uuid4(), role=PROGRAM_MANAGER)
    db = make_db(trainee_count=0)

    result = create_program(db, ctx, ProgramCreate(name="  Cybersécurité  "))

    assert result.name == "Cybersécurité"
    assert result.status == "active"
    assert result.manager_id == ctx.user_id
    db.commit.assert_called_once()


def test_creation_programme_nom_vide():
    with pytest.raises(ValueError):
        ProgramCreate(name=" ")


def test_inscription_ignore_les_doublons():
    ctx = RequestContext(user_id=uuid.uuid4(), role=PROGRAM_MANAGER)
    program = make_program(manager_id=ctx.user_id)
    already, new = uuid.uuid4(), uuid.uuid4()
    db = make_db(existing_ids=[already], trainee_count=2)
    db.get.return_value = program

    add_trainees(db, ctx, program.id, ProgramTraineesAdd(trainee_ids=[already, new, new]))

    model, rows = db.bulk_insert_mappings.call_args.args
    assert model is ProgramTrainee
    assert rows == [{"program_id": program.id, "trainee_id": new}]
    db.commit.assert_called_once()


def test_inscription_tous_deja_inscrits():
    ctx = RequestContext(user_id=uuid.uuid4(), role=PROGRAM_MANAGER)
    program = make_program(manager_id=ctx.user_id)
    already = uuid.uuid4()
    db = make_db(existing_ids=[already])
    db.get.return_value = program

    add_trainees(db, ctx, program.id, ProgramTraineesAdd(trainee_ids=[already]))

    db.bulk_insert_mappings.assert_not_called()
    db.commit.assert_not_called()


def test_inscription_programme_introuvable():
    db = make_db()
    db.get.return_value = None
    with pytest.raises(ValueError, match="introuvable"):
        add_trainees(db, RequestContext(uuid.uuid4(), PROGRAM_MANAGER), uuid.uuid4(),
                     ProgramTraineesAdd(trainee_ids=[uuid.uuid4()]))


def test_inscription_programme_d_un_autre_responsable():
    db = make_db()
    db.get.return_value = make_program(manager_id=uuid.uuid4())
    with pytest.raises(ValueError, match="introuvable pour ce responsable"):
        add_trainees(db, RequestContext(uuid.uuid4(), PROGRAM_MANAGER), uuid.uuid4(),
                     ProgramTraineesAdd(trainee_ids=[uuid.uuid4()]))
    db.bulk_insert_mappings.assert_not_called()


def test_programme_accessible_selon_le_role():
    program = make_program(manager_id=uuid.uuid4())
    db = MagicMock()
    db.get.return_value = program

    manager = RequestContext(user_id=program.manager_id, role=PROGRAM_MANAGER)
    assert get_accessible_program(db, manager, program.id) is program
    facilitator = RequestContext(user_id=uuid.uuid4(), role=FACILITATOR)
    assert get_accessible_program(db, facilitator, program.id) is program


def test_inscription_liste_vide_rejetee():
    with pytest.raises(ValueError):
        ProgramTraineesAdd(trainee_ids=[])


def test_apprenant_inscrit():
    db = MagicMock()
    db.get.return_value = None
    assert is_trainee_enrolled(db, uuid.uuid4(), uuid.uuid4()) is False
    db.get.return_value = MagicMock()
    assert is_trainee_enrolled(db, uuid.uuid4(), uuid.uuid4()) is True
