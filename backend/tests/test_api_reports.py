"""
Tests d'intégration API pour les rapports de présence et le journal d'audit.
"""

import uuid
from unittest.mock import patch

import pytest

from programtrack.schemas.audit_log import MasterLogPage
from programtrack.schemas.report import OverallStats, ProgramSummaryReport, StudentSummary

PERIOD = "startDate=2026-03-01&endDate=2026-03-31"


@pytest.fixture(autouse=True)
def program_access():
    """Contrôle d'accès au programme : autorisé sauf indication contraire du test."""
    with patch("programtrack.routers.reports.program_service.get_accessible_program") as mock:
        yield mock


def make_summary() -> ProgramSummaryReport:
    student = StudentSummary(
        user_id=uuid.uuid4(), name="Alice", email="alice@example.org",
        present=9, absent=1, late=1, excused=0, attendance_rate=90,
    )
    return ProgramSummaryReport(
        report=[student],
        total_sessions=10,
        overall=OverallStats(rate=90, present=9, absent=1, late=1),
    )


def test_resume_programme(client, auth_headers):
    program_id = uuid.uuid4()
    with patch("programtrack.routers.reports.report_service.get_program_summary") as mock:
        mock.return_value = make_summary()
        response = client.get(f"/api/v1/attendance/report/program/{program_id}/summary?{PERIOD}",
                              headers=auth_headers("PROGRAM_MANAGER"))

    assert response.status_code == 200
    body = response.json()
    assert body["totalSessions"] == 10
    assert body["overall"]["rate"] == 90
    assert body["report"][0]["attendanceRate"] == 90
    args = mock.call_args.args
    assert str(args[1]) == str(program_id)
    assert str(args[2]) == "2026-03-01"
    assert str(args[3]) == "2026-03-31"


def test_resume_programme_d_un_autre_responsable(client, auth_headers, program_access):
    program_access.side_effect = ValueError("Programme x introuvable pour ce responsable.")
    with patch("programtrack.routers.reports.report_service.get_program_summary") as mock:
        response = client.get(f"/api/v1/attendance/report/program/{uuid.uuid4()}/summary?{PERIOD}",
                              headers=auth_headers("PROGRAM_MANAGER"))

    assert response.status_code == 404
    mock.assert_not_called()


def test_resume_dates_obligatoires(client, auth_headers):
    response = client.get(f"/api/v1/attendance/report/program/{uuid.uuid4()}/summary",
                          headers=auth_headers("PROGRAM_MANAGER"))
    assert response.status_code == 422


def test_resume_refuse_a_l_apprenant(client, auth_headers):
    response = client.get(f"/api/v1/attendance/report/program/{uuid.uuid4()}/summary?{PERIOD}",
                          headers=auth_headers("TRAINEE"))
    assert response.status_code == 403


def test_resume_programme_introuvable(client, auth_headers):
    with patch("programtrack.routers.reports.report_service.get_program_summary") as mock:
        mock.side_effect = ValueError("Programme x introuvable.")
        response = client.get(f"/api/v1/attendance/report/program/{uuid.uuid4()}/summary?{PERIOD}",
                              headers=auth_headers("FACILITATOR"))
    assert response.status_code == 404


def test_export_csv(client, auth_headers):
    with patch("programtrack.routers.reports.report_service.export_program_summary_csv") as mock:
        mock.return_value = "\ufeffname;email\nAlice;alice@example.org\n"
        response = client.get(f"/api/v1/attendance/report/program/{uuid.uuid4()}/summary/export?{PERIOD}",
                              headers=auth_headers("PROGRAM_MANAGER"))

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment" in response.headers["content-disposition"]
    assert "Alice;alice@example.org" in response.text


def test_export_refuse_au_formateur(client, auth_headers):
    response = client.get(f"/api/v1/attendance/report/program/{uuid.uuid4()}/summary/export?{PERIOD}",
                          headers=auth_headers("FACILITATOR"))
    assert response.status_code == 403


def test_fiche_apprenant_introuvable(client, auth_headers):
    with patch("programtrack.routers.reports.report_service.get_student_sheet") as mock:
        mock.side_effect = ValueError("Apprenant x introuvable dans ce programme.")
        response = client.get(
            f"/api/v1/attendance/report/program/{uuid.uuid4()}/students/{uuid.uuid4()}/sheet?{PERIOD}",
            headers=auth_headers("PROGRAM_MANAGER"),
        )
    assert response.status_code == 404


# ============================================================
# GET /api/v1/reports/master-log
# ============================================================

def empty_page(page=1, limit=20) -> MasterLogPage:
    return MasterLogPage(docs=[], page=page, limit=limit, total_pages=1,
                         has_next_page=False, has_prev_page=False, total_docs=0)


def test_master_log_super_admin(client, auth_headers):
    with patch("programtrack.routers.reports.audit_service.get_master_log") as mock:
        mock.return_value = empty_page(page=2, limit=10)
        response = client.get("/api/v1/reports/master-log?page=2&limit=10&action=SESSION_CREATED",
                              headers=auth_headers("SUPER_ADMIN"))

    assert response.status_code == 200
    assert response.json()["totalPages"] == 1
    assert mock.call_args.args[1:] == (2, 10, None, None, "SESSION_CREATED")


def test_master_log_refuse_au_responsable(client, auth_headers):
    response = client.get("/api/v1/reports/master-log", headers=auth_headers("PROGRAM_MANAGER"))
    assert response.status_code == 403


def test_master_log_action_inconnue(client, auth_headers):
    response = client.get("/api/v1/reports/master-log?action=DROP_TABLE", headers=auth_headers("SUPER_ADMIN"))
    assert response.status_code == 400


def test_master_log_limite_trop_grande(client, auth_headers):
    response = client.get("/api/v1/reports/master-log?limit=500", headers=auth_headers("SUPER_ADMIN"))
    assert response.status_code == 422


def test_master_log_page_zero(client, auth_headers):
    response = client.get("/api/v1/reports/master-log?page=0", headers=auth_headers("SUPER_ADMIN"))
    assert response.status_code == 422
