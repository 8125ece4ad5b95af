"""
État de l'écran « présences d'un programme » (vue responsable / formateur).

L'écran ne calcule aucun taux : il affiche le résumé produit par l'API.
Chaque instance possède son propre état, rien n'est partagé entre écrans.
"""

import uuid
import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import List, Optional

from programtrack.client.data_source import AttendanceDataSource, FetchError
from programtrack.client.queries import LatestQuery
from programtrack.schemas.report import (
    AttendanceSheet,
    OverallStats,
    ProgramSummaryReport,
    StudentSummary,
)
from programtrack.services.attendance_sheet import build_attendance_sheet

logger = logging.getLogger(__name__)

EMPTY_REPORT_MESSAGE = "Aucun apprenant trouvé pour ce programme sur cette période."
UNEXPECTED_ERROR_MESSAGE = "Le résumé n'a pas pu être chargé. Réessayez."


def _empty_overall() -> OverallStats:
    return OverallStats(rate=0, present=0, absent=0, late=0)


@dataclass(frozen=True)
class ReportFilters:
    program_id: Optional[uuid.UUID] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @property
    def complete(self) -> bool:
        return None not in (self.program_id, self.start_date, self.end_date)


class ProgramAttendanceView:

    def __init__(self, source: AttendanceDataSource, debounce: Optional[float] = None):
        self._source = source
        self.filters = ReportFilters()
        self.loading = False
        self.report: List[StudentSummary] = []
        self.total_sessions = 0
        self.overall = _empty_overall()
        self.error: Optional[str] = None
        self._query: LatestQuery[ReportFilters, ProgramSummaryReport] = LatestQuery(
            self._fetch, self._apply, self._fail, debounce=debounce,
        )

    def set_filters(self, **changes) -> None:
        """
        Modifie un ou plusieurs filtres (program_id, start_date, end_date) et relance
        le chargement. Tant que les filtres sont incomplets, rien n'est chargé.
        """
        self.filters = replace(self.filters, **changes)
        self._load()

    def retry(self) -> None:
        self.error = None
        self._load()

    def dismiss_error(self) -> None:
        self.error = None

    def close(self) -> None:
        self._query.cancel()
        self.loading = False

    async def wait(self) -> None:
        await self._query.wait()

    @property
    def empty_message(self) -> Optional[str]:
        """Message explicite quand le chargement a abouti sans aucun apprenant."""
        if self.filters.complete and not self.loading and self.error is None and not self.report:
            return EMPTY_REPORT_MESSAGE
        return None

    def open_sheet(self, user_id: uuid.UUID) -> AttendanceSheet:
        """Fiche détaillée d'un apprenant, construite à neuf à chaque ouverture."""
        student = next((s for s in self.report if s.user_id == user_id), None)
        if student is None:
            raise KeyError(user_id)
        return build_attendance_sheet(student)

    def _load(self) -> None:
        if not self.filters.complete:
            return
        if self.filters.start_date > self.filters.end_date:
            self.error = "La date de début doit précéder la date de fin."
            return
        self.loading = True
        self._query.submit(self.filters)

    async def _fetch(self, filters: ReportFilters) -> ProgramSummaryReport:
        return await self._source.get_program_summary(
            filters.program_id, filters.start_date, filters.end_date
        )

    def _apply(self, filters: ReportFilters, summary: ProgramSummaryReport) -> None:
        self.report = summary.report
        self.total_sessions = summary.total_sessions
        self.overall = summary.overall
        self.error = None
        self.loading = False

    def _fail(self, filters: ReportFilters, exc: Exception) -> None:
        if isinstance(exc, FetchError):
            logger.warning("Chargement du résumé impossible (programme %s) : %s", filters.program_id, exc)
            self.error = str(exc)
        else:
            logger.error("Erreur inattendue, programme %s", filters.program_id, exc_info=exc)
            self.error = UNEXPECTED_ERROR_MESSAGE
        self.report = []
        self.total_sessions = 0
        self.overall = _empty_overall()
        self.loading = False
