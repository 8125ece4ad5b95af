"""
Exécution de requêtes dont seul le résultat le plus récent compte.

Chaque `submit` annule la requête en cours, attend le délai d'anti-rebond,
puis lance la nouvelle. Un résultat n'est appliqué que s'il correspond
encore à la dernière soumission (compteur de génération).
"""

import asyncio
import logging
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from programtrack.config import settings

logger = logging.getLogger(__name__)

F = TypeVar("F")
R = TypeVar("R")


class LatestQuery(Generic[F, R]):

    def __init__(
        self,
        fetch: Callable[[F], Awaitable[R]],
        on_result: Callable[[F, R], None],
        on_error: Callable[[F, Exception], None],
        debounce: Optional[float] = None,
    ):
        self._fetch = fetch
        self._on_result = on_result
        self._on_error = on_error
        self._debounce = settings.CLIENT_DEBOUNCE_SECONDS if debounce is None else debounce
        self._generation = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def submit(self, filters: F) -> asyncio.Task:
        """Planifie une requête pour ces filtres. Doit être appelé depuis la boucle asyncio."""
        self._generation += 1
        if self.pending:
            self._task.cancel()
        self._task = asyncio.ensure_future(self._run(self._generation, filters))
        return self._task

    def cancel(self) -> None:
        """Abandonne la requête en cours (fermeture de l'écran)."""
        self._generation += 1
        if self.pending:
            self._task.cancel()

    async def wait(self) -> None:
        """Attend que la dernière requête soumise soit terminée ou annulée."""
        while self.pending:
            await asyncio.gather(self._task, return_exceptions=True)

    async def _run(self, generation: int, filters: F) -> None:
        if self._debounce > 0:
            await asyncio.sleep(self._debounce)

        try:
            result = await self._fetch(filters)
        except Exception as exc:
            if generation == self._generation:
                self._on_error(filters, exc)
            else:
                logger.debug("Erreur ignorée pour une requête périmée (génération %d)", generation)
            return

        if generation != self._generation:
            logger.debug("Résultat périmé ignoré (génération %d < %d)", generation, self._generation)
            return
        self._on_result(filters, result)
