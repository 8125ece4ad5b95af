"""
Schémas Pydantic pour le journal d'audit paginé (master log).
"""

import uuid
from datetime import datetime
from typing import List, Optional

from programtrack.schemas.common import CamelModel


class LogEntry(CamelModel):
    id: uuid.UUID
    created_at: datetime
    user_id: Optional[uuid.UUID] = None
    action: str
    details: Optional[str] = None


class MasterLogPage(CamelModel):
    """Page de résultats, au format attendu par le tableau du SuperAdmin."""
    docs: List[LogEntry]
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool
    total_docs: int
