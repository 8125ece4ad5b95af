"""
Modèle SQLAlchemy pour le journal d'audit (master log du SuperAdmin).
"""

import uuid
from sqlalchemy import Column, DateTime, ForeignKey, String, Text, func
from sqlalchemy.dialects.postgresql import UUID

from programtrack.database import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(50), nullable=False)  # SESSION_CREATED, ATTENDANCE_MARKED, ATTENDANCE_EXCUSED...
    details = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), index=True)
