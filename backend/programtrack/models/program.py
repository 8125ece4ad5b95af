"""
Modèles SQLAlchemy pour les programmes de formation et leurs associations.
"""

import uuid
from sqlalchemy import Column, DateTime, ForeignKey, String, Text, func
from sqlalchemy.dialects.postgresql import UUID

from programtrack.database import Base


class Program(Base):
    __tablename__ = "programs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), default="active")  # active, archived
    manager_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class ProgramTrainee(Base):
    """Association programme ↔ apprenants inscrits."""
    __tablename__ = "program_trainees"

    program_id = Column(UUID(as_uuid=True), ForeignKey("programs.id", ondelete="CASCADE"), primary_key=True)
    trainee_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    enrolled_at = Column(DateTime, server_default=func.now())


class ProgramFacilitator(Base):
    """Association programme ↔ formateurs assignés."""
    __tablename__ = "program_facilitators"

    program_id = Column(UUID(as_uuid=True), ForeignKey("programs.id", ondelete="CASCADE"), primary_key=True)
    facilitator_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    assigned_at = Column(DateTime, server_default=func.now())
