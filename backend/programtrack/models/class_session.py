"""
Modèle SQLAlchemy pour les séances de cours (présentielles ou en ligne).

Cycle de vie : scheduled → active → completed, ou cancelled (terminal).
- Séance en ligne : démarrée par le formateur, génère un QR code signé à durée limitée
- Séance présentielle : démarrée avec la position GPS du formateur
"""

import uuid
from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import UUID

from programtrack.database import Base


class ClassSession(Base):
    __tablename__ = "class_sessions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    program_id = Column(UUID(as_uuid=True), ForeignKey("programs.id", ondelete="CASCADE"), nullable=False)
    facilitator_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    session_type = Column(String(20), nullable=False)      # physical, online

    start_time = Column(DateTime(timezone=True), nullable=False)
    duration_minutes = Column(Integer, default=120)
    status = Column(String(20), default="scheduled")       # scheduled, active, completed, cancelled

    # Lieu du cours (présentiel), fixé à l'avance ou au démarrage par le formateur
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    radius_meters = Column(Integer, default=50)

    # QR code (en ligne)
    qr_data = Column(Text, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    access_link = Column(String(500), nullable=True)

    allow_late_attendance = Column(Boolean, default=True)
    late_threshold_minutes = Column(Integer, default=15)

    total_present = Column(Integer, default=0)
    total_absent = Column(Integer, default=0)

    reminder_sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
