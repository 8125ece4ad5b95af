"""
Modèle SQLAlchemy pour les présences.

Une seule présence par couple (apprenant, séance) : les enregistrements sont
immuables une fois créés (pas de modification ni de suppression).
"""

import uuid
from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, String, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID

from programtrack.database import Base


class Attendance(Base):
    """Présence enregistrée par QR code, géolocalisation ou saisie manuelle."""
    __tablename__ = "attendances"
    __table_args__ = (
        UniqueConstraint("user_id", "session_id", name="uq_attendance_user_session"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    session_id = Column(UUID(as_uuid=True), ForeignKey("class_sessions.id", ondelete="CASCADE"), nullable=False)
    program_id = Column(UUID(as_uuid=True), ForeignKey("programs.id", ondelete="CASCADE"), nullable=False)

    date = Column(Date, nullable=False)                      # Date calendaire de la séance
    status = Column(String(20), nullable=False, default="Present")  # Present, Absent, Excused, Late
    check_in = Column(DateTime(timezone=True), nullable=True)       # NULL si absent / excusé
    method = Column(String(20), nullable=False)              # qr_code, geolocation, manual

    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    reason = Column(Text, nullable=True)                     # Justification (excusé, saisie manuelle)
    marked_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
