"""
Modèle SQLAlchemy pour les utilisateurs.
Les mots de passe et la connexion sont gérés par le service d'authentification externe.
"""

import uuid
from sqlalchemy import Boolean, Column, DateTime, String, func
from sqlalchemy.dialects.postgresql import UUID

from programtrack.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    role = Column(String(50), nullable=False)  # SUPER_ADMIN, PROGRAM_MANAGER, FACILITATOR, TRAINEE, IT_SUPPORT
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
