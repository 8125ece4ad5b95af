"""
Connexion PostgreSQL (SQLAlchemy, moteur synchrone).

- Requêtes HTTP : une session par requête via la dépendance get_db
- Tâches planifiées : une session par exécution via session_scope
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from programtrack.config import settings

# pool_pre_ping : le scheduler garde des connexions inactives plusieurs minutes
engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True, echo=settings.SQL_ECHO)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Iterator[Session]:
    """Dépendance FastAPI : fournit une session BDD et la ferme après usage."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session hors requête HTTP. Annule la transaction en cours si une erreur remonte."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
