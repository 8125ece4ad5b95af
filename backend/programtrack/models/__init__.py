# Importe tous les modèles pour enregistrer leurs tables dans Base.metadata
# avant que SQLAlchemy tente de résoudre les clés étrangères inter-modèles.

from programtrack.models.user import User  # noqa: F401  (doit précéder program et session)
from programtrack.models.program import Program, ProgramFacilitator, ProgramTrainee  # noqa: F401
from programtrack.models.class_session import ClassSession  # noqa: F401
from programtrack.models.attendance import Attendance  # noqa: F401
from programtrack.models.audit_log import AuditLog  # noqa: F401
