"""SQLAlchemy declarative base and model imports for Alembic."""
from deepthink.db.session import Base

# Import all models so Alembic can see them
from deepthink.models.scenario import Scenario  # noqa: F401
from deepthink.models.session_decision import SessionDecisionRecord  # noqa: F401
from deepthink.models.training_session import TrainingSession  # noqa: F401

__all__ = ["Base", "Scenario", "TrainingSession", "SessionDecisionRecord"]
