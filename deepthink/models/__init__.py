from deepthink.models.scenario import Scenario
from deepthink.models.training_session import TrainingSession
from deepthink.models.session_decision import SessionDecisionRecord

__all__ = ["Scenario", "TrainingSession", "SessionDecisionRecord"]
