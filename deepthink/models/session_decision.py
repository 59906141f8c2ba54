"""SessionDecisionRecord model: one applied decision, append-only."""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from deepthink.db.session import Base


class SessionDecisionRecord(Base):
    __tablename__ = "session_decisions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(64), ForeignKey("training_sessions.id"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)  # 0-based position in decision_history
    state_id = Column(String(128), nullable=False)
    decision_id = Column(String(128), nullable=False)
    next_state_id = Column(String(128), nullable=False)
    risk_level = Column(String(16), nullable=False)
    time_taken_ms = Column(Integer, nullable=False)
    forced = Column(Boolean, nullable=False, default=False)  # timeout transition
    decided_at = Column(DateTime(timezone=True), nullable=False)

    session = relationship("TrainingSession", back_populates="decisions")
