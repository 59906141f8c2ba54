"""TrainingSession model: latest persisted SessionState plus its pending consequences."""
from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from deepthink.db.session import Base


class TrainingSession(Base):
    __tablename__ = "training_sessions"

    id = Column(String(64), primary_key=True)  # SessionState.session_id (UUID string)
    scenario_id = Column(String(128), ForeignKey("scenarios.id"), nullable=False, index=True)

    status = Column(String(16), nullable=False, default="active")  # active | paused | completed
    current_state_id = Column(String(128), nullable=False)
    pause_count = Column(Integer, nullable=False, default=0)
    is_complete = Column(Boolean, nullable=False, default=False)
    final_score = Column(Float, nullable=True)
    seed = Column(Integer, nullable=True)

    state_json = Column(Text, nullable=False)  # SessionStateSchema
    pending_json = Column(Text, nullable=False, default="[]")  # list[PendingConsequenceSchema]

    started_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)

    scenario = relationship("Scenario", back_populates="sessions")
    decisions = relationship(
        "SessionDecisionRecord",
        back_populates="session",
        order_by="SessionDecisionRecord.sequence",
    )
