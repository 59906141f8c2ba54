"""Scenario model: one authored scenario graph, stored as validated JSON."""
from sqlalchemy import Column, Integer, String, Text
from sqlalchemy.orm import relationship

from deepthink.db.session import Base

# SQLite doesn't have native JSON; we use Text and store JSON string


class Scenario(Base):
    __tablename__ = "scenarios"

    id = Column(String(128), primary_key=True)  # graph id from the authored file
    title = Column(String(255), nullable=False)
    domain = Column(String(64), nullable=False, default="")
    difficulty_level = Column(Integer, nullable=False, default=1)
    version = Column(String(32), nullable=False, default="1.0")
    # graph_json: ScenarioGraph dumped by alias (authored camelCase shape)
    graph_json = Column(Text, nullable=False)

    sessions = relationship("TrainingSession", back_populates="scenario")
