"""Database models for agents."""

from sqlalchemy import JSON, Column, DateTime, String, Text
from .task import Base, utcnow


class AgentModel(Base):
    """Agent database model."""
    __tablename__ = "agents"

    id = Column(String(100), primary_key=True)
    owner_id = Column(String(100), index=True, nullable=False)
    name = Column(String(200), nullable=False)
    goal = Column(Text)
    behavior = Column(Text)
    status = Column(String(20), default="active")  # active, paused, completed, error
    template_slug = Column(String(100))
    metadata_ = Column("metadata", JSON, default=dict)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True))
