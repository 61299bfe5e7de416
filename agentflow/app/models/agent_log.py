"""Database models for the agent activity log."""

from sqlalchemy import JSON, Column, DateTime, String, Text
from .task import Base, utcnow


class AgentLogModel(Base):
    """Append-only agent log entry."""
    __tablename__ = "agent_logs"

    id = Column(String(100), primary_key=True)
    agent_id = Column(String(100), index=True, nullable=False)
    user_id = Column(String(100))
    log_type = Column(String(20), index=True, nullable=False)  # milestone, action, info, success, error, task_update, dependency
    message = Column(Text, nullable=False)
    task_id = Column(String(100))
    metadata_ = Column("metadata", JSON, default=dict)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
