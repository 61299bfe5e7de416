"""Database models for tasks."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class TaskModel(Base):
    """Task database model."""
    __tablename__ = "tasks"

    id = Column(String(100), primary_key=True)
    agent_id = Column(String(100), index=True, nullable=False)
    title = Column(String(500), nullable=False)
    description = Column(Text)
    status = Column(String(20), index=True, default="todo")  # todo, in_progress, blocked, done
    priority = Column(String(20), default="medium")  # low, medium, high, urgent
    is_dependency = Column(Boolean, index=True, default=False)
    blocked_reason = Column(Text)
    auto_generated = Column(Boolean, default=False)
    # "metadata" is reserved on declarative classes
    metadata_ = Column("metadata", JSON, default=dict)
    workflow_state = Column(String(20))  # pending, user_working, completed; NULL for plain tasks
    version = Column(Integer, nullable=False, default=1)
    estimated_hours = Column(Float)
    position = Column(Integer)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True))
