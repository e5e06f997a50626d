"""Impacted-profile catalog and task association models."""
from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from raciboard.database import Base
from raciboard.db.types import GUID
from raciboard.utils.dates import utc_now


class ProfileModel(Base):
    """Impacted-profile catalog entry."""

    __tablename__ = "profiles"

    code = Column(String(8), primary_key=True)
    name = Column(String(64), nullable=False)
    description = Column(Text, nullable=True)


class TaskProfileModel(Base):
    """Task to impacted-profile link."""

    __tablename__ = "task_profiles"

    task_id = Column(GUID(), ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True)
    profile_code = Column(
        String(8),
        ForeignKey("profiles.code", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    task = relationship("TaskModel", back_populates="profiles")
    profile = relationship("ProfileModel")
