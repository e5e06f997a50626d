"""Task, subtask and RACI models."""
import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from raciboard.database import Base
from raciboard.db.types import GUID
from raciboard.domain.value_objects import PhaseCode, RaciLetter
from raciboard.utils.dates import utc_now


class TaskModel(Base):
    """Task row."""

    __tablename__ = "tasks"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    phase_code = Column(SQLEnum(PhaseCode, name="phase_code"), nullable=False, index=True)
    page_id = Column(Integer, nullable=True, index=True)
    title = Column(String(256), nullable=False)
    description = Column(Text, nullable=True)
    priority = Column(SmallInteger, nullable=False)
    owner_id = Column(GUID(), nullable=True, index=True)
    progress = Column(SmallInteger, nullable=False, default=0)
    created_by = Column(GUID(), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    planned_start = Column(DateTime(timezone=True), nullable=True)
    planned_end = Column(DateTime(timezone=True), nullable=True)

    # Relationships (rows are removed by ON DELETE CASCADE)
    subtasks = relationship("SubTaskModel", back_populates="task", passive_deletes=True)
    raci = relationship("TaskRaciModel", back_populates="task", passive_deletes=True)
    profiles = relationship("TaskProfileModel", back_populates="task", passive_deletes=True)


class SubTaskModel(Base):
    """Subtask row."""

    __tablename__ = "subtasks"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4, index=True)
    task_id = Column(GUID(), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(256), nullable=False)
    description = Column(Text, nullable=True)
    completed = Column(Boolean, nullable=False, default=False)
    created_by = Column(GUID(), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    task = relationship("TaskModel", back_populates="subtasks")
    raci = relationship("SubTaskRaciModel", back_populates="subtask", passive_deletes=True)


class TaskRaciModel(Base):
    """Task-level RACI row. One letter per (task, user)."""

    __tablename__ = "task_raci"
    __table_args__ = (
        UniqueConstraint("task_id", "user_id", name="uq_task_raci_user"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    task_id = Column(GUID(), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(GUID(), nullable=False, index=True)
    letter = Column(SQLEnum(RaciLetter, name="raci_letter"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    task = relationship("TaskModel", back_populates="raci")


class SubTaskRaciModel(Base):
    """Subtask-level RACI row, owned by the subtask once copied."""

    __tablename__ = "subtask_raci"
    __table_args__ = (
        UniqueConstraint("subtask_id", "user_id", name="uq_subtask_raci_user"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    subtask_id = Column(GUID(), ForeignKey("subtasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(GUID(), nullable=False, index=True)
    letter = Column(SQLEnum(RaciLetter, name="raci_letter"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    subtask = relationship("SubTaskModel", back_populates="raci")
