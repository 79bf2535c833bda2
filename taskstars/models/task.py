from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Optional
from sqlalchemy import String, DateTime, ForeignKey, Integer, Text, Boolean, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from uuid import uuid4

from ..db.base_class import Base
from . import utcnow

if TYPE_CHECKING:
    from .kid import Kid

class RequestStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class RecurringType(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

class TaskState(StrEnum):
    REQUESTED_PENDING = "requested_pending"
    REQUESTED_REJECTED = "requested_rejected"
    ACTIVE = "active"
    AWAITING_FEEDBACK = "awaiting_feedback"
    COMPLETED = "completed"

class TaskEvent(StrEnum):
    APPROVE = "approve"
    REJECT = "reject"
    SUBMIT_COMPLETION = "submit_completion"
    REQUEST_FEEDBACK = "request_feedback"

class Task(Base):
    __table_args__ = (CheckConstraint("point_value > 0", name="ck_task_point_value_positive"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    kid_id: Mapped[str] = mapped_column(String(36), ForeignKey("kid.id", ondelete="CASCADE"), index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    point_value: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    recurring_type: Mapped[Optional[RecurringType]] = mapped_column()

    is_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    is_kid_request: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    request_status: Mapped[RequestStatus] = mapped_column(default=RequestStatus.APPROVED, index=True)
    feedback_requested: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    proof_image_url: Mapped[Optional[str]] = mapped_column(String(512))
    completion_note: Mapped[Optional[str]] = mapped_column(Text)
    parent_comment: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    kid: Mapped["Kid"] = relationship(back_populates="tasks")

    @property
    def state(self) -> TaskState:
        if self.is_completed:
            return TaskState.COMPLETED
        if self.request_status == RequestStatus.PENDING:
            return TaskState.REQUESTED_PENDING
        if self.request_status == RequestStatus.REJECTED:
            return TaskState.REQUESTED_REJECTED
        if self.feedback_requested:
            return TaskState.AWAITING_FEEDBACK
        return TaskState.ACTIVE
