from datetime import date, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Optional
from sqlalchemy import String, DateTime, Date, ForeignKey, Integer, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship
from uuid import uuid4

from ..db.base_class import Base
from . import utcnow

if TYPE_CHECKING:
    from .kid import Kid

class Milestone(StrEnum):
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"

class Streak(Base):
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    kid_id: Mapped[str] = mapped_column(String(36), ForeignKey("kid.id", ondelete="CASCADE"), unique=True, index=True)
    current_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_active_date: Mapped[Optional[date]] = mapped_column(Date)
    week_bonus: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    month_bonus: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    quarter_bonus: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    kid: Mapped["Kid"] = relationship(back_populates="streak")
