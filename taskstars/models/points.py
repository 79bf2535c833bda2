from datetime import datetime
from typing import TYPE_CHECKING
from sqlalchemy import String, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.base_class import Base
from . import utcnow

if TYPE_CHECKING:
    from .kid import Kid

class PointLog(Base):
    """One balance change. Rows are only ever inserted."""

    # integer key gives a strict creation order even when timestamps tie
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kid_id: Mapped[str] = mapped_column(String(36), ForeignKey("kid.id", ondelete="CASCADE"), index=True)
    old_points: Mapped[int] = mapped_column(Integer, nullable=False)
    new_points: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    kid: Mapped["Kid"] = relationship(back_populates="point_logs")

    @property
    def delta(self) -> int:
        return self.new_points - self.old_points
