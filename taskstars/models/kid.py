from datetime import datetime
from typing import TYPE_CHECKING, Optional
from sqlalchemy import String, DateTime, ForeignKey, Integer, Boolean, Text, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from uuid import uuid4
from ..db.base_class import Base
from . import utcnow

if TYPE_CHECKING:
    from .family import Family
    from .task import Task
    from .points import PointLog
    from .streak import Streak
    from .reward import Redemption, RewardRequest

class Kid(Base):
    __table_args__ = (CheckConstraint("total_points >= 0", name="ck_kid_points_non_negative"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    family_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("family.id", ondelete="SET NULL"), index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    avatar_color: Mapped[str] = mapped_column(String(16), default="#60A5FA", nullable=False)
    avatar_url: Mapped[Optional[str]] = mapped_column(String(512))
    motto: Mapped[Optional[str]] = mapped_column(Text)
    # authoritative running balance, every change is mirrored by a PointLog row
    total_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    pin_hash: Mapped[Optional[str]] = mapped_column(String(255))
    access_token: Mapped[Optional[str]] = mapped_column(String(64), unique=True, index=True)
    access_token_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    access_token_expiry: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    # bumped whenever the link or PIN changes, older kid sessions stop working
    session_version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    family: Mapped[Optional["Family"]] = relationship(back_populates="kids")
    tasks: Mapped[list["Task"]] = relationship(back_populates="kid", cascade="all,delete-orphan")
    point_logs: Mapped[list["PointLog"]] = relationship(back_populates="kid", cascade="all,delete-orphan")
    streak: Mapped[Optional["Streak"]] = relationship(back_populates="kid", uselist=False, cascade="all,delete-orphan")
    redemptions: Mapped[list["Redemption"]] = relationship(back_populates="kid", cascade="all,delete-orphan")
    reward_requests: Mapped[list["RewardRequest"]] = relationship(back_populates="kid", cascade="all,delete-orphan")
