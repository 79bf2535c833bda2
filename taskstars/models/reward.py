from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import String, DateTime, ForeignKey, Integer, Text, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.base_class import Base
from . import utcnow

if TYPE_CHECKING:
    from .family import Family
    from .kid import Kid


class Reward(Base):
    __tablename__ = "reward"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    family_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("family.id", ondelete="CASCADE"),
        index=True,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    point_cost: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    family: Mapped["Family"] = relationship(back_populates="rewards")
    redemptions: Mapped[list["Redemption"]] = relationship(
        back_populates="reward",
        cascade="all,delete-orphan",
    )


class RedemptionStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Redemption(Base):
    __tablename__ = "redemption"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )

    kid_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("kid.id", ondelete="CASCADE"),
        index=True,
    )

    reward_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("reward.id", ondelete="CASCADE"),
        index=True,
    )

    # points are debited when the redemption is requested
    points_spent: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[RedemptionStatus] = mapped_column(
        default=RedemptionStatus.PENDING,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    kid: Mapped["Kid"] = relationship(back_populates="redemptions")
    reward: Mapped["Reward"] = relationship(back_populates="redemptions")


class RewardRequestStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RewardRequest(Base):
    __tablename__ = "rewardrequest"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )

    kid_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("kid.id", ondelete="CASCADE"),
        index=True,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    suggested_cost: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[RewardRequestStatus] = mapped_column(
        default=RewardRequestStatus.PENDING,
        index=True,
    )
    parent_note: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    kid: Mapped["Kid"] = relationship(back_populates="reward_requests")
