from datetime import datetime
from typing import TYPE_CHECKING
from sqlalchemy import String, DateTime, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship
from uuid import uuid4
from ..db.base_class import Base
from . import utcnow

if TYPE_CHECKING:
    from .family_member import FamilyMember
    from .kid import Kid
    from .reward import Reward

class Family(Base):
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    name: Mapped[str] = mapped_column(String(128), index=True, nullable=False)
    invite_code: Mapped[str] = mapped_column(String(12), unique=True, index=True, nullable=False)
    # at most one default family system-wide, created by bootstrap
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    members: Mapped[list["FamilyMember"]] = relationship(back_populates="family", cascade="all,delete-orphan")
    kids: Mapped[list["Kid"]] = relationship(back_populates="family")
    rewards: Mapped[list["Reward"]] = relationship(back_populates="family", cascade="all,delete-orphan")
