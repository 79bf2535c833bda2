from __future__ import annotations
from datetime import datetime
from typing import TYPE_CHECKING
from enum import StrEnum
from sqlalchemy import String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from uuid import uuid4
from ..db.base_class import Base
from . import utcnow

if TYPE_CHECKING:
    from .user import User
    from .family import Family

class MemberRole(StrEnum):
    PRIMARY = "primary"
    PARENT = "parent"
    GUARDIAN = "guardian"
    GRANDPARENT = "grandparent"

class Permission(StrEnum):
    """Access levels, totally ordered view < comment < manage < full."""
    VIEW = "view"
    COMMENT = "comment"
    MANAGE = "manage"
    FULL = "full"

    @property
    def level(self) -> int:
        return list(type(self)).index(self)

    # plain str comparison would order the levels alphabetically
    def __ge__(self, other):
        if not isinstance(other, Permission):
            return NotImplemented
        return self.level >= other.level

    def __gt__(self, other):
        if not isinstance(other, Permission):
            return NotImplemented
        return self.level > other.level

    def __le__(self, other):
        if not isinstance(other, Permission):
            return NotImplemented
        return self.level <= other.level

    def __lt__(self, other):
        if not isinstance(other, Permission):
            return NotImplemented
        return self.level < other.level

ROLE_DEFAULTS: dict[MemberRole, Permission] = {
    MemberRole.PRIMARY: Permission.FULL,
    MemberRole.PARENT: Permission.MANAGE,
    MemberRole.GUARDIAN: Permission.MANAGE,
    MemberRole.GRANDPARENT: Permission.COMMENT,
}

class FamilyMember(Base):
    __table_args__ = (UniqueConstraint("user_id", "family_id", name="uq_member_user_family"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    family_id: Mapped[str] = mapped_column(String(36), ForeignKey("family.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("user.id", ondelete="CASCADE"), index=True)
    role: Mapped[MemberRole] = mapped_column(default=MemberRole.PARENT)
    permission: Mapped[Permission] = mapped_column(default=Permission.MANAGE)
    invited_by_user_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("user.id", ondelete="SET NULL"))
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    user: Mapped["User"] = relationship(back_populates="memberships", foreign_keys=[user_id])
    family: Mapped["Family"] = relationship(back_populates="members")

    @property
    def is_primary(self) -> bool:
        return self.role == MemberRole.PRIMARY
