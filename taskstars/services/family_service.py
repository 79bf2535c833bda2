import secrets
import logging
from sqlalchemy.orm import Session
from sqlalchemy import select
from ..core.config import settings
from ..core.errors import Conflict, Forbidden, NotFound, ValidationError
from ..db.session import atomic
from ..models.family import Family
from ..models.family_member import FamilyMember, MemberRole, Permission, ROLE_DEFAULTS
from ..models.reward import Redemption, RedemptionStatus, Reward
from ..models.user import User
from . import point_ledger
from .permissions import (
    Actor,
    FamilyScope,
    get_membership,
    is_primary_or_admin,
    require,
    require_primary_or_admin,
)

logger = logging.getLogger(__name__)


def _code(n=8) -> str:
    alphabet = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
    return "".join(secrets.choice(alphabet) for _ in range(n))


def _get_family(db: Session, family_id: str) -> Family:
    fam = db.get(Family, family_id)
    if not fam:
        raise NotFound("Family not found")
    return fam


def create_family(db: Session, *, owner_user_id: str, name: str) -> Family:
    """The creator becomes the primary member with full permission."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Family name is required")
    with atomic(db):
        fam = Family(name=name, invite_code=_code())
        db.add(fam)
        db.flush()
        db.add(FamilyMember(
            family_id=fam.id,
            user_id=owner_user_id,
            role=MemberRole.PRIMARY,
            permission=Permission.FULL,
        ))
    logger.info(f"Family {fam.id} created by user {owner_user_id}")
    return fam


def ensure_default_family(db: Session) -> Family:
    """Bootstrap the single system-wide default family."""
    fam = db.execute(select(Family).where(Family.is_default.is_(True))).scalar_one_or_none()
    if fam:
        return fam
    with atomic(db):
        fam = Family(name=settings.DEFAULT_FAMILY_NAME, invite_code=_code(), is_default=True)
        db.add(fam)
    logger.info(f"Default family {fam.id} created")
    return fam


def claim_default_family(db: Session, actor: Actor) -> FamilyMember:
    """First user to claim the default family becomes its primary member."""
    if actor.user_id is None:
        raise Forbidden()
    fam = ensure_default_family(db)
    with atomic(db):
        has_primary = db.execute(
            select(FamilyMember).where(FamilyMember.family_id == fam.id, FamilyMember.role == MemberRole.PRIMARY)
        ).scalar_one_or_none()
        if has_primary:
            raise Conflict("The default family already has a primary parent")
        member = get_membership(db, user_id=actor.user_id, family_id=fam.id)
        if member:
            member.role = MemberRole.PRIMARY
            member.permission = Permission.FULL
        else:
            member = FamilyMember(
                family_id=fam.id, user_id=actor.user_id, role=MemberRole.PRIMARY, permission=Permission.FULL
            )
            db.add(member)
        db.flush()
    return member


def list_user_families(db: Session, *, user_id: str) -> list[Family]:
    q = select(Family).join(Family.members).where(FamilyMember.user_id == user_id)
    return list(db.execute(q).scalars())


def get_family(db: Session, actor: Actor, family_id: str) -> tuple[Family, FamilyMember | None]:
    require(db, actor, FamilyScope(family_id), Permission.VIEW)
    fam = _get_family(db, family_id)
    mine = get_membership(db, user_id=actor.user_id, family_id=family_id) if actor.user_id else None
    return fam, mine


def update_family(db: Session, actor: Actor, family_id: str, *, name: str | None) -> Family:
    require_primary_or_admin(db, actor, family_id)
    with atomic(db):
        fam = _get_family(db, family_id)
        if name is not None and name.strip():
            fam.name = name.strip()
    return fam


def delete_family(db: Session, actor: Actor, family_id: str) -> None:
    """
    Members and rewards go with the family; kids stay and lose their family
    link. Pending redemptions of the family's rewards are refunded first.
    """
    require_primary_or_admin(db, actor, family_id)
    with atomic(db):
        fam = _get_family(db, family_id)
        if fam.is_default:
            raise ValidationError("Cannot delete the default family")
        pending = db.execute(
            select(Redemption)
            .join(Reward, Reward.id == Redemption.reward_id)
            .where(Reward.family_id == family_id, Redemption.status == RedemptionStatus.PENDING)
        ).scalars().all()
        for red in pending:
            point_ledger.credit(db, red.kid_id, red.points_spent, "Refund: family deleted")
        db.delete(fam)
    logger.info(f"Family {family_id} deleted")


def list_members(db: Session, actor: Actor, family_id: str) -> list[FamilyMember]:
    require(db, actor, FamilyScope(family_id), Permission.VIEW)
    members = db.execute(
        select(FamilyMember).where(FamilyMember.family_id == family_id).order_by(FamilyMember.joined_at)
    ).scalars()
    # primary first
    return sorted(members, key=lambda m: not m.is_primary)


def invite_member(
    db: Session,
    actor: Actor,
    family_id: str,
    *,
    email: str,
    role: MemberRole = MemberRole.PARENT,
    permission: Permission | None = None,
) -> FamilyMember:
    require_primary_or_admin(db, actor, family_id)
    if role == MemberRole.PRIMARY:
        raise ValidationError("A family has exactly one primary parent")
    user = db.execute(select(User).where(User.email == email.lower())).scalar_one_or_none()
    if not user:
        raise NotFound("User not found. They need to register first.")
    with atomic(db):
        if get_membership(db, user_id=user.id, family_id=family_id):
            raise Conflict("User is already a member of this family")
        member = FamilyMember(
            family_id=family_id,
            user_id=user.id,
            role=role,
            permission=permission or ROLE_DEFAULTS[role],
            invited_by_user_id=actor.user_id,
        )
        db.add(member)
        db.flush()
    logger.info(f"User {user.id} joined family {family_id} as {role}")
    return member


def join_by_code(db: Session, actor: Actor, *, code: str) -> FamilyMember:
    if actor.user_id is None:
        raise Forbidden()
    code = code.strip().upper()
    fam = db.execute(select(Family).where(Family.invite_code == code)).scalar_one_or_none()
    if not fam:
        raise NotFound("Invalid invite code")
    with atomic(db):
        if get_membership(db, user_id=actor.user_id, family_id=fam.id):
            raise Conflict("Already a member of this family")
        member = FamilyMember(
            family_id=fam.id,
            user_id=actor.user_id,
            role=MemberRole.PARENT,
            permission=ROLE_DEFAULTS[MemberRole.PARENT],
        )
        db.add(member)
        db.flush()
    return member


def _get_member(db: Session, family_id: str, member_id: str) -> FamilyMember:
    member = db.get(FamilyMember, member_id)
    if not member or member.family_id != family_id:
        raise NotFound("Member not found")
    return member


def update_member(
    db: Session,
    actor: Actor,
    family_id: str,
    member_id: str,
    *,
    role: MemberRole | None = None,
    permission: Permission | None = None,
) -> FamilyMember:
    require_primary_or_admin(db, actor, family_id)
    with atomic(db):
        member = _get_member(db, family_id, member_id)
        if member.is_primary:
            raise ValidationError("Cannot modify primary parent")
        if role == MemberRole.PRIMARY:
            raise ValidationError("A family has exactly one primary parent")
        if role is not None:
            member.role = role
        if permission is not None:
            member.permission = permission
    return member


def remove_member(db: Session, actor: Actor, family_id: str, member_id: str) -> None:
    """Primary parent, admin, or the member leaving on their own."""
    if not is_primary_or_admin(db, actor, family_id):
        mine = get_membership(db, user_id=actor.user_id, family_id=family_id) if actor.user_id else None
        if not mine or mine.id != member_id:
            raise Forbidden()
    member = _get_member(db, family_id, member_id)
    if member.is_primary:
        raise ValidationError("Cannot remove primary parent")
    with atomic(db):
        db.delete(member)
