"""
Permission resolver.

Answers "may this actor do something that needs permission P on this family
or kid". Administrators bypass every check. Kid scopes resolve to the kid's
family; a kid without a family is visible to administrators only.

Missing families and kids raise ``NotFound`` so that a permission failure
never reveals whether the entity exists.
"""
from dataclasses import dataclass
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.errors import Forbidden, NotFound
from ..models.family import Family
from ..models.family_member import FamilyMember, MemberRole, Permission
from ..models.kid import Kid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, as handed over by the identity provider."""
    user_id: str | None = None
    is_admin: bool = False
    # set for kid sessions opened through an access link or a PIN
    kid_id: str | None = None

    @property
    def is_kid(self) -> bool:
        return self.kid_id is not None


@dataclass(frozen=True)
class FamilyScope:
    family_id: str


@dataclass(frozen=True)
class KidScope:
    kid_id: str


Scope = FamilyScope | KidScope


def get_membership(db: Session, *, user_id: str, family_id: str) -> FamilyMember | None:
    return db.execute(
        select(FamilyMember).where(FamilyMember.user_id == user_id, FamilyMember.family_id == family_id)
    ).scalar_one_or_none()


def resolve_family_id(db: Session, scope: Scope) -> str | None:
    if isinstance(scope, KidScope):
        kid = db.get(Kid, scope.kid_id)
        if not kid:
            raise NotFound("Kid not found")
        return kid.family_id
    if not db.get(Family, scope.family_id):
        raise NotFound("Family not found")
    return scope.family_id


def authorize(db: Session, actor: Actor, scope: Scope, required: Permission) -> bool:
    family_id = resolve_family_id(db, scope)
    if actor.is_admin:
        return True
    if family_id is None or actor.user_id is None:
        return False
    member = get_membership(db, user_id=actor.user_id, family_id=family_id)
    if not member:
        return False
    return member.permission >= required


def require(db: Session, actor: Actor, scope: Scope, required: Permission) -> None:
    if not authorize(db, actor, scope, required):
        logger.warning(f"Denied {required} on {scope} for actor {actor.user_id or actor.kid_id}")
        raise Forbidden()


def is_primary_or_admin(db: Session, actor: Actor, family_id: str) -> bool:
    if not db.get(Family, family_id):
        raise NotFound("Family not found")
    if actor.is_admin:
        return True
    if actor.user_id is None:
        return False
    member = get_membership(db, user_id=actor.user_id, family_id=family_id)
    return member is not None and member.role == MemberRole.PRIMARY


def require_primary_or_admin(db: Session, actor: Actor, family_id: str) -> None:
    if not is_primary_or_admin(db, actor, family_id):
        raise Forbidden("Only the primary parent can do this")


def require_kid_or_permission(db: Session, actor: Actor, kid_id: str, required: Permission) -> None:
    """A kid session may act on itself; anyone else needs ``required`` on the kid."""
    if actor.kid_id is not None and actor.kid_id == kid_id:
        if not db.get(Kid, kid_id):
            raise NotFound("Kid not found")
        return
    require(db, actor, KidScope(kid_id), required)
