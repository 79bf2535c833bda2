"""
Kid profiles, kid sessions and the manual point adjustment.
"""
from datetime import datetime, timedelta, timezone
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.errors import NotFound, Unauthorized, ValidationError
from ..db.session import atomic
from ..models.kid import Kid
from ..models.family_member import Permission
from ..models.points import PointLog
from . import point_ledger
from .permissions import Actor, FamilyScope, KidScope, require, require_kid_or_permission
from .security import hash_password, new_link_token, verify_password

logger = logging.getLogger(__name__)


def _get_kid(db: Session, kid_id: str) -> Kid:
    kid = db.get(Kid, kid_id)
    if not kid:
        raise NotFound("Kid not found")
    return kid


def create_kid(
    db: Session,
    actor: Actor,
    *,
    family_id: str,
    name: str,
    avatar_color: str | None = None,
    motto: str | None = None,
) -> Kid:
    require(db, actor, FamilyScope(family_id), Permission.MANAGE)
    name = (name or "").strip()
    if not name:
        raise ValidationError("Name is required")
    with atomic(db):
        kid = Kid(family_id=family_id, name=name, motto=motto)
        if avatar_color:
            kid.avatar_color = avatar_color
        db.add(kid)
        db.flush()
    logger.info(f"Kid {kid.id} added to family {family_id}")
    return kid


def get_kid(db: Session, actor: Actor, kid_id: str) -> Kid:
    require_kid_or_permission(db, actor, kid_id, Permission.VIEW)
    return _get_kid(db, kid_id)


def list_family_kids(db: Session, actor: Actor, family_id: str) -> list[Kid]:
    require(db, actor, FamilyScope(family_id), Permission.VIEW)
    return list(db.execute(select(Kid).where(Kid.family_id == family_id).order_by(Kid.name)).scalars())


def update_kid(db: Session, actor: Actor, kid_id: str, **changes) -> Kid:
    """Profile fields only; points change through ``adjust_kid_points``."""
    require(db, actor, KidScope(kid_id), Permission.MANAGE)
    with atomic(db):
        kid = _get_kid(db, kid_id)
        for field in ("name", "avatar_color", "avatar_url", "motto"):
            value = changes.get(field)
            if value is not None:
                setattr(kid, field, value)
    return kid


def delete_kid(db: Session, actor: Actor, kid_id: str) -> None:
    require(db, actor, KidScope(kid_id), Permission.MANAGE)
    with atomic(db):
        db.delete(_get_kid(db, kid_id))
    logger.info(f"Kid {kid_id} deleted")


def adjust_kid_points(
    db: Session, actor: Actor, kid_id: str, *, new_balance: int, reason: str
) -> tuple[Kid, PointLog | None]:
    require(db, actor, KidScope(kid_id), Permission.FULL)
    with atomic(db):
        log = point_ledger.adjust(db, kid_id, new_balance, reason)
        kid = _get_kid(db, kid_id)
    return kid, log


def list_point_logs(db: Session, actor: Actor, kid_id: str) -> list[PointLog]:
    require_kid_or_permission(db, actor, kid_id, Permission.VIEW)
    return point_ledger.list_point_logs(db, kid_id)


def set_pin(db: Session, actor: Actor, kid_id: str, pin: str) -> Kid:
    require(db, actor, KidScope(kid_id), Permission.MANAGE)
    with atomic(db):
        kid = _get_kid(db, kid_id)
        kid.pin_hash = hash_password(pin)
        kid.session_version += 1
    return kid


def generate_access_link(db: Session, actor: Actor, kid_id: str, *, expires_in_days: int | None = None) -> Kid:
    """Issue a fresh link token; the previous one stops working."""
    require(db, actor, KidScope(kid_id), Permission.MANAGE)
    with atomic(db):
        kid = _get_kid(db, kid_id)
        kid.access_token = new_link_token()
        kid.access_token_enabled = True
        kid.session_version += 1
        kid.access_token_expiry = (
            datetime.now(timezone.utc) + timedelta(days=expires_in_days) if expires_in_days else None
        )
    logger.info(f"Access link regenerated for kid {kid_id}")
    return kid


def update_access_link(
    db: Session, actor: Actor, kid_id: str, *, enabled: bool | None = None, expires_in_days: int | None = None
) -> Kid:
    require(db, actor, KidScope(kid_id), Permission.MANAGE)
    with atomic(db):
        kid = _get_kid(db, kid_id)
        if enabled is not None:
            kid.access_token_enabled = enabled
        if expires_in_days is not None:
            kid.access_token_expiry = (
                datetime.now(timezone.utc) + timedelta(days=expires_in_days) if expires_in_days else None
            )
        kid.session_version += 1
    return kid


def _expired(expiry: datetime | None) -> bool:
    if expiry is None:
        return False
    # SQLite hands back naive datetimes
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    return expiry < datetime.now(timezone.utc)


def authenticate_kid(
    db: Session, *, access_token: str | None = None, kid_id: str | None = None, pin: str | None = None
) -> Kid:
    if access_token:
        kid = db.execute(
            select(Kid).where(Kid.access_token == access_token, Kid.access_token_enabled.is_(True))
        ).scalar_one_or_none()
        if not kid:
            raise Unauthorized("Invalid access link")
        if _expired(kid.access_token_expiry):
            raise Unauthorized("Access link has expired")
        return kid
    if kid_id and pin:
        kid = db.get(Kid, kid_id)
        if not kid or not kid.pin_hash or not verify_password(pin, kid.pin_hash):
            raise Unauthorized("Incorrect PIN")
        return kid
    raise ValidationError("Provide an access token or a kid id and PIN")


def check_kid_session(db: Session, kid_id: str, *, version: int | None, via: str | None) -> Kid:
    """
    Re-validate a kid session token on every request. Regenerating or
    changing the access link and setting a PIN bump ``session_version``;
    link sessions also end as soon as the link is disabled or expires.
    """
    kid = db.get(Kid, kid_id)
    if not kid or version != kid.session_version:
        raise Unauthorized("Kid session is no longer valid")
    if via == "link" and (not kid.access_token_enabled or _expired(kid.access_token_expiry)):
        raise Unauthorized("Access link is disabled or has expired")
    return kid
