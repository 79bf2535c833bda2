"""
Point ledger.

A kid's ``total_points`` is the running balance and every change to it is
mirrored by exactly one ``PointLog`` row, so folding the log in creation
order rebuilds the balance. Writers run inside the caller's transaction
(see ``db.session.atomic``); the balance is read with a row lock so two
concurrent edits of the same kid cannot lose an update.
"""
from typing import Iterable, NamedTuple
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.errors import InsufficientPoints, NotFound, ValidationError
from ..models.kid import Kid
from ..models.points import PointLog

logger = logging.getLogger(__name__)


class GemBalance(NamedTuple):
    gems: int
    stars: int


def gem_view(total_points: int, gem_ratio: int | None = None) -> GemBalance:
    """Split a point total into whole gems and leftover stars."""
    ratio = settings.GEM_RATIO if gem_ratio is None else gem_ratio
    if ratio < 1:
        raise ValidationError("Gem ratio must be at least 1")
    gems, stars = divmod(total_points, ratio)
    return GemBalance(gems=gems, stars=stars)


def _lock_kid(db: Session, kid_id: str) -> Kid:
    kid = db.execute(
        select(Kid)
        .where(Kid.id == kid_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if not kid:
        raise NotFound("Kid not found")
    return kid


def _append(db: Session, kid: Kid, new_balance: int, reason: str) -> PointLog:
    log = PointLog(kid_id=kid.id, old_points=kid.total_points, new_points=new_balance, reason=reason)
    kid.total_points = new_balance
    db.add(log)
    db.flush()
    logger.info(f"Kid {kid.id} points {log.old_points} -> {log.new_points}: {reason}")
    return log


def credit(db: Session, kid_id: str, delta: int, reason: str) -> int:
    """Add ``delta`` (negative for debits) and return the new balance."""
    kid = _lock_kid(db, kid_id)
    if delta == 0:
        return kid.total_points
    new_balance = kid.total_points + delta
    if new_balance < 0:
        raise InsufficientPoints()
    _append(db, kid, new_balance, reason)
    return new_balance


def adjust(db: Session, kid_id: str, new_balance: int, reason: str) -> PointLog | None:
    """Set the balance outright. Returns the log row, or None when nothing changed."""
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A reason is required to change points")
    if new_balance < 0:
        raise ValidationError("Points cannot be negative")
    kid = _lock_kid(db, kid_id)
    if kid.total_points == new_balance:
        return None
    return _append(db, kid, new_balance, reason)


def list_point_logs(db: Session, kid_id: str) -> list[PointLog]:
    return list(
        db.execute(
            select(PointLog).where(PointLog.kid_id == kid_id).order_by(PointLog.id.desc())
        ).scalars()
    )


def replay(logs: Iterable[PointLog], opening_balance: int = 0) -> int:
    """Fold log rows (oldest first) into the balance they describe."""
    balance = opening_balance
    for log in logs:
        if log.old_points != balance:
            raise ValueError(f"Point log {log.id} starts at {log.old_points}, expected {balance}")
        balance = log.new_points
    return balance


def verify_balance(db: Session, kid_id: str) -> bool:
    kid = db.get(Kid, kid_id)
    if not kid:
        raise NotFound("Kid not found")
    logs = db.execute(
        select(PointLog).where(PointLog.kid_id == kid_id).order_by(PointLog.id)
    ).scalars()
    try:
        return replay(logs) == kid.total_points
    except ValueError as e:
        logger.warning(f"Ledger for kid {kid_id} is broken: {e}")
        return False
