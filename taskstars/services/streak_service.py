"""
Streak engine: consecutive active days per kid and one-shot milestone bonuses.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..core.errors import AlreadyClaimed, NotEligible, NotFound, ValidationError
from ..db.session import atomic
from ..models.family_member import Permission
from ..models.kid import Kid
from ..models.streak import Milestone, Streak
from . import point_ledger
from .permissions import Actor, require_kid_or_permission

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MilestoneRule:
    days: int
    bonus_points: int
    flag: str


MILESTONES: dict[Milestone, MilestoneRule] = {
    Milestone.WEEK: MilestoneRule(days=7, bonus_points=50, flag="week_bonus"),
    Milestone.MONTH: MilestoneRule(days=30, bonus_points=150, flag="month_bonus"),
    Milestone.QUARTER: MilestoneRule(days=90, bonus_points=500, flag="quarter_bonus"),
}


def _as_day(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def _find(db: Session, kid_id: str) -> Streak | None:
    return db.execute(
        select(Streak).where(Streak.kid_id == kid_id).execution_options(populate_existing=True)
    ).scalar_one_or_none()


def get_streak(db: Session, kid_id: str) -> Streak:
    """Return the kid's streak, creating an empty one on first read."""
    if not db.get(Kid, kid_id):
        raise NotFound("Kid not found")
    streak = _find(db, kid_id)
    if streak is None:
        streak = Streak(kid_id=kid_id, current_streak=0, longest_streak=0)
        db.add(streak)
        db.flush()
    return streak


def record_activity(db: Session, kid_id: str, activity_date: date | datetime) -> Streak:
    today = _as_day(activity_date)
    if not db.get(Kid, kid_id):
        raise NotFound("Kid not found")
    streak = _find(db, kid_id)
    if streak is None:
        streak = Streak(kid_id=kid_id, current_streak=1, longest_streak=1, last_active_date=today)
        db.add(streak)
        db.flush()
        return streak

    last = streak.last_active_date
    if last is None:
        # created by a read before any activity
        streak.current_streak = 1
    elif today == last:
        return streak
    elif today < last:
        raise ValidationError(f"Activity on {today} is earlier than the last active day {last}")
    elif today - last == timedelta(days=1):
        streak.current_streak += 1
    else:
        streak.current_streak = 1
    streak.longest_streak = max(streak.longest_streak, streak.current_streak)
    streak.last_active_date = today
    db.flush()
    return streak


def claim_milestone(db: Session, kid_id: str, milestone: Milestone) -> tuple[int, Streak]:
    """
    Pay out a milestone bonus once. The claim flag is flipped with a
    conditional UPDATE so a concurrent claim of the same milestone finds no
    row to change and fails instead of paying twice.
    """
    rule = MILESTONES[milestone]
    streak = _find(db, kid_id)
    if streak is None:
        if not db.get(Kid, kid_id):
            raise NotFound("Kid not found")
        raise NotEligible(f"Need a {rule.days} day streak")
    if streak.current_streak < rule.days:
        raise NotEligible(f"Need a {rule.days} day streak")
    if getattr(streak, rule.flag):
        raise AlreadyClaimed()

    flag = getattr(Streak, rule.flag)
    result = db.execute(
        update(Streak)
        .where(Streak.id == streak.id, flag.is_(False))
        .values({rule.flag: True})
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise AlreadyClaimed()
    point_ledger.credit(db, kid_id, rule.bonus_points, f"{rule.days}-day streak bonus!")
    db.refresh(streak)
    logger.info(f"Kid {kid_id} claimed {milestone} bonus of {rule.bonus_points} points")
    return rule.bonus_points, streak


def get_kid_streak(db: Session, actor: Actor, kid_id: str) -> Streak:
    require_kid_or_permission(db, actor, kid_id, Permission.VIEW)
    with atomic(db):
        streak = get_streak(db, kid_id)
    return streak


def claim_streak_milestone(db: Session, actor: Actor, kid_id: str, milestone: Milestone) -> tuple[int, int, Streak]:
    """Returns the bonus, the kid's new balance and the updated streak."""
    require_kid_or_permission(db, actor, kid_id, Permission.MANAGE)
    with atomic(db):
        bonus, streak = claim_milestone(db, kid_id, milestone)
        balance = db.get(Kid, kid_id).total_points
    return bonus, balance, streak
