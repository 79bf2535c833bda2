import logging
from sqlalchemy.orm import Session
from sqlalchemy import select
from ..core.errors import Conflict, NotFound, ValidationError
from ..db.session import atomic
from ..models.family_member import Permission
from ..models.kid import Kid
from ..models.reward import Reward, Redemption, RedemptionStatus, RewardRequest, RewardRequestStatus
from . import point_ledger
from .permissions import Actor, FamilyScope, KidScope, require, require_kid_or_permission

logger = logging.getLogger(__name__)

def create_reward(db: Session, actor: Actor, *, family_id: str, name: str, description: str | None, point_cost: int) -> Reward:
    require(db, actor, FamilyScope(family_id), Permission.MANAGE)
    if point_cost <= 0:
        raise ValidationError("Point cost must be positive")
    with atomic(db):
        r = Reward(family_id=family_id, name=name, description=description, point_cost=point_cost)
        db.add(r)
        db.flush()
    return r

def list_rewards(db: Session, actor: Actor, *, family_id: str) -> list[Reward]:
    # kids see the rewards of their own family
    own_kid = db.get(Kid, actor.kid_id) if actor.is_kid else None
    if not own_kid or own_kid.family_id != family_id:
        require(db, actor, FamilyScope(family_id), Permission.VIEW)
    return list(db.execute(
        select(Reward).where(Reward.family_id == family_id, Reward.is_active.is_(True)).order_by(Reward.point_cost)
    ).scalars())

def redeem(db: Session, actor: Actor, *, reward_id: str, kid_id: str) -> Redemption:
    """Debit the reward's cost right away; a rejected redemption is refunded."""
    require_kid_or_permission(db, actor, kid_id, Permission.MANAGE)
    with atomic(db):
        reward = db.get(Reward, reward_id)
        kid = db.get(Kid, kid_id)
        if not reward or not reward.is_active or not kid or kid.family_id != reward.family_id:
            raise NotFound("Reward not found")
        # credit() refuses to go below zero
        point_ledger.credit(db, kid_id, -reward.point_cost, f"Redeemed reward: {reward.name}")
        red = Redemption(kid_id=kid_id, reward_id=reward.id, points_spent=reward.point_cost)
        db.add(red)
        db.flush()
    logger.info(f"Kid {kid_id} redeemed reward {reward_id} for {reward.point_cost} points")
    return red

def review_redemption(db: Session, actor: Actor, *, redemption_id: str, approve: bool) -> Redemption:
    with atomic(db):
        red = db.get(Redemption, redemption_id)
        if not red:
            raise NotFound("Redemption not found")
        require(db, actor, KidScope(red.kid_id), Permission.MANAGE)
        if red.status != RedemptionStatus.PENDING:
            raise Conflict("Redemption was already reviewed")
        if approve:
            red.status = RedemptionStatus.APPROVED
        else:
            red.status = RedemptionStatus.REJECTED
            point_ledger.credit(db, red.kid_id, red.points_spent, f"Refund for rejected reward: {red.reward.name}")
        db.flush()
    return red

def list_redemptions(db: Session, actor: Actor, *, kid_id: str) -> list[Redemption]:
    require_kid_or_permission(db, actor, kid_id, Permission.VIEW)
    return list(db.execute(
        select(Redemption).where(Redemption.kid_id == kid_id).order_by(Redemption.created_at.desc())
    ).scalars())

def suggest_reward(db: Session, actor: Actor, *, kid_id: str, name: str, description: str | None, suggested_cost: int) -> RewardRequest:
    require_kid_or_permission(db, actor, kid_id, Permission.MANAGE)
    if suggested_cost <= 0:
        raise ValidationError("Suggested cost must be positive")
    with atomic(db):
        req = RewardRequest(kid_id=kid_id, name=name, description=description, suggested_cost=suggested_cost)
        db.add(req)
        db.flush()
    return req

def review_reward_request(
    db: Session,
    actor: Actor,
    *,
    request_id: str,
    approve: bool,
    point_cost: int | None = None,
    parent_note: str | None = None,
) -> tuple[RewardRequest, Reward | None]:
    """Approving turns the suggestion into a reward of the kid's family."""
    with atomic(db):
        req = db.get(RewardRequest, request_id)
        if not req:
            raise NotFound("Reward request not found")
        require(db, actor, KidScope(req.kid_id), Permission.MANAGE)
        if req.status != RewardRequestStatus.PENDING:
            raise Conflict("Reward request was already reviewed")
        req.parent_note = parent_note
        reward = None
        if approve:
            if not req.kid.family_id:
                raise ValidationError("Kid has no family to add the reward to")
            req.status = RewardRequestStatus.APPROVED
            reward = Reward(
                family_id=req.kid.family_id,
                name=req.name,
                description=req.description,
                point_cost=point_cost or req.suggested_cost,
            )
            db.add(reward)
        else:
            req.status = RewardRequestStatus.REJECTED
        db.flush()
    return req, reward
