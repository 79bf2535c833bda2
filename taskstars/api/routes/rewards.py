from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...schemas.reward import (
    RedeemIn,
    RedemptionOut,
    RedemptionReviewIn,
    RewardCreate,
    RewardOut,
    RewardRequestCreate,
    RewardRequestOut,
    RewardRequestReviewIn,
)
from ...services import reward_service
from ...services.permissions import Actor
from ..deps import get_db, get_current_actor


router = APIRouter()


@router.post("/families/{family_id}/rewards", response_model=RewardOut, status_code=201)
def create_family_reward(
    family_id: str,
    payload: RewardCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return reward_service.create_reward(
        db,
        actor,
        family_id=family_id,
        name=payload.name,
        description=payload.description,
        point_cost=payload.point_cost,
    )


@router.get("/families/{family_id}/rewards", response_model=list[RewardOut])
def family_rewards(
    family_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return reward_service.list_rewards(db, actor, family_id=family_id)


@router.post("/rewards/{reward_id}/redeem", response_model=RedemptionOut, status_code=201)
def redeem(
    reward_id: str,
    payload: RedeemIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return reward_service.redeem(db, actor, reward_id=reward_id, kid_id=payload.kid_id)


@router.post("/redemptions/{redemption_id}/review", response_model=RedemptionOut)
def review_redemption(
    redemption_id: str,
    payload: RedemptionReviewIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return reward_service.review_redemption(db, actor, redemption_id=redemption_id, approve=payload.approve)


@router.get("/kids/{kid_id}/redemptions", response_model=list[RedemptionOut])
def kid_redemptions(
    kid_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return reward_service.list_redemptions(db, actor, kid_id=kid_id)


@router.post("/kids/{kid_id}/reward-requests", response_model=RewardRequestOut, status_code=201)
def suggest_reward(
    kid_id: str,
    payload: RewardRequestCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return reward_service.suggest_reward(
        db,
        actor,
        kid_id=kid_id,
        name=payload.name,
        description=payload.description,
        suggested_cost=payload.suggested_cost,
    )


@router.post("/reward-requests/{request_id}/review", response_model=RewardRequestOut)
def review_reward_request(
    request_id: str,
    payload: RewardRequestReviewIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    req, _ = reward_service.review_reward_request(
        db,
        actor,
        request_id=request_id,
        approve=payload.approve,
        point_cost=payload.point_cost,
        parent_note=payload.parent_note,
    )
    return req
