from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ...models.kid import Kid
from ...schemas.kid import AccessLinkIn, AccessLinkOut, AccessLinkUpdate, KidOut, KidUpdate, PinIn
from ...schemas.streak import MilestoneClaimIn, MilestoneClaimOut, StreakOut
from ...schemas.task import TaskCreate, TaskOut
from ...schemas.wallet import PointAdjustIn, PointAdjustOut, PointLogOut
from ...services import kid_service, streak_service, task_service
from ...services.permissions import Actor
from ...services.point_ledger import gem_view
from ..deps import get_db, get_current_actor

router = APIRouter()


def kid_out(kid: Kid) -> KidOut:
    gems, stars = gem_view(kid.total_points)
    return KidOut(
        id=kid.id,
        family_id=kid.family_id,
        name=kid.name,
        avatar_color=kid.avatar_color,
        avatar_url=kid.avatar_url,
        motto=kid.motto,
        total_points=kid.total_points,
        gems=gems,
        stars=stars,
        has_pin=kid.pin_hash is not None,
        access_token_enabled=kid.access_token_enabled,
    )


def _link_out(kid: Kid) -> AccessLinkOut:
    return AccessLinkOut(
        kid_id=kid.id,
        access_token=kid.access_token,
        access_token_enabled=kid.access_token_enabled,
        access_token_expiry=kid.access_token_expiry,
    )


@router.get("/{kid_id}", response_model=KidOut)
def get_kid(kid_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return kid_out(kid_service.get_kid(db, actor, kid_id))


@router.patch("/{kid_id}", response_model=KidOut)
def update_kid(kid_id: str, payload: KidUpdate, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return kid_out(kid_service.update_kid(db, actor, kid_id, **payload.model_dump(exclude_unset=True)))


@router.delete("/{kid_id}", status_code=204)
def delete_kid(kid_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    kid_service.delete_kid(db, actor, kid_id)
    return Response(status_code=204)


@router.put("/{kid_id}/pin", response_model=KidOut)
def set_pin(kid_id: str, payload: PinIn, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return kid_out(kid_service.set_pin(db, actor, kid_id, payload.pin))


@router.post("/{kid_id}/access-link", response_model=AccessLinkOut)
def generate_access_link(
    kid_id: str, payload: AccessLinkIn, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)
):
    return _link_out(kid_service.generate_access_link(db, actor, kid_id, expires_in_days=payload.expires_in_days))


@router.patch("/{kid_id}/access-link", response_model=AccessLinkOut)
def update_access_link(
    kid_id: str, payload: AccessLinkUpdate, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)
):
    kid = kid_service.update_access_link(
        db, actor, kid_id, enabled=payload.enabled, expires_in_days=payload.expires_in_days
    )
    return _link_out(kid)


# ------------------------------------------------------------------------
# Points
# ------------------------------------------------------------------------
@router.post("/{kid_id}/points", response_model=PointAdjustOut)
def adjust_points(
    kid_id: str, payload: PointAdjustIn, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)
):
    kid, log = kid_service.adjust_kid_points(db, actor, kid_id, new_balance=payload.new_balance, reason=payload.reason)
    return PointAdjustOut(kid=kid_out(kid), log_entry=PointLogOut.model_validate(log) if log else None)


@router.get("/{kid_id}/point-logs", response_model=list[PointLogOut])
def point_logs(kid_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return kid_service.list_point_logs(db, actor, kid_id)


# ------------------------------------------------------------------------
# Tasks
# ------------------------------------------------------------------------
@router.get("/{kid_id}/tasks", response_model=list[TaskOut])
def kid_tasks(kid_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return task_service.list_tasks_for_kid(db, actor, kid_id=kid_id)


@router.post("/{kid_id}/tasks", response_model=TaskOut, status_code=201)
def create_task(kid_id: str, payload: TaskCreate, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return task_service.create_task_request(
        db,
        actor,
        kid_id=kid_id,
        title=payload.title,
        point_value=payload.point_value,
        description=payload.description,
        due_date=payload.due_date,
        is_recurring=payload.is_recurring,
        recurring_type=payload.recurring_type,
    )


# ------------------------------------------------------------------------
# Streak
# ------------------------------------------------------------------------
@router.get("/{kid_id}/streak", response_model=StreakOut)
def get_streak(kid_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return streak_service.get_kid_streak(db, actor, kid_id)


@router.post("/{kid_id}/streak/claim", response_model=MilestoneClaimOut)
def claim_milestone(
    kid_id: str, payload: MilestoneClaimIn, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)
):
    bonus, balance, streak = streak_service.claim_streak_milestone(db, actor, kid_id, payload.milestone)
    return MilestoneClaimOut(bonus_points=bonus, new_balance=balance, streak=StreakOut.model_validate(streak))
