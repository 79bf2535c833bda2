from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ...schemas.streak import StreakOut
from ...schemas.task import (
    CommentIn,
    FeedbackIn,
    ReviewDecision,
    TaskCompleteIn,
    TaskCompletionOut,
    TaskCopyIn,
    TaskOut,
    TaskReviewIn,
    TaskUpdate,
)
from ...services import task_service
from ...services.permissions import Actor
from ..deps import get_db, get_current_actor

router = APIRouter()


@router.get("/{task_id}", response_model=TaskOut)
def get_task(task_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return task_service.get_task(db, actor, task_id)


# ------------------------------------------------------------------------
# Approve or reject a kid's task request
# ------------------------------------------------------------------------
@router.post("/{task_id}/review", response_model=TaskOut)
def review(task_id: str, payload: TaskReviewIn, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return task_service.review_task_request(
        db,
        actor,
        task_id=task_id,
        approve=payload.decision == ReviewDecision.APPROVE,
        adjusted_points=payload.adjusted_points,
        comment=payload.comment,
    )


# ------------------------------------------------------------------------
# Complete a task: credits points and advances the streak
# ------------------------------------------------------------------------
@router.post("/{task_id}/complete", response_model=TaskCompletionOut)
def complete(task_id: str, payload: TaskCompleteIn, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    result = task_service.complete_task(db, actor, task_id=task_id, proof_ref=payload.proof_ref, note=payload.note)
    return TaskCompletionOut(
        task=TaskOut.model_validate(result.task),
        points_earned=result.points_earned,
        new_balance=result.new_balance,
        streak=StreakOut.model_validate(result.streak),
    )


@router.post("/{task_id}/feedback", response_model=TaskOut)
def request_feedback(task_id: str, payload: FeedbackIn, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return task_service.request_feedback(db, actor, task_id=task_id, note=payload.note)


@router.post("/{task_id}/comment", response_model=TaskOut)
def comment(task_id: str, payload: CommentIn, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return task_service.add_guardian_comment(db, actor, task_id=task_id, comment=payload.comment)


# ------------------------------------------------------------------------
# Edit, delete, copy
# ------------------------------------------------------------------------
@router.patch("/{task_id}", response_model=TaskOut)
def edit_task(task_id: str, payload: TaskUpdate, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return task_service.update_task(db, actor, task_id=task_id, **payload.model_dump(exclude_unset=True))


@router.delete("/{task_id}", status_code=204)
def delete_task(task_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    task_service.delete_task(db, actor, task_id=task_id)
    return Response(status_code=204)


@router.post("/{task_id}/copy", response_model=list[TaskOut])
def copy_task(task_id: str, payload: TaskCopyIn, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return task_service.copy_task(db, actor, task_id=task_id, kid_ids=payload.kid_ids)
