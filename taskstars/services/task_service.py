"""
Task state machine.

A task's state is derived from its columns (see ``Task.state``). Every
mutation here checks the caller through the permission resolver, looks the
move up in ``TRANSITIONS`` and writes inside one ``atomic`` block. Completion
also credits the kid's points and advances the streak in that same block.
"""
from dataclasses import dataclass
from datetime import date, datetime
import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..core.errors import AlreadyCompleted, InvalidTransition, NotFound, ValidationError
from ..db.session import atomic
from ..models import localdate, utcnow
from ..models.family_member import Permission
from ..models.kid import Kid
from ..models.streak import Streak
from ..models.task import RecurringType, RequestStatus, Task, TaskEvent, TaskState
from . import point_ledger, streak_service
from .permissions import Actor, FamilyScope, KidScope, require, require_kid_or_permission

logger = logging.getLogger(__name__)

TRANSITIONS: dict[tuple[TaskState, TaskEvent], TaskState] = {
    (TaskState.REQUESTED_PENDING, TaskEvent.APPROVE): TaskState.ACTIVE,
    (TaskState.REQUESTED_PENDING, TaskEvent.REJECT): TaskState.REQUESTED_REJECTED,
    (TaskState.ACTIVE, TaskEvent.SUBMIT_COMPLETION): TaskState.COMPLETED,
    (TaskState.ACTIVE, TaskEvent.REQUEST_FEEDBACK): TaskState.AWAITING_FEEDBACK,
    (TaskState.AWAITING_FEEDBACK, TaskEvent.SUBMIT_COMPLETION): TaskState.COMPLETED,
    (TaskState.COMPLETED, TaskEvent.REQUEST_FEEDBACK): TaskState.COMPLETED,
}


def next_state(state: TaskState, event: TaskEvent) -> TaskState:
    try:
        return TRANSITIONS[(state, event)]
    except KeyError:
        if state == TaskState.COMPLETED and event == TaskEvent.SUBMIT_COMPLETION:
            raise AlreadyCompleted()
        raise InvalidTransition(f"Cannot {event.replace('_', ' ')} a task that is {state.replace('_', ' ')}")


@dataclass
class CompletionResult:
    task: Task
    points_earned: int
    new_balance: int
    streak: Streak


def _get_task(db: Session, task_id: str) -> Task:
    task = db.execute(
        select(Task).where(Task.id == task_id).execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if not task:
        raise NotFound("Task not found")
    return task


def _check_points(point_value: int) -> None:
    if point_value is None or point_value <= 0:
        raise ValidationError("Point value must be a positive number")


def _clean(text: str | None) -> str | None:
    if text is None:
        return None
    text = text.strip()
    return text or None


def get_task(db: Session, actor: Actor, task_id: str) -> Task:
    task = _get_task(db, task_id)
    require_kid_or_permission(db, actor, task.kid_id, Permission.VIEW)
    return task


def create_task_request(
    db: Session,
    actor: Actor,
    *,
    kid_id: str,
    title: str,
    point_value: int,
    description: str | None = None,
    due_date: datetime | None = None,
    is_recurring: bool = False,
    recurring_type: RecurringType | None = None,
) -> Task:
    """
    Kids asking for a task get a pending request that a guardian reviews.
    Guardians with manage permission create tasks that are approved already.
    """
    require_kid_or_permission(db, actor, kid_id, Permission.MANAGE)
    title = _clean(title)
    if not title:
        raise ValidationError("Title is required")
    _check_points(point_value)
    if is_recurring and recurring_type is None:
        raise ValidationError("Recurring tasks need a recurring type")

    is_kid_request = actor.kid_id == kid_id
    with atomic(db):
        task = Task(
            kid_id=kid_id,
            title=title,
            description=description,
            point_value=point_value,
            due_date=due_date,
            is_recurring=is_recurring,
            recurring_type=recurring_type if is_recurring else None,
            is_kid_request=is_kid_request,
            request_status=RequestStatus.PENDING if is_kid_request else RequestStatus.APPROVED,
        )
        db.add(task)
        db.flush()
    logger.info(f"Task {task.id} created for kid {kid_id} (kid request={is_kid_request})")
    return task


def review_task_request(
    db: Session,
    actor: Actor,
    *,
    task_id: str,
    approve: bool,
    adjusted_points: Optional[int] = None,
    comment: Optional[str] = None,
) -> Task:
    with atomic(db):
        task = _get_task(db, task_id)
        # guardians only, a kid session never passes a family permission check
        require(db, actor, KidScope(task.kid_id), Permission.MANAGE)
        next_state(task.state, TaskEvent.APPROVE if approve else TaskEvent.REJECT)
        if adjusted_points is not None:
            _check_points(adjusted_points)
            task.point_value = adjusted_points
        comment = _clean(comment)
        if comment:
            task.parent_comment = comment
        task.request_status = RequestStatus.APPROVED if approve else RequestStatus.REJECTED
        db.flush()
    logger.info(f"Task request {task_id} {'approved' if approve else 'rejected'}")
    return task


def complete_task(
    db: Session,
    actor: Actor,
    *,
    task_id: str,
    proof_ref: str | None = None,
    note: str | None = None,
    today: date | None = None,
) -> CompletionResult:
    """
    Mark a task completed, credit its points and advance the streak as one
    transaction. The completed flag is set with a conditional UPDATE so a
    second, racing submission finds nothing to change and fails with
    ``AlreadyCompleted`` instead of crediting the points again.
    """
    proof_ref = _clean(proof_ref)
    note = _clean(note)
    with atomic(db):
        task = _get_task(db, task_id)
        require_kid_or_permission(db, actor, task.kid_id, Permission.MANAGE)
        state = task.state
        next_state(state, TaskEvent.SUBMIT_COMPLETION)
        if state == TaskState.ACTIVE and not proof_ref:
            raise ValidationError("Proof is required to complete this task")

        result = db.execute(
            update(Task)
            .where(
                Task.id == task.id,
                Task.is_completed.is_(False),
                Task.request_status == RequestStatus.APPROVED,
            )
            .values(
                is_completed=True,
                completed_at=utcnow(),
                feedback_requested=False,
                proof_image_url=proof_ref or task.proof_image_url,
                completion_note=note or task.completion_note,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise AlreadyCompleted()

        points = task.point_value
        new_balance = point_ledger.credit(db, task.kid_id, points, f"Completed task: {task.title}")
        streak = streak_service.record_activity(db, task.kid_id, today or localdate())
        db.refresh(task)
    logger.info(f"Task {task_id} completed, kid {task.kid_id} earned {points} points")
    return CompletionResult(task=task, points_earned=points, new_balance=new_balance, streak=streak)


def request_feedback(db: Session, actor: Actor, *, task_id: str, note: str | None = None) -> Task:
    note = _clean(note)
    with atomic(db):
        task = _get_task(db, task_id)
        require_kid_or_permission(db, actor, task.kid_id, Permission.MANAGE)
        state = task.state
        next_state(state, TaskEvent.REQUEST_FEEDBACK)
        if state == TaskState.COMPLETED and (task.parent_comment or task.feedback_requested):
            raise InvalidTransition("Feedback was already requested or given for this task")
        task.feedback_requested = True
        if note:
            task.completion_note = note
        db.flush()
    logger.info(f"Feedback requested on task {task_id}")
    return task


def add_guardian_comment(db: Session, actor: Actor, *, task_id: str, comment: str) -> Task:
    comment = _clean(comment)
    if not comment:
        raise ValidationError("Comment cannot be empty")
    with atomic(db):
        task = _get_task(db, task_id)
        require(db, actor, KidScope(task.kid_id), Permission.COMMENT)
        task.parent_comment = comment
        db.flush()
    return task


def update_task(
    db: Session,
    actor: Actor,
    *,
    task_id: str,
    title: Optional[str] = None,
    description: Optional[str] = None,
    point_value: Optional[int] = None,
    due_date: Optional[datetime] = None,
    is_recurring: Optional[bool] = None,
    recurring_type: Optional[RecurringType] = None,
) -> Task:
    with atomic(db):
        task = _get_task(db, task_id)
        require(db, actor, KidScope(task.kid_id), Permission.MANAGE)
        if task.is_completed:
            raise InvalidTransition("Task is locked after completion and cannot be edited.")
        if title is not None:
            title = _clean(title)
            if not title:
                raise ValidationError("Title is required")
            task.title = title
        if description is not None:
            task.description = description
        if point_value is not None:
            _check_points(point_value)
            if point_value != task.point_value:
                logger.info(f"Task {task_id} point value changed {task.point_value} -> {point_value}")
            task.point_value = point_value
        if due_date is not None:
            task.due_date = due_date
        if is_recurring is not None:
            task.is_recurring = is_recurring
            if not is_recurring:
                task.recurring_type = None
        if recurring_type is not None:
            task.recurring_type = recurring_type
        if task.is_recurring and task.recurring_type is None:
            raise ValidationError("Recurring tasks need a recurring type")
        db.flush()
    return task


def delete_task(db: Session, actor: Actor, *, task_id: str) -> None:
    """Remove a task. Points already earned with it stay in the ledger."""
    with atomic(db):
        task = _get_task(db, task_id)
        require(db, actor, KidScope(task.kid_id), Permission.MANAGE)
        db.delete(task)
    logger.info(f"Task {task_id} deleted")


def copy_task(db: Session, actor: Actor, *, task_id: str, kid_ids: list[str]) -> list[Task]:
    """Copy a task to other kids as fresh, approved, incomplete tasks."""
    if not kid_ids:
        raise ValidationError("kid_ids required")
    with atomic(db):
        source = _get_task(db, task_id)
        require(db, actor, KidScope(source.kid_id), Permission.MANAGE)
        copies = []
        for kid_id in dict.fromkeys(kid_ids):
            require(db, actor, KidScope(kid_id), Permission.MANAGE)
            copy = Task(
                kid_id=kid_id,
                title=source.title,
                description=source.description,
                point_value=source.point_value,
                due_date=source.due_date,
                is_recurring=source.is_recurring,
                recurring_type=source.recurring_type,
                is_kid_request=False,
                request_status=RequestStatus.APPROVED,
            )
            db.add(copy)
            copies.append(copy)
        db.flush()
    return copies


def list_tasks_for_kid(db: Session, actor: Actor, *, kid_id: str) -> list[Task]:
    require_kid_or_permission(db, actor, kid_id, Permission.VIEW)
    return list(
        db.execute(
            select(Task).where(Task.kid_id == kid_id).order_by(Task.created_at.desc())
        ).scalars()
    )


def list_pending_requests(db: Session, actor: Actor, *, family_id: str) -> list[Task]:
    require(db, actor, FamilyScope(family_id), Permission.VIEW)
    return list(
        db.execute(
            select(Task)
            .join(Kid, Kid.id == Task.kid_id)
            .where(
                Kid.family_id == family_id,
                Task.is_kid_request.is_(True),
                Task.request_status == RequestStatus.PENDING,
            )
            .order_by(Task.created_at.desc())
        ).scalars()
    )
