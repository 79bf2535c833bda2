# tests/test_task_state_machine.py

from __future__ import annotations

from datetime import date, timedelta
from itertools import product

import pytest
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from taskstars.core.errors import (
    AlreadyCompleted,
    Forbidden,
    InvalidTransition,
    TransactionFailed,
    ValidationError,
)
from taskstars.db.session import atomic
from taskstars.models.points import PointLog
from taskstars.models.task import RecurringType, RequestStatus, Task, TaskEvent, TaskState
from taskstars.services import point_ledger, streak_service, task_service
from taskstars.services.point_ledger import gem_view

from .factories import make_kid

TODAY = date(2026, 3, 2)


def _logs(db, kid_id):
    return list(db.execute(select(PointLog).where(PointLog.kid_id == kid_id)).scalars())


def _active_task(db, world, points=15):
    return task_service.create_task_request(db, world.manager, kid_id=world.kid.id, title="Dishes", point_value=points)


def _pending_request(db, world, points=10):
    return task_service.create_task_request(db, world.kid_actor, kid_id=world.kid.id, title="Walk the dog", point_value=points)


@pytest.mark.parametrize("state,event", list(product(TaskState, TaskEvent)))
def test_transition_table_covers_every_pair(state, event) -> None:
    legal = {
        (TaskState.REQUESTED_PENDING, TaskEvent.APPROVE): TaskState.ACTIVE,
        (TaskState.REQUESTED_PENDING, TaskEvent.REJECT): TaskState.REQUESTED_REJECTED,
        (TaskState.ACTIVE, TaskEvent.SUBMIT_COMPLETION): TaskState.COMPLETED,
        (TaskState.ACTIVE, TaskEvent.REQUEST_FEEDBACK): TaskState.AWAITING_FEEDBACK,
        (TaskState.AWAITING_FEEDBACK, TaskEvent.SUBMIT_COMPLETION): TaskState.COMPLETED,
        (TaskState.COMPLETED, TaskEvent.REQUEST_FEEDBACK): TaskState.COMPLETED,
    }
    if (state, event) in legal:
        assert task_service.next_state(state, event) == legal[(state, event)]
    elif (state, event) == (TaskState.COMPLETED, TaskEvent.SUBMIT_COMPLETION):
        with pytest.raises(AlreadyCompleted):
            task_service.next_state(state, event)
    else:
        with pytest.raises(InvalidTransition):
            task_service.next_state(state, event)


def test_guardian_task_is_active_and_kid_request_is_pending(db, world) -> None:
    assert _active_task(db, world).state == TaskState.ACTIVE
    assert _pending_request(db, world).state == TaskState.REQUESTED_PENDING


def test_completion_credits_points_and_shows_gems(db, world) -> None:
    task = _active_task(db, world, points=15)

    result = task_service.complete_task(db, world.kid_actor, task_id=task.id, proof_ref="proof-1", today=TODAY)

    assert result.points_earned == 15
    assert result.new_balance == 15
    assert gem_view(result.new_balance, 10) == (1, 5)
    assert result.task.state == TaskState.COMPLETED
    assert result.task.proof_image_url == "proof-1"


def test_approved_request_completes_with_one_log_row_and_a_streak(db, world) -> None:
    task = _pending_request(db, world)
    task = task_service.review_task_request(db, world.manager, task_id=task.id, approve=True)
    assert task.state == TaskState.ACTIVE

    result = task_service.complete_task(db, world.kid_actor, task_id=task.id, proof_ref="proof-2", today=TODAY)

    assert result.task.state == TaskState.COMPLETED
    logs = _logs(db, world.kid.id)
    assert len(logs) == 1
    assert (logs[0].old_points, logs[0].new_points) == (0, 10)
    assert logs[0].reason == "Completed task: Walk the dog"
    assert result.streak.current_streak == 1
    assert result.streak.last_active_date == TODAY


def test_viewer_cannot_approve(db, world) -> None:
    task = _pending_request(db, world)
    with pytest.raises(Forbidden):
        task_service.review_task_request(db, world.viewer, task_id=task.id, approve=True)
    assert db.get(Task, task.id).state == TaskState.REQUESTED_PENDING


def test_kid_cannot_review_its_own_request(db, world) -> None:
    task = _pending_request(db, world)
    with pytest.raises(Forbidden):
        task_service.review_task_request(db, world.kid_actor, task_id=task.id, approve=True)


def test_review_can_adjust_points_and_leave_a_comment(db, world) -> None:
    task = _pending_request(db, world, points=10)
    task = task_service.review_task_request(
        db, world.manager, task_id=task.id, approve=True, adjusted_points=25, comment=" nice idea "
    )
    assert task.point_value == 25
    assert task.parent_comment == "nice idea"


def test_rejected_request_cannot_be_completed_or_reviewed_again(db, world) -> None:
    task = _pending_request(db, world)
    task = task_service.review_task_request(db, world.manager, task_id=task.id, approve=False)
    assert task.state == TaskState.REQUESTED_REJECTED

    with pytest.raises(InvalidTransition):
        task_service.complete_task(db, world.kid_actor, task_id=task.id, proof_ref="p", today=TODAY)
    with pytest.raises(InvalidTransition):
        task_service.review_task_request(db, world.manager, task_id=task.id, approve=True)


def test_pending_request_cannot_be_completed(db, world) -> None:
    task = _pending_request(db, world)
    with pytest.raises(InvalidTransition):
        task_service.complete_task(db, world.kid_actor, task_id=task.id, proof_ref="p", today=TODAY)
    assert _logs(db, world.kid.id) == []


def test_second_completion_is_rejected_and_credits_once(db, world) -> None:
    task = _active_task(db, world, points=15)
    task_service.complete_task(db, world.kid_actor, task_id=task.id, proof_ref="p", today=TODAY)

    with pytest.raises(AlreadyCompleted):
        task_service.complete_task(db, world.kid_actor, task_id=task.id, proof_ref="p", today=TODAY)

    db.refresh(world.kid)
    assert world.kid.total_points == 15
    assert len(_logs(db, world.kid.id)) == 1


def test_racing_completion_loses_the_conditional_update(db, world, monkeypatch) -> None:
    task = _active_task(db, world, points=15)
    get_task = task_service._get_task

    def get_then_race(session, task_id):
        found = get_task(session, task_id)
        # the other submission commits between our read and our write
        session.execute(
            update(Task)
            .where(Task.id == task_id)
            .values(is_completed=True)
            .execution_options(synchronize_session=False)
        )
        return found

    monkeypatch.setattr(task_service, "_get_task", get_then_race)
    with pytest.raises(AlreadyCompleted):
        task_service.complete_task(db, world.kid_actor, task_id=task.id, proof_ref="p", today=TODAY)

    db.refresh(world.kid)
    assert world.kid.total_points == 0
    assert _logs(db, world.kid.id) == []


def test_completion_from_active_needs_proof(db, world) -> None:
    task = _active_task(db, world)
    with pytest.raises(ValidationError):
        task_service.complete_task(db, world.kid_actor, task_id=task.id, proof_ref="   ", today=TODAY)
    assert db.get(Task, task.id).state == TaskState.ACTIVE


def test_feedback_round_trip(db, world) -> None:
    task = _active_task(db, world, points=5)
    task = task_service.request_feedback(db, world.kid_actor, task_id=task.id, note="Is this clean enough?")
    assert task.state == TaskState.AWAITING_FEEDBACK

    task = task_service.add_guardian_comment(db, world.commenter, task_id=task.id, comment="Almost, wipe the counter")
    assert task.parent_comment == "Almost, wipe the counter"

    # proof is optional once feedback has been asked for
    result = task_service.complete_task(db, world.kid_actor, task_id=task.id, today=TODAY)
    assert result.task.state == TaskState.COMPLETED
    assert result.task.feedback_requested is False
    assert result.new_balance == 5


def test_feedback_after_completion_only_once(db, world) -> None:
    task = _active_task(db, world)
    task_service.complete_task(db, world.kid_actor, task_id=task.id, proof_ref="p", today=TODAY)

    task = task_service.request_feedback(db, world.kid_actor, task_id=task.id)
    assert task.state == TaskState.COMPLETED
    assert task.feedback_requested is True

    with pytest.raises(InvalidTransition):
        task_service.request_feedback(db, world.kid_actor, task_id=task.id)


def test_feedback_on_pending_request_is_invalid(db, world) -> None:
    task = _pending_request(db, world)
    with pytest.raises(InvalidTransition):
        task_service.request_feedback(db, world.kid_actor, task_id=task.id)


def test_comment_permissions(db, world) -> None:
    task = _active_task(db, world)
    with pytest.raises(Forbidden):
        task_service.add_guardian_comment(db, world.viewer, task_id=task.id, comment="hi")
    with pytest.raises(Forbidden):
        task_service.add_guardian_comment(db, world.kid_actor, task_id=task.id, comment="hi")
    with pytest.raises(ValidationError):
        task_service.add_guardian_comment(db, world.commenter, task_id=task.id, comment="  ")


def test_guardian_needs_manage_to_complete_for_a_kid(db, world) -> None:
    task = _active_task(db, world)
    with pytest.raises(Forbidden):
        task_service.complete_task(db, world.commenter, task_id=task.id, proof_ref="p", today=TODAY)

    result = task_service.complete_task(db, world.manager, task_id=task.id, proof_ref="p", today=TODAY)
    assert result.task.state == TaskState.COMPLETED


def test_kid_cannot_touch_a_sibling_task(db, world) -> None:
    sibling = make_kid(db, world.family.id, name="Leo")
    task = task_service.create_task_request(db, world.manager, kid_id=sibling.id, title="Feed cat", point_value=3)
    with pytest.raises(Forbidden):
        task_service.complete_task(db, world.kid_actor, task_id=task.id, proof_ref="p", today=TODAY)


@pytest.mark.parametrize("points", [0, -5])
def test_non_positive_points_are_rejected(db, world, points) -> None:
    with pytest.raises(ValidationError):
        task_service.create_task_request(db, world.manager, kid_id=world.kid.id, title="Nap", point_value=points)
    task = _pending_request(db, world)
    with pytest.raises(ValidationError):
        task_service.review_task_request(db, world.manager, task_id=task.id, approve=True, adjusted_points=points)


def test_recurring_task_needs_a_type(db, world) -> None:
    with pytest.raises(ValidationError):
        task_service.create_task_request(
            db, world.manager, kid_id=world.kid.id, title="Bed", point_value=2, is_recurring=True
        )
    task = task_service.create_task_request(
        db, world.manager, kid_id=world.kid.id, title="Bed", point_value=2,
        is_recurring=True, recurring_type=RecurringType.DAILY,
    )
    assert task.recurring_type == RecurringType.DAILY


def test_point_value_edits_until_completion(db, world) -> None:
    task = _active_task(db, world, points=15)
    task = task_service.update_task(db, world.manager, task_id=task.id, point_value=20)
    result = task_service.complete_task(db, world.kid_actor, task_id=task.id, proof_ref="p", today=TODAY)
    assert result.points_earned == 20

    with pytest.raises(InvalidTransition):
        task_service.update_task(db, world.manager, task_id=task.id, point_value=30)


def test_completions_on_consecutive_days_build_the_streak(db, world) -> None:
    for offset in range(3):
        task = _active_task(db, world, points=1)
        result = task_service.complete_task(
            db, world.kid_actor, task_id=task.id, proof_ref="p", today=TODAY + timedelta(days=offset)
        )
    assert result.streak.current_streak == 3
    assert streak_service.get_streak(db, world.kid.id).longest_streak == 3


def test_copy_and_delete(db, world) -> None:
    sibling = make_kid(db, world.family.id, name="Leo")
    task = _active_task(db, world)
    task_service.complete_task(db, world.kid_actor, task_id=task.id, proof_ref="p", today=TODAY)

    copies = task_service.copy_task(db, world.manager, task_id=task.id, kid_ids=[sibling.id, sibling.id])
    assert len(copies) == 1
    assert copies[0].kid_id == sibling.id
    assert copies[0].state == TaskState.ACTIVE
    assert copies[0].request_status == RequestStatus.APPROVED

    task_service.delete_task(db, world.manager, task_id=task.id)
    assert db.get(Task, task.id) is None
    # earned points stay
    db.refresh(world.kid)
    assert world.kid.total_points == 15


def test_pending_requests_are_listed_per_family(db, world) -> None:
    _active_task(db, world)
    pending = _pending_request(db, world)
    listed = task_service.list_pending_requests(db, world.viewer, family_id=world.family.id)
    assert [t.id for t in listed] == [pending.id]

    with pytest.raises(Forbidden):
        task_service.list_pending_requests(db, world.outsider, family_id=world.family.id)


def test_atomic_rolls_back_every_write_on_failure(db, world) -> None:
    task = _active_task(db, world)
    with pytest.raises(RuntimeError):
        with atomic(db):
            db.execute(update(Task).where(Task.id == task.id).values(title="changed"))
            raise RuntimeError("boom")
    db.expire_all()
    assert db.get(Task, task.id).title == "Dishes"


def test_database_failure_mid_completion_rolls_back_as_transaction_failed(db, world, monkeypatch) -> None:
    task = _active_task(db, world, points=15)

    def failing_credit(session, kid_id, delta, reason):
        raise IntegrityError("INSERT INTO pointlog", {}, Exception("constraint failed"))

    monkeypatch.setattr(point_ledger, "credit", failing_credit)
    with pytest.raises(TransactionFailed):
        task_service.complete_task(db, world.kid_actor, task_id=task.id, proof_ref="p", today=TODAY)

    db.expire_all()
    assert db.get(Task, task.id).state == TaskState.ACTIVE
    assert _logs(db, world.kid.id) == []
    assert db.get(type(world.kid), world.kid.id).total_points == 0
