from enum import StrEnum
from pydantic import BaseModel, Field
from datetime import datetime
from .common import ORMModel
from .streak import StreakOut
from ..models.task import RecurringType, RequestStatus, TaskState
class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    point_value: int = 1
    due_date: datetime | None = None
    is_recurring: bool = False
    recurring_type: RecurringType | None = None
class TaskUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    point_value: int | None = None
    due_date: datetime | None = None
    is_recurring: bool | None = None
    recurring_type: RecurringType | None = None
class ReviewDecision(StrEnum):
    APPROVE = "approve"
    REJECT = "reject"
class TaskReviewIn(BaseModel):
    decision: ReviewDecision
    adjusted_points: int | None = None
    comment: str | None = None
class TaskCompleteIn(BaseModel):
    proof_ref: str | None = None  # opaque reference from the proof storage service
    note: str | None = None
class FeedbackIn(BaseModel):
    note: str | None = None
class CommentIn(BaseModel):
    comment: str = Field(min_length=1)
class TaskCopyIn(BaseModel):
    kid_ids: list[str] = Field(min_length=1)
class TaskOut(ORMModel):
    id: str
    kid_id: str
    title: str
    description: str | None = None
    point_value: int
    due_date: datetime | None = None
    is_recurring: bool
    recurring_type: RecurringType | None = None
    is_completed: bool
    completed_at: datetime | None = None
    is_kid_request: bool
    request_status: RequestStatus
    feedback_requested: bool
    proof_image_url: str | None = None
    completion_note: str | None = None
    parent_comment: str | None = None
    state: TaskState
class TaskCompletionOut(BaseModel):
    task: TaskOut
    points_earned: int
    new_balance: int
    streak: StreakOut
