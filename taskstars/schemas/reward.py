from pydantic import BaseModel, Field
from datetime import datetime
from .common import ORMModel
from ..models.reward import RedemptionStatus, RewardRequestStatus
class RewardCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    point_cost: int = Field(gt=0)
class RewardOut(ORMModel):
    id: str
    family_id: str
    name: str
    description: str | None = None
    point_cost: int
    is_active: bool
class RedeemIn(BaseModel):
    kid_id: str
class RedemptionOut(ORMModel):
    id: str
    kid_id: str
    reward_id: str
    points_spent: int
    status: RedemptionStatus
    created_at: datetime
    updated_at: datetime
class RedemptionReviewIn(BaseModel):
    approve: bool
class RewardRequestCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    suggested_cost: int = Field(gt=0)
class RewardRequestReviewIn(BaseModel):
    approve: bool
    point_cost: int | None = Field(default=None, gt=0)  # overrides the suggested cost
    parent_note: str | None = None
class RewardRequestOut(ORMModel):
    id: str
    kid_id: str
    name: str
    description: str | None = None
    suggested_cost: int
    status: RewardRequestStatus
    parent_note: str | None = None
    created_at: datetime
