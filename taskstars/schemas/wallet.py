from datetime import datetime
from pydantic import BaseModel
from .common import ORMModel
from .kid import KidOut
class PointLogOut(ORMModel):
    id: int
    kid_id: str
    old_points: int
    new_points: int
    reason: str
    created_at: datetime
class PointAdjustIn(BaseModel):
    new_balance: int
    reason: str
class PointAdjustOut(BaseModel):
    kid: KidOut
    log_entry: PointLogOut | None = None
