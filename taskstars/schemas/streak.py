from datetime import date
from pydantic import BaseModel
from .common import ORMModel
from ..models.streak import Milestone
class StreakOut(ORMModel):
    kid_id: str
    current_streak: int
    longest_streak: int
    last_active_date: date | None = None
    week_bonus: bool
    month_bonus: bool
    quarter_bonus: bool
class MilestoneClaimIn(BaseModel):
    milestone: Milestone
class MilestoneClaimOut(BaseModel):
    bonus_points: int
    new_balance: int
    streak: StreakOut
