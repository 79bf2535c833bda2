from datetime import date, datetime, timezone
def utcnow():
    return datetime.now(timezone.utc)
def localdate() -> date:
    # streaks count local calendar days
    return datetime.now().astimezone().date()
from .user import User
from .family import Family
from .family_member import FamilyMember
from .kid import Kid
from .task import Task
from .points import PointLog
from .streak import Streak
from .reward import Reward, Redemption, RewardRequest
