from ..models.user import User
from ..models.family import Family
from ..models.family_member import FamilyMember, MemberRole, Permission
from ..models.kid import Kid
from ..models.task import Task, RequestStatus
from ..models.points import PointLog
from ..models.streak import Streak
from ..models.reward import Reward, Redemption, RewardRequest
from ..db.base_class import Base
