from datetime import datetime
from pydantic import BaseModel, EmailStr
from .common import ORMModel
from ..models.family_member import MemberRole, Permission
class MemberOut(ORMModel):
    id: str
    family_id: str
    user_id: str
    role: MemberRole
    permission: Permission
    joined_at: datetime
    invited_by_user_id: str | None = None
class MemberInvite(BaseModel):
    email: EmailStr
    role: MemberRole = MemberRole.PARENT
    permission: Permission | None = None  # falls back to the role default
class MemberUpdate(BaseModel):
    role: MemberRole | None = None
    permission: Permission | None = None
