from typing import List, Optional
from pydantic import EmailStr
from .common import ORMModel
from .family import FamilyOut

class UserOut(ORMModel):
    id: str
    email: EmailStr
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    is_active: bool
    is_admin: bool = False

class MeOut(UserOut):
    families: List[FamilyOut] = []
