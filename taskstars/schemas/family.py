from typing import List
from pydantic import BaseModel, Field
from .common import ORMModel
from .member import MemberOut
class FamilyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=128)
class FamilyUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=128)
class FamilyOut(ORMModel):
    id: str
    name: str
    invite_code: str
    is_default: bool
class FamilyDetailOut(FamilyOut):
    members: List[MemberOut] = []
    my_role: str | None = None
    my_permission: str | None = None
