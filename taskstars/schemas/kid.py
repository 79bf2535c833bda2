from datetime import datetime
from pydantic import BaseModel, Field
from .common import ORMModel
class KidCreate(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    avatar_color: str | None = None
    motto: str | None = None
class KidUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=128)
    avatar_color: str | None = None
    avatar_url: str | None = None
    motto: str | None = None
class KidOut(ORMModel):
    id: str
    family_id: str | None = None
    name: str
    avatar_color: str
    avatar_url: str | None = None
    motto: str | None = None
    total_points: int
    # derived from total_points on every read, never stored
    gems: int = 0
    stars: int = 0
    has_pin: bool = False
    access_token_enabled: bool = False
class PinIn(BaseModel):
    pin: str = Field(pattern=r"^\d{4,6}$")
class AccessLinkIn(BaseModel):
    expires_in_days: int | None = Field(default=None, ge=1)
class AccessLinkUpdate(BaseModel):
    enabled: bool | None = None
    expires_in_days: int | None = Field(default=None, ge=0)  # 0 clears the expiry
class AccessLinkOut(BaseModel):
    kid_id: str
    access_token: str | None
    access_token_enabled: bool
    access_token_expiry: datetime | None = None
