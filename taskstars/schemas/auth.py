from pydantic import BaseModel, EmailStr, Field

class SignupIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    full_name: str | None = None
class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
class KidLoginIn(BaseModel):
    # either the kid's access link token, or kid id + PIN
    access_token: str | None = None
    kid_id: str | None = None
    pin: str | None = None
