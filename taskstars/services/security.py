import secrets
from datetime import datetime, timedelta, timezone
from passlib.context import CryptContext
import jwt
from ..core.config import settings
from ..core.errors import Unauthorized

# passlib's bcrypt backend fails against bcrypt>=4.1
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

ALGORITHM = "HS256"

def hash_password(p: str) -> str:
    return pwd_context.hash(p)

def verify_password(p: str, hashed: str) -> bool:
    return pwd_context.verify(p, hashed)

def create_access_token(sub: str, minutes: int | None = None) -> str:
    exp_min = minutes if minutes is not None else settings.ACCESS_TOKEN_MIN
    expire = datetime.now(timezone.utc) + timedelta(minutes=exp_min)
    payload = {"sub": sub, "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)

def create_kid_token(kid_id: str, version: int = 0, via: str = "pin", minutes: int | None = None) -> str:
    """
    Token for a kid session, opened through an access link (``via="link"``)
    or a PIN. ``version`` is the kid's ``session_version`` at login.
    """
    exp_min = minutes if minutes is not None else settings.KID_TOKEN_MIN
    expire = datetime.now(timezone.utc) + timedelta(minutes=exp_min)
    payload = {"sub": f"kid:{kid_id}", "kid": kid_id, "ver": version, "via": via, "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)

def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.PyJWTError:
        raise Unauthorized("Invalid token")

def new_link_token() -> str:
    return secrets.token_urlsafe(24)
