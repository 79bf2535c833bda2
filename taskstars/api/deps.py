from typing import Generator, Optional
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from ..core.errors import Forbidden, Unauthorized
from ..db.session import SessionLocal
from ..models.user import User
from ..services.kid_service import check_kid_session
from ..services.permissions import Actor
from ..services.security import decode_access_token
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")
def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
def get_current_actor(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> Actor:
    payload = decode_access_token(token)
    kid_id: Optional[str] = payload.get("kid")
    if kid_id:
        kid = check_kid_session(db, kid_id, version=payload.get("ver"), via=payload.get("via"))
        return Actor(kid_id=kid.id)
    user_id: Optional[str] = payload.get("sub")
    if not user_id:
        raise Unauthorized("Invalid token payload")
    user = db.get(User, user_id)
    if not user or not user.is_active:
        raise Unauthorized("Inactive or missing user")
    return Actor(user_id=user.id, is_admin=user.is_admin)
def get_current_user(actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)) -> User:
    if actor.user_id is None:
        raise Forbidden("This action needs a parent account")
    return db.get(User, actor.user_id)
