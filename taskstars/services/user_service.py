from sqlalchemy.orm import Session
from sqlalchemy import select
import logging
from ..core.errors import Conflict
from ..db.session import atomic
from ..models.user import User
from .security import hash_password, verify_password

logger = logging.getLogger(__name__)

def create_user(db: Session, *, email: str, password: str, full_name: str | None, is_admin: bool = False) -> User:
    email = email.lower()
    if get_by_email(db, email):
        logger.warning(f"Signup failed: Email already registered - {email}")
        raise Conflict("Email already registered")
    with atomic(db):
        user = User(email=email, full_name=full_name, is_admin=is_admin, hashed_password=hash_password(password))
        db.add(user)
        db.flush()
    logger.info(f"User created successfully: id={user.id}, email={user.email}")
    return user

def get_by_email(db: Session, email: str) -> User | None:
    return db.execute(select(User).where(User.email == email.lower())).scalar_one_or_none()

def authenticate(db: Session, email: str, password: str) -> User | None:
    user = get_by_email(db, email)
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user
