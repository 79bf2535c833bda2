from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
import logging
from ...core.errors import Unauthorized
from ...schemas.auth import KidLoginIn, SignupIn, TokenOut
from ...schemas.user import UserOut
from ...services.kid_service import authenticate_kid
from ...services.user_service import create_user, authenticate
from ...services.security import create_access_token, create_kid_token
from ..deps import get_db

logger = logging.getLogger(__name__)

router = APIRouter()
@router.post("/signup", response_model=UserOut, status_code=201)
def signup(payload: SignupIn, db: Session = Depends(get_db)):
    logger.info(f"Signup attempt for email: {payload.email}")
    return create_user(db, email=payload.email, password=payload.password, full_name=payload.full_name)

@router.post("/token", response_model=TokenOut)
def token(form: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    user = authenticate(db, email=form.username, password=form.password)
    if not user or not user.is_active:
        raise Unauthorized("Incorrect credentials")
    return TokenOut(access_token=create_access_token(user.id))

@router.post("/kid", response_model=TokenOut)
def kid_login(payload: KidLoginIn, db: Session = Depends(get_db)):
    """Open a kid session from an access link token or a kid id + PIN."""
    kid = authenticate_kid(db, access_token=payload.access_token, kid_id=payload.kid_id, pin=payload.pin)
    logger.info(f"Kid session opened for {kid.id}")
    via = "link" if payload.access_token else "pin"
    return TokenOut(access_token=create_kid_token(kid.id, version=kid.session_version, via=via))
