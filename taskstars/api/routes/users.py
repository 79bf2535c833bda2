from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...schemas.user import UserOut, MeOut
from ...schemas.family import FamilyOut
from ...models.user import User
from ..deps import get_db, get_current_user
from ...services.family_service import list_user_families

router = APIRouter()


@router.get("/me", response_model=MeOut)
def me(
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    families = list_user_families(db, user_id=current.id)
    user_out = UserOut.model_validate(current)
    families_out: List[FamilyOut] = [FamilyOut.model_validate(f) for f in families]
    return MeOut(**user_out.model_dump(), families=families_out)
