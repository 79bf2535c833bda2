from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ...schemas.family import FamilyCreate, FamilyDetailOut, FamilyOut, FamilyUpdate
from ...schemas.kid import KidCreate, KidOut
from ...schemas.member import MemberInvite, MemberOut, MemberUpdate
from ...schemas.task import TaskOut
from ...services import family_service, kid_service, task_service
from ...services.permissions import Actor
from ...models.user import User
from ..deps import get_db, get_current_actor, get_current_user
from .kids import kid_out
router = APIRouter()

@router.post("", response_model=FamilyOut, status_code=201)
def create(payload: FamilyCreate, db: Session = Depends(get_db), current: User = Depends(get_current_user)):
    return family_service.create_family(db, owner_user_id=current.id, name=payload.name)

@router.get("/my", response_model=list[FamilyOut])
def my_families(db: Session = Depends(get_db), current: User = Depends(get_current_user)):
    return family_service.list_user_families(db, user_id=current.id)

@router.post("/claim-default", response_model=MemberOut)
def claim_default(db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return family_service.claim_default_family(db, actor)

@router.post("/join/{code}", response_model=MemberOut)
def join(code: str, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return family_service.join_by_code(db, actor, code=code)

@router.get("/{family_id}", response_model=FamilyDetailOut)
def get_one(family_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    fam, mine = family_service.get_family(db, actor, family_id)
    members = family_service.list_members(db, actor, family_id)
    return FamilyDetailOut(
        id=fam.id,
        name=fam.name,
        invite_code=fam.invite_code,
        is_default=fam.is_default,
        members=[MemberOut.model_validate(m) for m in members],
        my_role=mine.role if mine else None,
        my_permission=mine.permission if mine else None,
    )

@router.patch("/{family_id}", response_model=FamilyOut)
def update(family_id: str, payload: FamilyUpdate, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return family_service.update_family(db, actor, family_id, name=payload.name)

@router.delete("/{family_id}", status_code=204)
def delete(family_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    family_service.delete_family(db, actor, family_id)
    return Response(status_code=204)

@router.get("/{family_id}/members", response_model=list[MemberOut])
def members(family_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return family_service.list_members(db, actor, family_id)

@router.post("/{family_id}/members", response_model=MemberOut, status_code=201)
def invite(family_id: str, payload: MemberInvite, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return family_service.invite_member(
        db, actor, family_id, email=payload.email, role=payload.role, permission=payload.permission
    )

@router.patch("/{family_id}/members/{member_id}", response_model=MemberOut)
def update_member(
    family_id: str,
    member_id: str,
    payload: MemberUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return family_service.update_member(
        db, actor, family_id, member_id, role=payload.role, permission=payload.permission
    )

@router.delete("/{family_id}/members/{member_id}", status_code=204)
def remove_member(family_id: str, member_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    family_service.remove_member(db, actor, family_id, member_id)
    return Response(status_code=204)

@router.get("/{family_id}/kids", response_model=list[KidOut])
def family_kids(family_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return [kid_out(k) for k in kid_service.list_family_kids(db, actor, family_id)]

@router.post("/{family_id}/kids", response_model=KidOut, status_code=201)
def add_kid(family_id: str, payload: KidCreate, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    kid = kid_service.create_kid(
        db, actor, family_id=family_id, name=payload.name, avatar_color=payload.avatar_color, motto=payload.motto
    )
    return kid_out(kid)

@router.get("/{family_id}/task-requests", response_model=list[TaskOut])
def pending_task_requests(family_id: str, db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)):
    return task_service.list_pending_requests(db, actor, family_id=family_id)
