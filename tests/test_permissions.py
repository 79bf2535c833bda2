# tests/test_permissions.py

from __future__ import annotations

import pytest

from taskstars.core.errors import Forbidden, NotFound
from taskstars.models.family_member import Permission
from taskstars.services.permissions import (
    Actor,
    FamilyScope,
    KidScope,
    authorize,
    is_primary_or_admin,
    require,
    require_kid_or_permission,
)

from .factories import make_kid


def test_permission_levels_are_ordered() -> None:
    assert Permission.VIEW < Permission.COMMENT < Permission.MANAGE < Permission.FULL
    assert Permission.FULL >= Permission.MANAGE
    assert not Permission.VIEW >= Permission.COMMENT


@pytest.mark.parametrize("required", [Permission.MANAGE, Permission.FULL])
def test_view_member_is_denied_manage_and_full(db, world, required) -> None:
    assert not authorize(db, world.viewer, FamilyScope(world.family.id), required)
    assert not authorize(db, world.viewer, KidScope(world.kid.id), required)


@pytest.mark.parametrize("required", list(Permission))
def test_full_is_never_denied_what_manage_allows(db, world, required) -> None:
    manage_ok = authorize(db, world.manager, KidScope(world.kid.id), required)
    full_ok = authorize(db, world.owner, KidScope(world.kid.id), required)
    assert full_ok or not manage_ok


def test_commenter_can_comment_but_not_manage(db, world) -> None:
    scope = KidScope(world.kid.id)
    assert authorize(db, world.commenter, scope, Permission.VIEW)
    assert authorize(db, world.commenter, scope, Permission.COMMENT)
    assert not authorize(db, world.commenter, scope, Permission.MANAGE)


def test_outsider_and_kid_session_fail_family_checks(db, world) -> None:
    with pytest.raises(Forbidden):
        require(db, world.outsider, FamilyScope(world.family.id), Permission.VIEW)
    with pytest.raises(Forbidden):
        require(db, world.kid_actor, KidScope(world.kid.id), Permission.VIEW)


def test_admin_bypasses_everything(db, world) -> None:
    assert authorize(db, world.admin, FamilyScope(world.family.id), Permission.FULL)
    orphan = make_kid(db, None, name="Solo")
    assert authorize(db, world.admin, KidScope(orphan.id), Permission.FULL)


def test_kid_without_family_is_hidden_from_non_admins(db, world) -> None:
    orphan = make_kid(db, None, name="Solo")
    assert not authorize(db, world.owner, KidScope(orphan.id), Permission.VIEW)


def test_missing_entities_raise_not_found(db, world) -> None:
    with pytest.raises(NotFound):
        authorize(db, world.admin, KidScope("missing"), Permission.VIEW)
    with pytest.raises(NotFound):
        authorize(db, world.owner, FamilyScope("missing"), Permission.VIEW)


def test_kid_session_acts_on_itself_only(db, world) -> None:
    require_kid_or_permission(db, world.kid_actor, world.kid.id, Permission.MANAGE)
    sibling = make_kid(db, world.family.id, name="Leo")
    with pytest.raises(Forbidden):
        require_kid_or_permission(db, world.kid_actor, sibling.id, Permission.VIEW)


def test_primary_or_admin(db, world) -> None:
    assert is_primary_or_admin(db, world.owner, world.family.id)
    assert is_primary_or_admin(db, world.admin, world.family.id)
    assert not is_primary_or_admin(db, world.manager, world.family.id)
    assert not is_primary_or_admin(db, Actor(kid_id=world.kid.id), world.family.id)
