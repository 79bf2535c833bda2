# tests/conftest.py

from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from taskstars.api.deps import get_db
from taskstars.db.base import Base
from taskstars.main import create_app
from taskstars.models.family_member import MemberRole, Permission
from taskstars.services import family_service
from taskstars.services.permissions import Actor

from .factories import add_member, make_kid, make_user


@pytest.fixture()
def engine():
    """
    Fresh in-memory SQLite database per test.

    StaticPool keeps a single connection so every session sees the same
    database.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture()
def db(session_factory) -> Session:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def world(db: Session) -> SimpleNamespace:
    """
    One family with a guardian at every permission level and one kid.

    Actors are exposed ready to pass into services.
    """
    owner = make_user(db, "owner@example.com")
    family = family_service.create_family(db, owner_user_id=owner.id, name="Millers")

    manager = make_user(db, "manager@example.com")
    commenter = make_user(db, "grandma@example.com")
    viewer = make_user(db, "viewer@example.com")
    outsider = make_user(db, "outsider@example.com")
    admin = make_user(db, "admin@example.com", is_admin=True)

    add_member(db, family.id, manager.id, MemberRole.PARENT, Permission.MANAGE)
    add_member(db, family.id, commenter.id, MemberRole.GRANDPARENT, Permission.COMMENT)
    add_member(db, family.id, viewer.id, MemberRole.GUARDIAN, Permission.VIEW)

    kid = make_kid(db, family.id)

    return SimpleNamespace(
        family=family,
        kid=kid,
        users=SimpleNamespace(owner=owner, manager=manager, commenter=commenter, viewer=viewer, outsider=outsider, admin=admin),
        owner=Actor(user_id=owner.id),
        manager=Actor(user_id=manager.id),
        commenter=Actor(user_id=commenter.id),
        viewer=Actor(user_id=viewer.id),
        outsider=Actor(user_id=outsider.id),
        admin=Actor(user_id=admin.id, is_admin=True),
        kid_actor=Actor(kid_id=kid.id),
    )


@pytest.fixture()
def client(session_factory) -> TestClient:
    """HTTP client wired to the test database; lifespan is not run."""
    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)
