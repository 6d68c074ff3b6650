import os

# Settings are read at import time; configure before importing the app.
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import uuid

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlmodel import Session, SQLModel

from learnshop.core.config import get_settings
from learnshop.database import build_engine, get_session
from learnshop.main import app
from learnshop.models.course import Course, Lesson
from learnshop.models.product import Product
from learnshop.models.user import User
from learnshop.repositories.catalog_repo import CatalogRepository
from learnshop.routers.cart import guest_carts


@pytest.fixture()
def engine():
    engine = build_engine("sqlite://")
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture()
def client(session):
    def _get_session_override():
        yield session

    app.dependency_overrides[get_session] = _get_session_override
    yield TestClient(app)
    app.dependency_overrides.clear()
    guest_carts.reset()


def make_token(user: User) -> str:
    settings = get_settings()
    return jwt.encode(
        {"sub": str(user.id), "email": user.email},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALG,
    )


def bearer(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user)}"}


@pytest.fixture()
def auth_headers():
    return bearer


def _add_user(session: Session, email: str, role: str = "user") -> User:
    user = User(id=uuid.uuid4(), email=email, name=email.split("@")[0], role=role)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture()
def user(session):
    return _add_user(session, "student@example.com")


@pytest.fixture()
def other_user(session):
    return _add_user(session, "other@example.com")


@pytest.fixture()
def admin(session):
    return _add_user(session, "admin@example.com", role="admin")


@pytest.fixture()
def course(session):
    course = Course(
        title="Residential Wiring",
        description="Wiring fundamentals for apprentices",
        instructor="M. Haddad",
        price=150.0,
        duration="12h",
        level="beginner",
        category="electricity",
    )
    session.add(course)
    session.commit()
    session.refresh(course)
    for index in range(4):
        session.add(
            Lesson(
                course_id=course.id,
                title=f"Lesson {index + 1}",
                duration="30min",
                order_index=index,
            )
        )
    session.commit()
    session.refresh(course)
    return course


@pytest.fixture()
def empty_course(session):
    course = Course(title="Coming Soon", price=0.0, category="misc")
    session.add(course)
    session.commit()
    session.refresh(course)
    return course


@pytest.fixture()
def product(session):
    product = Product(name="Digital Multimeter", price=10.0, stock=3, category="tools")
    session.add(product)
    session.commit()
    session.refresh(product)
    return product


@pytest.fixture()
def lessons(session, course):
    return CatalogRepository().list_lessons(session, course.id)
