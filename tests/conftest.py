"""Shared fixtures for the test suite."""

from __future__ import annotations

import io
import os
import tempfile

# Must be set before any application module reads config
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DATA_DIR"] = tempfile.mkdtemp(prefix="user-admin-tests-")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("ADMIN_PASSWORD", None)

import pandas as pd
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from api.routes.auth import create_access_token
from app import app
from core.database import get_db, init_db
from models.user import UserModel
from schemas.user import CreateUserRequest, User
from utils.user_manager import UserManager

COLUMNS = ["firstName", "lastName", "email", "age", "password"]
XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

ADMIN_EMAIL = "admin@admin.com"
ADMIN_PASSWORD = "admin123"


def build_workbook(rows: list[list], columns: list[str] | None = None) -> bytes:
    """Write *rows* to an in-memory .xlsx with a header row."""
    buffer = io.BytesIO()
    df = pd.DataFrame(rows, columns=columns or COLUMNS)
    df.to_excel(buffer, index=False, sheet_name="Users", engine="openpyxl")
    return buffer.getvalue()


def valid_rows(count: int, domain: str = "example.com") -> list[list]:
    return [
        [f"First{chr(65 + i)}", f"Last{chr(65 + i)}", f"user{i}@{domain}", 22 + i % 14, f"secret{i:03d}"]
        for i in range(count)
    ]


def bearer(user: User) -> dict:
    token = create_access_token(
        {"sub": user.id, "email": user.email, "role": user.role.value}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def user_count(session_factory):
    """Count stored users through a fresh session."""

    def _count() -> int:
        session = session_factory()
        try:
            return session.query(UserModel).count()
        finally:
            session.close()

    return _count


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def admin(db) -> User:
    user, _ = UserManager(db).ensure_admin(email=ADMIN_EMAIL, password=ADMIN_PASSWORD)
    return user


@pytest.fixture()
def regular_user(db) -> User:
    return UserManager(db).create_user(
        CreateUserRequest(
            firstName="Regular",
            lastName="User",
            email="regular@example.com",
            age=40,
            password="regular123",
        )
    )


@pytest.fixture()
def admin_headers(admin) -> dict:
    return bearer(admin)


@pytest.fixture()
def user_headers(regular_user) -> dict:
    return bearer(regular_user)


@pytest.fixture()
def upload(client, admin_headers):
    """Post workbook bytes to the upload endpoint as the administrator."""

    def _upload(content: bytes, filename: str = "users.xlsx", content_type: str = XLSX_CONTENT_TYPE):
        return client.post(
            "/api/users/upload",
            files={"file": (filename, content, content_type)},
            headers=admin_headers,
        )

    return _upload
