"""Shared fixtures.

Every test gets its own SQLite file under tmp_path, so tests never share state.
"""

import sys
from pathlib import Path
from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from blog_platform.api.server import create_app  # noqa: E402
from blog_platform.auth import crud as auth_crud  # noqa: E402
from blog_platform.config import Config  # noqa: E402
from blog_platform.db import connect, init_db  # noqa: E402

SECRET = "test-secret"
PASSWORD = "secret123"


@pytest.fixture
def cfg(tmp_path) -> Config:
    return Config(
        DB_DSN=str(tmp_path / "blog.sqlite"),
        AUTH_JWT_SECRET=SECRET,
        FRONTEND_URL="http://localhost:3000",
        AUTH_COOKIE_SECURE=False,
    )


@pytest.fixture
def db(cfg: Config) -> str:
    init_db(cfg.DB_DSN)
    return cfg.DB_DSN


@pytest.fixture
def client(cfg: Config):
    app = create_app(cfg)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(db: str):
    """Register a user straight through the workflow; returns {"token", "user"}."""

    def _make(username: str = "alice", email: str = "alice@example.com", password: str = PASSWORD) -> Dict[str, Any]:
        with connect(db) as conn:
            return auth_crud.register(conn, secret=SECRET, username=username, email=email, password=password)

    return _make
