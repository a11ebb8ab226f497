import pytest

from blog_platform.db import _detect_dialect, _qmark_to_pct, _redact_dsn, connect, init_db, ping
from blog_platform.schema import SCHEMA_POSTGRES, get_schema_sql

pytestmark = pytest.mark.unit


def test_detect_dialect():
    assert _detect_dialect("postgresql://u:p@localhost/db") == "postgres"
    assert _detect_dialect("postgres://u:p@localhost/db") == "postgres"
    assert _detect_dialect("./blog.sqlite") == "sqlite"
    assert _detect_dialect("sqlite:///tmp/blog.sqlite") == "sqlite"


def test_qmark_conversion_skips_string_literals():
    sql = "SELECT * FROM posts WHERE title='why?' AND post_id=?"
    assert _qmark_to_pct(sql) == "SELECT * FROM posts WHERE title='why?' AND post_id=%s"


def test_postgres_schema_translation():
    assert "AUTOINCREMENT" not in SCHEMA_POSTGRES
    assert "PRAGMA" not in SCHEMA_POSTGRES
    assert "post_id BIGSERIAL PRIMARY KEY" in SCHEMA_POSTGRES
    assert "author_id BIGINT NOT NULL" in SCHEMA_POSTGRES
    assert get_schema_sql("postgres") is SCHEMA_POSTGRES


def test_init_db_is_idempotent(tmp_path):
    dsn = str(tmp_path / "nested" / "blog.sqlite")
    init_db(dsn)
    init_db(dsn)
    with connect(dsn) as conn:
        names = {r["name"] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()}
    assert {"users", "posts", "comments"} <= names


def test_connect_rolls_back_on_error(tmp_path):
    dsn = str(tmp_path / "blog.sqlite")
    init_db(dsn)
    with pytest.raises(RuntimeError):
        with connect(dsn) as conn:
            conn.execute(
                "INSERT INTO users (username, email, password_hash, role, created_at, updated_at) VALUES (?,?,?,?,?,?)",
                ("a", "a@example.com", "h", "user", "t", "t"),
            )
            raise RuntimeError("abort")
    with connect(dsn) as conn:
        assert conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()["n"] == 0


def test_ping(tmp_path):
    assert ping(str(tmp_path / "blog.sqlite")) is True
    assert ping("postgresql://blog:pw@127.0.0.1:1/blog") is False


def test_redact_dsn_hides_password():
    assert _redact_dsn("postgresql://blog:hunter2@db:5432/blog") == "postgresql://blog:***@db:5432/blog"
    assert _redact_dsn("./blog.sqlite") == "./blog.sqlite"
