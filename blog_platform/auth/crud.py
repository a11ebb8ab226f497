from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from blog_platform.errors import DuplicateField, InvalidCredentials, UserNotFound, ValidationError
from blog_platform.util.time import utcnow_iso

from .security import TOKEN_TTL_MINUTES, create_access_token, hash_password, verify_password


_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MIN_PASSWORD_LENGTH = 6
ROLES = ("admin", "user")


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def public_user(row: Any | Dict[str, Any]) -> Dict[str, Any]:
    d = dict(row)
    d.pop("password_hash", None)
    return d


def get_user_by_email(conn: Any, email: str) -> Optional[Any]:
    e = normalize_email(email)
    if not e:
        return None
    return conn.execute(
        "SELECT * FROM users WHERE email=?",
        (e,),
    ).fetchone()


def get_user_by_id(conn: Any, user_id: int) -> Optional[Any]:
    return conn.execute(
        "SELECT * FROM users WHERE user_id=?",
        (int(user_id),),
    ).fetchone()


def validate_registration(username: str, email: str, password: str) -> None:
    errors: List[Dict[str, str]] = []
    if not (username or "").strip():
        errors.append({"field": "username", "message": "Username is required"})
    if not _EMAIL_RE.match(normalize_email(email)):
        errors.append({"field": "email", "message": "Please include a valid email"})
    if len(password or "") < MIN_PASSWORD_LENGTH:
        errors.append(
            {
                "field": "password",
                "message": f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            }
        )
    if errors:
        raise ValidationError(errors)


def create_user(
    conn: Any,
    *,
    username: str,
    email: str,
    password: str,
    role: str = "user",
) -> Dict[str, Any]:
    """Insert a user row and return its public projection.

    Raises DuplicateField('email') if the email is taken, including when a
    concurrent registration wins the race between the check and the insert.
    """
    if role not in ROLES:
        raise ValueError("invalid_role")

    e = normalize_email(email)
    if get_user_by_email(conn, e) is not None:
        raise DuplicateField("email")

    now = utcnow_iso()
    inserted = conn.execute(
        """
        INSERT INTO users (username, email, password_hash, role, created_at, updated_at)
        VALUES (?,?,?,?,?,?)
        ON CONFLICT(email) DO NOTHING
        RETURNING user_id
        """,
        (username.strip(), e, hash_password(password), role, now, now),
    ).fetchone()
    if inserted is None:
        raise DuplicateField("email")

    row = get_user_by_id(conn, int(inserted["user_id"]))
    assert row is not None
    return public_user(row)


def _issue(secret: str, user: Any, expires_minutes: int) -> str:
    return create_access_token(
        secret=secret,
        user_id=int(user["user_id"]),
        role=str(user["role"]),
        expires_minutes=expires_minutes,
    )


def register(
    conn: Any,
    *,
    secret: str,
    username: str,
    email: str,
    password: str,
    expires_minutes: int = TOKEN_TTL_MINUTES,
) -> Dict[str, Any]:
    """Create an account and open a session for it.

    Returns {"token", "user"} where user is {user_id, username, email, created_at}.
    """
    validate_registration(username, email, password)
    u = create_user(conn, username=username, email=email, password=password)
    token = _issue(secret, u, expires_minutes)
    return {
        "token": token,
        "user": {
            "user_id": u["user_id"],
            "username": u["username"],
            "email": u["email"],
            "created_at": u["created_at"],
        },
    }


def login(
    conn: Any,
    *,
    secret: str,
    email: str,
    password: str,
    expires_minutes: int = TOKEN_TTL_MINUTES,
) -> Dict[str, Any]:
    """Check credentials and open a session.

    The `field` on InvalidCredentials says which check failed (email unknown vs.
    password mismatch); the message is the same for both.
    """
    row = get_user_by_email(conn, email)
    if row is None:
        raise InvalidCredentials("email")
    if not verify_password(password, str(row["password_hash"])):
        raise InvalidCredentials("password")

    token = _issue(secret, row, expires_minutes)
    return {
        "token": token,
        "user": {
            "user_id": row["user_id"],
            "username": row["username"],
            "email": row["email"],
        },
    }


def current_user(conn: Any, user_id: int) -> Dict[str, Any]:
    row = get_user_by_id(conn, user_id)
    if row is None:
        raise UserNotFound()
    return public_user(row)
