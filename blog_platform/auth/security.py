from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

import jwt
from passlib.context import CryptContext


_pwd = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
_JWT_ALG = "HS256"

TOKEN_TTL_MINUTES = 60


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("password_blank")
    return _pwd.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    # passlib compares digests in constant time.
    if not password or not password_hash:
        return False
    try:
        return _pwd.verify(password, password_hash)
    except ValueError:
        # Unrecognized / corrupt hash format.
        return False


def create_access_token(
    *,
    secret: str,
    user_id: int,
    role: str,
    expires_minutes: int = TOKEN_TTL_MINUTES,
    now: Optional[datetime] = None,
) -> str:
    """Issue a signed session token for `user_id`.

    Claims: `sub` (user id as string), `role`, `iat`, `exp`. `exp` is exactly
    `expires_minutes` after `now` (defaults to the current time).
    """
    if not secret:
        raise ValueError("jwt_secret_blank")

    issued = now or datetime.now(timezone.utc)
    exp = issued + timedelta(minutes=max(1, int(expires_minutes)))

    payload: Dict[str, Any] = {
        "sub": str(user_id),
        "role": role,
        "iat": int(issued.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=_JWT_ALG)


def decode_access_token(*, token: str, secret: str) -> Dict[str, Any]:
    """Verify signature and expiry.

    Raises jwt.ExpiredSignatureError when the token is past `exp` and
    jwt.InvalidTokenError for anything else wrong with it.
    """
    if not token:
        raise jwt.InvalidTokenError("token_blank")
    if not secret:
        raise ValueError("jwt_secret_blank")
    return jwt.decode(
        token,
        secret,
        algorithms=[_JWT_ALG],
        options={"require": ["exp", "sub"]},
    )


def token_identity(payload: Dict[str, Any]) -> Tuple[int, str]:
    """Extract (user_id, role) from verified claims."""
    sub = payload.get("sub")
    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        raise jwt.InvalidTokenError("token_sub_not_int")
    return user_id, str(payload.get("role") or "user")
