from __future__ import annotations

from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from blog_platform.config import Config
from blog_platform.db import connect, init_db
from blog_platform.errors import Internal, InvalidToken, NoToken, TokenExpired, UserGone

from .crud import get_user_by_id, public_user
from .security import decode_access_token, token_identity


_bearer = HTTPBearer(auto_error=False)


def _debug(msg: str) -> None:
    print(f"[auth] {msg}")


def ensure_schema(app: Any, cfg: Config) -> bool:
    """Create the tables if that has not succeeded yet. Returns True once they exist.

    A store that was down at boot gets its schema on the first request after it
    comes back.
    """
    if getattr(app.state, "db_ready", False):
        return True
    try:
        init_db(cfg.DB_DSN)
    except Exception as e:
        _debug(f"Schema init failed: {type(e).__name__}: {e}")
        return False
    app.state.db_ready = True
    return True


def get_config(request: Request) -> Config:
    cfg = getattr(request.app.state, "cfg", None)
    if cfg is None:
        raise Internal("server_config_missing")
    ensure_schema(request.app, cfg)
    return cfg


def extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials], cookie_name: str) -> Optional[str]:
    # Prefer Bearer token when explicitly provided.
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    # Fall back to cookie.
    return request.cookies.get(cookie_name) or None


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    """Authenticate a request.

    Token sources, in order:
      - Authorization: Bearer <jwt>
      - the session cookie (AUTH_COOKIE_NAME, default "token")

    The user is re-read from the database on every request so deleted accounts
    lose access immediately. The returned dict never contains the password hash.
    """

    token = extract_token(request, credentials, cfg.AUTH_COOKIE_NAME)
    if not token:
        raise NoToken()

    try:
        payload = decode_access_token(token=token, secret=cfg.AUTH_JWT_SECRET)
        user_id, _role = token_identity(payload)
    except jwt.ExpiredSignatureError:
        raise TokenExpired()
    except jwt.InvalidTokenError as e:
        _debug(f"Token verification error: {e}")
        raise InvalidToken()

    try:
        with connect(cfg.DB_DSN) as conn:
            row = get_user_by_id(conn, user_id)
    except Exception as e:
        _debug(f"User lookup failed: {type(e).__name__}: {e}")
        raise Internal() from e

    if row is None:
        raise UserGone()
    return public_user(row)
