from __future__ import annotations

import traceback
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from blog_platform.config import Config, load_config, validate_config
from blog_platform.db import connect, ping
from blog_platform.errors import AUTH_FAILURES, BlogError, Internal

from blog_platform.auth import ensure_schema, get_config, get_current_user
from blog_platform.auth import crud as auth_crud
from blog_platform.posts import crud as posts_crud


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


# -----------------------------
# Request bodies
# -----------------------------
# Fields default to None so missing values reach the workflow validators and come
# back as a 400 listing every bad field, instead of a bare 422.


class RegisterRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class PostRequest(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None


# -----------------------------
# Cookies
# -----------------------------


def _cookie_secure(cfg: Config) -> bool:
    """Return whether auth cookies should be marked Secure."""
    samesite = str(cfg.AUTH_COOKIE_SAMESITE or "lax").lower()
    # Browsers require Secure when SameSite=None
    if samesite == "none":
        return True
    return bool(cfg.AUTH_COOKIE_SECURE)


def _set_auth_cookie(response: Response, *, token: str, cfg: Config) -> None:
    response.set_cookie(
        key=cfg.AUTH_COOKIE_NAME,
        value=str(token),
        httponly=True,
        samesite=str(cfg.AUTH_COOKIE_SAMESITE or "lax").lower(),
        secure=_cookie_secure(cfg),
        max_age=int(cfg.AUTH_TOKEN_EXPIRE_MINUTES) * 60,
        path=cfg.AUTH_COOKIE_PATH or "/",
    )


def _clear_auth_cookie(response: Response, cfg: Config) -> None:
    response.delete_cookie(key=cfg.AUTH_COOKIE_NAME, path=cfg.AUTH_COOKIE_PATH or "/")


router = APIRouter()


# -----------------------------
# Health
# -----------------------------


@router.get("/health")
def health(request: Request, cfg: Config = Depends(get_config)) -> Dict[str, Any]:
    # Reachable but without tables is still unusable.
    ready = bool(getattr(request.app.state, "db_ready", False))
    return {
        "status": "OK",
        "database": "Connected" if ready and ping(cfg.DB_DSN) else "Disconnected",
    }


# -----------------------------
# Auth
# -----------------------------


@router.post("/auth/register", status_code=201)
def auth_register(
    payload: RegisterRequest,
    response: Response,
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        out = auth_crud.register(
            conn,
            secret=cfg.AUTH_JWT_SECRET,
            username=payload.username or "",
            email=payload.email or "",
            password=payload.password or "",
            expires_minutes=cfg.AUTH_TOKEN_EXPIRE_MINUTES,
        )
    _debug(f"Registered user_id={out['user']['user_id']}")
    _set_auth_cookie(response, token=out["token"], cfg=cfg)
    return out


@router.post("/auth/login")
def auth_login(
    payload: LoginRequest,
    response: Response,
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        out = auth_crud.login(
            conn,
            secret=cfg.AUTH_JWT_SECRET,
            email=payload.email or "",
            password=payload.password or "",
            expires_minutes=cfg.AUTH_TOKEN_EXPIRE_MINUTES,
        )
    _set_auth_cookie(response, token=out["token"], cfg=cfg)
    return out


@router.post("/auth/logout")
def auth_logout(response: Response, cfg: Config = Depends(get_config)) -> Dict[str, Any]:
    """Clear the browser session cookie. Bearer tokens stay valid until they expire."""
    _clear_auth_cookie(response, cfg)
    return {"message": "Logged out"}


@router.get("/auth/me")
def auth_me(
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        return auth_crud.current_user(conn, int(user["user_id"]))


# -----------------------------
# Posts
# -----------------------------


@router.get("/posts")
def posts_list(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    p, n = posts_crud.parse_pagination(page, limit, max_limit=cfg.POSTS_MAX_LIMIT)
    with connect(cfg.DB_DSN) as conn:
        return posts_crud.list_posts(conn, page=p, limit=n)


@router.get("/posts/{post_id}")
def posts_get(post_id: str, cfg: Config = Depends(get_config)) -> Dict[str, Any]:
    pid = posts_crud.parse_post_id(post_id)
    with connect(cfg.DB_DSN) as conn:
        return posts_crud.get_post(conn, pid)


@router.post("/posts", status_code=201)
def posts_create(
    payload: PostRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        return posts_crud.create_post(
            conn,
            user_id=int(user["user_id"]),
            title=payload.title,
            content=payload.content,
        )


@router.put("/posts/{post_id}")
def posts_update(
    post_id: str,
    payload: PostRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    pid = posts_crud.parse_post_id(post_id)
    with connect(cfg.DB_DSN) as conn:
        return posts_crud.update_post(
            conn,
            user_id=int(user["user_id"]),
            post_id=pid,
            title=payload.title,
            content=payload.content,
        )


@router.delete("/posts/{post_id}")
def posts_delete(
    post_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    pid = posts_crud.parse_post_id(post_id)
    with connect(cfg.DB_DSN) as conn:
        out = posts_crud.delete_post(conn, user_id=int(user["user_id"]), post_id=pid)
    _debug(f"Deleted post_id={pid} by user_id={user['user_id']}")
    return out


# -----------------------------
# Error mapping
# -----------------------------


def _blog_error_response(request: Request, exc: BlogError) -> JSONResponse:
    if isinstance(exc, Internal):
        _debug(f"Internal error on {request.method} {request.url.path}: {exc.__cause__!r}")
        exc = Internal()
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AUTH_FAILURES) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


def _request_validation_response(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    for err in exc.errors():
        loc = [str(x) for x in err.get("loc", ()) if x not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc) or "body", "message": str(err.get("msg", "invalid"))})
    return JSONResponse(
        status_code=400,
        content={"detail": "validation_error", "message": "Validation failed", "errors": errors},
    )


def _unhandled_error_response(request: Request, exc: Exception) -> JSONResponse:
    _debug(f"Unhandled error on {request.method} {request.url.path}: {type(exc).__name__}: {exc}")
    # Handlers run outside the except block, so format from the exception itself.
    _debug("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    return JSONResponse(status_code=500, content=Internal().to_dict())


def create_app(cfg: Optional[Config] = None) -> FastAPI:
    """Build the API around an explicit Config (tests pass their own)."""
    cfg = cfg or load_config()

    app = FastAPI(title="Blog Platform", version="0.1.0")
    app.state.cfg = cfg
    app.state.db_ready = False

    if cfg.FRONTEND_URL:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[cfg.FRONTEND_URL],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(BlogError, _blog_error_response)
    app.add_exception_handler(RequestValidationError, _request_validation_response)
    app.add_exception_handler(Exception, _unhandled_error_response)

    app.include_router(router)
    # Original deployment served everything under /api; keep that working.
    app.include_router(router, prefix="/api", include_in_schema=False)

    @app.on_event("startup")
    def _on_startup() -> None:
        for problem in validate_config(cfg):
            _debug(f"Config warning: {problem}")

        # A store that is down at boot leaves the API up in a degraded state;
        # the schema is retried on each request until it succeeds.
        if not ensure_schema(app, cfg):
            _debug("Database initialization failed, continuing degraded")

    return app


app = create_app()
