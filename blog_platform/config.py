import os
from dataclasses import dataclass
from typing import List, Optional

# Optional: load a local .env file if present.
try:
    from dotenv import load_dotenv

    load_dotenv()
except Exception:
    # No .env file (or python-dotenv missing): plain environment variables still work.
    pass


DEV_JWT_SECRET = "dev_change_me"


def _env_bool(name: str, default: Optional[bool] = None) -> Optional[bool]:
    """Parse a boolean environment variable.

    Returns:
      - True/False if the env var is set to a recognizable value
      - default if unset or unrecognized

    Accepted truthy: 1, true, yes, y, on
    Accepted falsy:  0, false, no, n, off
    """

    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in ("1", "true", "yes", "y", "on"):
        return True
    if v in ("0", "false", "no", "n", "off"):
        return False
    return default


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    All values come from environment variables (or a local .env file).
    Do not hardcode secrets in source code.
    """

    # -----------------
    # Database
    # -----------------
    # Preferred: set BLOG_DATABASE_URL (or DATABASE_URL) to use Postgres.
    # Fallback: BLOG_DB_PATH for SQLite.
    DB_DSN: str = (
        os.environ.get("BLOG_DATABASE_URL")
        or os.environ.get("DATABASE_URL")
        or os.environ.get("BLOG_DB_PATH", "./blog_platform.sqlite")
    )

    # -----------------
    # Auth (JWT)
    # -----------------
    # NOTE: In dev, this defaults to a fixed string so you can get started.
    # In production, you MUST set AUTH_JWT_SECRET (or JWT_SECRET) to a strong random value.
    AUTH_JWT_SECRET: str = (
        os.environ.get("AUTH_JWT_SECRET")
        or os.environ.get("JWT_SECRET")
        or DEV_JWT_SECRET
    )
    # Sessions last exactly one hour; there is no refresh token.
    AUTH_TOKEN_EXPIRE_MINUTES: int = _env_int("AUTH_TOKEN_EXPIRE_MINUTES", 60)

    # Cookie-based browser sessions
    # - The API sets an httpOnly cookie on /auth/login and /auth/register
    # - The session guard reads the token from Authorization: Bearer ... first, then the cookie
    AUTH_COOKIE_NAME: str = os.environ.get("AUTH_COOKIE_NAME", "token")
    AUTH_COOKIE_PATH: str = os.environ.get("AUTH_COOKIE_PATH", "/")
    AUTH_COOKIE_SAMESITE: str = os.environ.get("AUTH_COOKIE_SAMESITE", "lax")  # lax|strict|none

    # -----------------
    # CORS
    # -----------------
    # Single frontend origin; credentials are allowed so the cookie travels.
    FRONTEND_URL: str = os.environ.get("FRONTEND_URL", "http://localhost:3000")

    # If AUTH_COOKIE_SECURE is unset, we default to secure cookies when FRONTEND_URL is https.
    # NOTE: Browsers require Secure when SameSite=None.
    AUTH_COOKIE_SECURE: bool = (
        _env_bool("AUTH_COOKIE_SECURE", None)
        if _env_bool("AUTH_COOKIE_SECURE", None) is not None
        else FRONTEND_URL.lower().startswith("https://")
    )

    # -----------------
    # Server
    # -----------------
    API_HOST: str = os.environ.get("API_HOST", "0.0.0.0")
    PORT: int = _env_int("PORT", 5000)

    # -----------------
    # Posts
    # -----------------
    # Upper bound for ?limit= on the public post listing.
    POSTS_MAX_LIMIT: int = _env_int("POSTS_MAX_LIMIT", 100)


def load_config() -> Config:
    return Config()


def validate_config(cfg: Config) -> List[str]:
    """Return human-readable problems with `cfg` (empty list when all is well).

    Nothing here is fatal: the API still starts so /health can report status.
    """
    problems: List[str] = []
    if not (cfg.DB_DSN or "").strip():
        problems.append("DB_DSN is blank")
    if not cfg.AUTH_JWT_SECRET:
        problems.append("AUTH_JWT_SECRET is blank")
    elif cfg.AUTH_JWT_SECRET == DEV_JWT_SECRET:
        problems.append("AUTH_JWT_SECRET is the development default; set a strong secret in production")
    if cfg.AUTH_TOKEN_EXPIRE_MINUTES < 1:
        problems.append("AUTH_TOKEN_EXPIRE_MINUTES must be >= 1")
    if cfg.POSTS_MAX_LIMIT < 1:
        problems.append("POSTS_MAX_LIMIT must be >= 1")
    if not (1 <= cfg.PORT <= 65535):
        problems.append(f"PORT out of range: {cfg.PORT}")
    samesite = (cfg.AUTH_COOKIE_SAMESITE or "").lower()
    if samesite not in ("lax", "strict", "none"):
        problems.append(f"AUTH_COOKIE_SAMESITE must be lax|strict|none (got {cfg.AUTH_COOKIE_SAMESITE!r})")
    return problems
