"""Authentication / authorization helpers.

Auth is intentionally lightweight:

- Users table (email/password hash + role)
- JWT access tokens, valid for one hour, no refresh

The API accepts both:

- `Authorization: Bearer <token>` (useful for scripts / API clients)
- An httpOnly `token` cookie (set by `/auth/login` and `/auth/register`)

The header wins when both are present.
"""

from .deps import ensure_schema, get_config, get_current_user
from .crud import create_user, current_user, login, register

__all__ = [
    "ensure_schema",
    "get_config",
    "get_current_user",
    "create_user",
    "current_user",
    "login",
    "register",
]
