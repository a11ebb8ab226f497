from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Tuple

from blog_platform.auth.crud import get_user_by_id
from blog_platform.errors import Forbidden, InvalidId, NotFound, UserNotFound, ValidationError
from blog_platform.util.time import utcnow_iso


# Largest values the stores accept for ids and LIMIT/OFFSET arithmetic.
_MAX_ID = 2**63 - 1
_MAX_PAGING = 2**31 - 1

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10

TITLE_MIN = 5
TITLE_MAX = 100
CONTENT_MIN = 10

# Author fields exposed alongside a post. Never includes the password hash.
_POST_SELECT = """
    SELECT
      p.post_id, p.title, p.content, p.author_id, p.created_at, p.updated_at,
      u.username AS author_username, u.email AS author_email
    FROM posts p
    JOIN users u ON u.user_id = p.author_id
"""


def _to_positive_int(raw: Any, *, upper: int) -> Optional[int]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        n = int(str(raw).strip())
    except ValueError:
        return None
    return n if 1 <= n <= upper else None


def parse_pagination(page: Any, limit: Any, *, max_limit: Optional[int] = None) -> Tuple[int, int]:
    """Turn caller-supplied page/limit into integers.

    Missing, non-numeric or non-positive values fall back to page 1 / limit 10.
    When `max_limit` is given, larger limits are clamped to it.
    """
    p = _to_positive_int(page, upper=_MAX_PAGING) or DEFAULT_PAGE
    n = _to_positive_int(limit, upper=_MAX_PAGING) or DEFAULT_LIMIT
    if max_limit is not None and n > max_limit:
        n = max_limit
    return p, n


def parse_post_id(raw: Any) -> int:
    post_id = _to_positive_int(raw, upper=_MAX_ID)
    if post_id is None:
        raise InvalidId()
    return post_id


def validate_post_payload(title: Optional[str], content: Optional[str]) -> Tuple[str, str]:
    """Return the cleaned (title, content) or raise ValidationError listing every bad field."""
    errors: List[Dict[str, str]] = []

    t = (title or "").strip()
    if not t:
        errors.append({"field": "title", "message": "Title is required"})
    elif not (TITLE_MIN <= len(t) <= TITLE_MAX):
        errors.append(
            {"field": "title", "message": f"Title must be between {TITLE_MIN} and {TITLE_MAX} characters"}
        )

    c = content or ""
    if not c.strip():
        errors.append({"field": "content", "message": "Content is required"})
    elif len(c) < CONTENT_MIN:
        errors.append({"field": "content", "message": f"Content must be at least {CONTENT_MIN} characters"})

    if errors:
        raise ValidationError(errors)
    return t, c


def _post_out(row: Any) -> Dict[str, Any]:
    d = dict(row)
    return {
        "post_id": d["post_id"],
        "title": d["title"],
        "content": d["content"],
        "author": {
            "user_id": d["author_id"],
            "username": d["author_username"],
            "email": d["author_email"],
        },
        "created_at": d["created_at"],
        "updated_at": d["updated_at"],
    }


def _get_post_row(conn: Any, post_id: int) -> Optional[Any]:
    return conn.execute(
        "SELECT post_id, author_id FROM posts WHERE post_id=?",
        (int(post_id),),
    ).fetchone()


def _require_author(conn: Any, *, user_id: int, post_id: int) -> None:
    row = _get_post_row(conn, post_id)
    if row is None:
        raise NotFound("Post not found")
    if int(row["author_id"]) != int(user_id):
        raise Forbidden("Not authorized to modify this post")


def list_posts(conn: Any, *, page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT) -> Dict[str, Any]:
    """Newest-first page of posts with authors expanded."""
    offset = (page - 1) * limit
    rows = conn.execute(
        _POST_SELECT
        + """
        ORDER BY p.created_at DESC, p.post_id DESC
        LIMIT ? OFFSET ?
        """,
        (limit, offset),
    ).fetchall()
    total = int(conn.execute("SELECT COUNT(*) AS n FROM posts").fetchone()["n"])

    return {
        "posts": [_post_out(r) for r in rows],
        "total": total,
        "page": page,
        "pages": math.ceil(total / limit),
        "limit": limit,
    }


def get_post(conn: Any, post_id: int) -> Dict[str, Any]:
    row = conn.execute(_POST_SELECT + " WHERE p.post_id=?", (int(post_id),)).fetchone()
    if row is None:
        raise NotFound("Post not found")
    return _post_out(row)


def create_post(conn: Any, *, user_id: int, title: Optional[str], content: Optional[str]) -> Dict[str, Any]:
    t, c = validate_post_payload(title, content)

    # The session guard already resolved the user; re-check inside this transaction.
    if get_user_by_id(conn, user_id) is None:
        raise UserNotFound()

    now = utcnow_iso()
    inserted = conn.execute(
        """
        INSERT INTO posts (title, content, author_id, created_at, updated_at)
        VALUES (?,?,?,?,?)
        RETURNING post_id
        """,
        (t, c, int(user_id), now, now),
    ).fetchone()
    return get_post(conn, int(inserted["post_id"]))


def update_post(
    conn: Any,
    *,
    user_id: int,
    post_id: int,
    title: Optional[str],
    content: Optional[str],
) -> Dict[str, Any]:
    """Overwrite title/content. Ownership is checked before the payload."""
    _require_author(conn, user_id=user_id, post_id=post_id)
    t, c = validate_post_payload(title, content)

    conn.execute(
        "UPDATE posts SET title=?, content=?, updated_at=? WHERE post_id=?",
        (t, c, utcnow_iso(), int(post_id)),
    )
    return get_post(conn, post_id)


def delete_post(conn: Any, *, user_id: int, post_id: int) -> Dict[str, Any]:
    """Remove a post and all of its comments.

    Both deletes run on `conn`, so they commit or roll back together.
    """
    _require_author(conn, user_id=user_id, post_id=post_id)

    conn.execute("DELETE FROM comments WHERE post_id=?", (int(post_id),))
    conn.execute("DELETE FROM posts WHERE post_id=?", (int(post_id),))
    return {"message": "Post removed successfully"}


# -----------------------------
# Comments (owned by posts)
# -----------------------------


def create_comment(conn: Any, *, post_id: int, user_id: int, content: str) -> int:
    inserted = conn.execute(
        """
        INSERT INTO comments (post_id, author_id, content, created_at)
        VALUES (?,?,?,?)
        RETURNING comment_id
        """,
        (int(post_id), int(user_id), content, utcnow_iso()),
    ).fetchone()
    return int(inserted["comment_id"])


def count_comments(conn: Any, post_id: int) -> int:
    row = conn.execute(
        "SELECT COUNT(*) AS n FROM comments WHERE post_id=?",
        (int(post_id),),
    ).fetchone()
    return int(row["n"])
