"""Post workflow: pagination, validation, ownership, comment cascade."""

import pytest

from blog_platform.db import connect
from blog_platform.errors import Forbidden, InvalidId, NotFound, UserNotFound, ValidationError
from blog_platform.posts import crud as posts_crud

pytestmark = pytest.mark.unit

CONTENT = "Some content that is long enough."


@pytest.fixture
def alice(make_user):
    return make_user()["user"]


@pytest.fixture
def bob(make_user):
    return make_user(username="bob", email="bob@example.com")["user"]


def _create(db, user, title="Hello world", content=CONTENT):
    with connect(db) as conn:
        return posts_crud.create_post(conn, user_id=user["user_id"], title=title, content=content)


# -----------------------------
# Parsing helpers
# -----------------------------


@pytest.mark.parametrize(
    "page,limit,expected",
    [
        (None, None, (1, 10)),
        ("2", "5", (2, 5)),
        ("abc", "xyz", (1, 10)),
        ("0", "0", (1, 10)),
        ("-3", "-1", (1, 10)),
        (3, 20, (3, 20)),
    ],
)
def test_parse_pagination_defaults(page, limit, expected):
    assert posts_crud.parse_pagination(page, limit) == expected


def test_parse_pagination_clamps_limit():
    assert posts_crud.parse_pagination("1", "5000", max_limit=100) == (1, 100)


@pytest.mark.parametrize("raw", ["abc", "0", "-1", "1.5", "", "99999999999999999999999"])
def test_parse_post_id_rejects_bad_ids(raw):
    with pytest.raises(InvalidId):
        posts_crud.parse_post_id(raw)


def test_parse_post_id_accepts_integer_strings():
    assert posts_crud.parse_post_id("17") == 17


# -----------------------------
# Validation
# -----------------------------


def test_title_length_boundary():
    with pytest.raises(ValidationError) as exc_info:
        posts_crud.validate_post_payload("abcd", CONTENT)
    assert exc_info.value.fields == ["title"]

    assert posts_crud.validate_post_payload("abcde", CONTENT) == ("abcde", CONTENT)


def test_title_upper_bound_and_trim():
    assert posts_crud.validate_post_payload("  " + "t" * 100 + "  ", CONTENT)[0] == "t" * 100
    with pytest.raises(ValidationError):
        posts_crud.validate_post_payload("t" * 101, CONTENT)


def test_validation_enumerates_all_failing_fields():
    with pytest.raises(ValidationError) as exc_info:
        posts_crud.validate_post_payload(None, "short")
    assert exc_info.value.fields == ["title", "content"]


def test_create_rejects_invalid_payload(db, alice):
    with pytest.raises(ValidationError):
        _create(db, alice, title="abcd")
    with connect(db) as conn:
        assert posts_crud.list_posts(conn)["total"] == 0


# -----------------------------
# CRUD
# -----------------------------


def test_create_then_get_roundtrip(db, alice):
    created = _create(db, alice, title="My first post")
    with connect(db) as conn:
        fetched = posts_crud.get_post(conn, created["post_id"])

    assert fetched["title"] == "My first post"
    assert fetched["content"] == CONTENT
    assert fetched["author"] == {
        "user_id": alice["user_id"],
        "username": "alice",
        "email": "alice@example.com",
    }
    assert fetched["created_at"] == fetched["updated_at"]


def test_create_for_missing_user(db):
    with connect(db) as conn:
        with pytest.raises(UserNotFound):
            posts_crud.create_post(conn, user_id=12345, title="Hello world", content=CONTENT)


def test_get_missing_post(db):
    with connect(db) as conn:
        with pytest.raises(NotFound):
            posts_crud.get_post(conn, 999)


def test_list_posts_second_page(db, alice):
    for i in range(15):
        _create(db, alice, title=f"Post number {i}")

    with connect(db) as conn:
        out = posts_crud.list_posts(conn, page=2, limit=10)

    assert len(out["posts"]) == 5
    assert out["total"] == 15
    assert out["pages"] == 2
    assert out["page"] == 2
    assert out["limit"] == 10


def test_list_posts_newest_first_with_authors(db, alice, bob):
    _create(db, alice, title="Older post")
    _create(db, bob, title="Newer post")

    with connect(db) as conn:
        out = posts_crud.list_posts(conn)

    assert [p["title"] for p in out["posts"]] == ["Newer post", "Older post"]
    assert out["posts"][0]["author"]["username"] == "bob"
    assert "password_hash" not in out["posts"][0]["author"]


def test_list_posts_empty(db):
    with connect(db) as conn:
        out = posts_crud.list_posts(conn)
    assert out == {"posts": [], "total": 0, "page": 1, "pages": 0, "limit": 10}


def test_update_by_author(db, alice):
    post = _create(db, alice)
    with connect(db) as conn:
        updated = posts_crud.update_post(
            conn,
            user_id=alice["user_id"],
            post_id=post["post_id"],
            title="Edited title",
            content="Edited content here.",
        )
    assert updated["title"] == "Edited title"
    assert updated["content"] == "Edited content here."
    assert updated["author"]["user_id"] == alice["user_id"]
    assert updated["updated_at"] >= post["updated_at"]


def test_update_recomputes_updated_at_only(db, alice, monkeypatch):
    post = _create(db, alice)
    monkeypatch.setattr(posts_crud, "utcnow_iso", lambda: "2099-01-01T00:00:00.123Z")
    with connect(db) as conn:
        updated = posts_crud.update_post(
            conn,
            user_id=alice["user_id"],
            post_id=post["post_id"],
            title="Edited title",
            content="Edited content here.",
        )
    assert updated["updated_at"] == "2099-01-01T00:00:00.123Z"
    assert updated["created_at"] == post["created_at"]


@pytest.mark.parametrize("title,content", [("Valid title", CONTENT), ("x", "y")])
def test_update_by_non_author_is_forbidden(db, alice, bob, title, content):
    post = _create(db, alice)
    with connect(db) as conn:
        with pytest.raises(Forbidden):
            posts_crud.update_post(conn, user_id=bob["user_id"], post_id=post["post_id"], title=title, content=content)
        assert posts_crud.get_post(conn, post["post_id"])["title"] == "Hello world"


def test_update_missing_post(db, alice):
    with connect(db) as conn:
        with pytest.raises(NotFound):
            posts_crud.update_post(conn, user_id=alice["user_id"], post_id=404, title="Valid title", content=CONTENT)


def test_delete_by_non_author_is_forbidden(db, alice, bob):
    post = _create(db, alice)
    with connect(db) as conn:
        with pytest.raises(Forbidden):
            posts_crud.delete_post(conn, user_id=bob["user_id"], post_id=post["post_id"])
        assert posts_crud.get_post(conn, post["post_id"])["post_id"] == post["post_id"]


def test_delete_cascades_comments(db, alice, bob):
    post = _create(db, alice)
    other = _create(db, alice, title="Another post")
    with connect(db) as conn:
        posts_crud.create_comment(conn, post_id=post["post_id"], user_id=bob["user_id"], content="Nice!")
        posts_crud.create_comment(conn, post_id=post["post_id"], user_id=alice["user_id"], content="Thanks")
        posts_crud.create_comment(conn, post_id=other["post_id"], user_id=bob["user_id"], content="Also nice")

    with connect(db) as conn:
        out = posts_crud.delete_post(conn, user_id=alice["user_id"], post_id=post["post_id"])
    assert out == {"message": "Post removed successfully"}

    with connect(db) as conn:
        assert posts_crud.count_comments(conn, post["post_id"]) == 0
        assert posts_crud.count_comments(conn, other["post_id"]) == 1
        with pytest.raises(NotFound):
            posts_crud.get_post(conn, post["post_id"])


def test_delete_rolls_back_comments_if_transaction_fails(db, alice):
    post = _create(db, alice)
    with connect(db) as conn:
        posts_crud.create_comment(conn, post_id=post["post_id"], user_id=alice["user_id"], content="Keep me")

    with pytest.raises(RuntimeError):
        with connect(db) as conn:
            posts_crud.delete_post(conn, user_id=alice["user_id"], post_id=post["post_id"])
            raise RuntimeError("boom")

    with connect(db) as conn:
        assert posts_crud.count_comments(conn, post["post_id"]) == 1
        assert posts_crud.get_post(conn, post["post_id"])["post_id"] == post["post_id"]
