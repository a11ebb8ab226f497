"""Post workflow: public reads, author-only writes, comment cascade on delete."""

from .crud import create_post, delete_post, get_post, list_posts, update_post

__all__ = ["create_post", "delete_post", "get_post", "list_posts", "update_post"]
