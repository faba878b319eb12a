# app/services/posts.py
"""Post creation and deletion."""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from app.auth import Identity
from app.config import ALLOWED_MEDIA_TYPES, MAX_LOCATION_LENGTH, MAX_POST_LENGTH
from app.errors import ForbiddenError, InvalidInputError, NotFoundError
from app.models import Post
from app.services.counters import RelationOp, apply_relation_change
from app.services.hashtags import index_post_hashtags

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MediaRef:
    """A stored upload as reported by the media collaborator."""
    url: str
    mime_type: str


def validate_post_input(
    content: Optional[str], media: Optional[MediaRef], location: Optional[str] = None
) -> Optional[str]:
    """Check a new post before anything is written; returns the normalized content."""
    if content is not None:
        content = content.strip() or None
    if content is None and media is None:
        raise InvalidInputError("Post must have content or media")
    if content is not None and len(content) > MAX_POST_LENGTH:
        raise InvalidInputError(f"Post content exceeds {MAX_POST_LENGTH} characters")
    if media is not None and media.mime_type not in ALLOWED_MEDIA_TYPES:
        raise InvalidInputError(
            f"Media type {media.mime_type} not allowed. Allowed types: {', '.join(ALLOWED_MEDIA_TYPES)}"
        )
    if location is not None and len(location) > MAX_LOCATION_LENGTH:
        raise InvalidInputError(f"Location exceeds {MAX_LOCATION_LENGTH} characters")
    return content


def create_post(
    db: Session,
    author: Identity,
    content: Optional[str] = None,
    media: Optional[MediaRef] = None,
    tags: Optional[str] = None,
    location: Optional[str] = None,
) -> Post:
    """
    Create a post, bump the author's ``posts_count`` and index its hashtags.

    Args:
        db: Database session; all effects share its transaction
        author: Authenticated owner of the new post
        content: Optional text body
        media: Optional stored media reference
        tags: Free-text tag string stored verbatim
        location: Optional location label

    Returns:
        The new Post
    """
    content = validate_post_input(content, media, location)
    post = apply_relation_change(
        db,
        RelationOp.post_add,
        user_id=author.user_id,
        content=content,
        media_url=media.url if media else None,
        media_type=media.mime_type if media else None,
        tags=tags,
        location=location,
    )
    indexed = index_post_hashtags(db, post)
    logger.info("User %s created post %s with %d hashtags", author.user_id, post.id, len(indexed))
    return post


def delete_post(db: Session, requester: Identity, post_id: int) -> None:
    """Delete a post owned by ``requester`` together with its likes, comments and tag links."""
    owner_id = db.query(Post.user_id).filter(Post.id == post_id).scalar()
    if owner_id is None:
        raise NotFoundError(f"Post {post_id} not found")
    if owner_id != requester.user_id:
        raise ForbiddenError("Not authorized to delete this post")
    apply_relation_change(db, RelationOp.post_remove, post_id=post_id, user_id=owner_id)
    logger.info("User %s deleted post %s", requester.user_id, post_id)
