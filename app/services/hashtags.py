"""
Hashtag indexing and hashtag-centric reads.

Tags are extracted once, when a post is created. Usage counts only ever grow:
editing or deleting a post does not touch them.
"""

import re
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, desc, func
from sqlalchemy.orm import Session

from app.config import MAX_HASHTAG_LENGTH, TRENDING_WINDOW_DAYS
from app.db import contains_pattern, upsert_insert
from app.models import Hashtag, Post, PostHashtag
from app.services.feed import post_query, serialize_post
from app.services.pagination import Page, page_offset

# ASCII word characters only, so "#café" indexes as "caf"
HASHTAG_PATTERN = re.compile(r"#(\w+)", re.ASCII)


def extract_hashtags(content: Optional[str]) -> List[str]:
    """Distinct lower-cased tags in order of first appearance.

    Tags longer than ``MAX_HASHTAG_LENGTH`` are not indexed.
    """
    if not content:
        return []
    tags = (match.lower() for match in HASHTAG_PATTERN.findall(content))
    return list(dict.fromkeys(tag for tag in tags if len(tag) <= MAX_HASHTAG_LENGTH))


def index_post_hashtags(db: Session, post: Post) -> List[str]:
    """
    Upsert every tag of ``post`` and link it to the post.

    A new tag starts at usage 1; an existing one is incremented in the same
    statement, so concurrent posts with the same new tag cannot both insert.

    Returns:
        The tags that were indexed
    """
    tags = extract_hashtags(post.content)
    for tag in tags:
        upsert = upsert_insert(db, Hashtag).values(tag=tag, usage_count=1, created_at=datetime.utcnow())
        db.execute(
            upsert.on_conflict_do_update(
                index_elements=[Hashtag.tag],
                set_={"usage_count": Hashtag.usage_count + 1},
            )
        )
        hashtag_id = db.query(Hashtag.id).filter(Hashtag.tag == tag).scalar()
        link = upsert_insert(db, PostHashtag).values(post_id=post.id, hashtag_id=hashtag_id)
        db.execute(link.on_conflict_do_nothing(index_elements=[PostHashtag.post_id, PostHashtag.hashtag_id]))
    return tags


def trending_hashtags(
    db: Session, limit: int = 10, window_days: int = TRENDING_WINDOW_DAYS, now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    """
    Rank hashtags by how many of their posts fall inside the trailing window.

    Ties are broken by all-time usage count, then alphabetically.
    """
    cutoff = (now or datetime.utcnow()) - timedelta(days=window_days)
    rows = (
        db.query(
            Hashtag.tag,
            Hashtag.usage_count,
            func.count(Post.id).label("recent_posts"),
        )
        .outerjoin(PostHashtag, Hashtag.id == PostHashtag.hashtag_id)
        .outerjoin(Post, and_(PostHashtag.post_id == Post.id, Post.created_at > cutoff))
        .group_by(Hashtag.id, Hashtag.tag, Hashtag.usage_count)
        .order_by(desc("recent_posts"), Hashtag.usage_count.desc(), Hashtag.tag)
        .limit(limit)
        .all()
    )
    return [
        {"tag": row.tag, "usage_count": row.usage_count, "recent_posts": row.recent_posts}
        for row in rows
    ]


def search_hashtags(db: Session, query: str, limit: int = 10) -> List[Dict[str, Any]]:
    needle = query.lstrip("#").lower()
    rows = (
        db.query(Hashtag.tag, Hashtag.usage_count)
        .filter(Hashtag.tag.like(contains_pattern(needle), escape="\\"))
        .order_by(Hashtag.usage_count.desc(), Hashtag.tag)
        .limit(limit)
        .all()
    )
    return [{"tag": row.tag, "usage_count": row.usage_count} for row in rows]


def posts_by_hashtag(
    db: Session, tag: str, viewer_id: Optional[int] = None, page: int = 1, page_size: int = 10
) -> Page:
    offset = page_offset(page, page_size)
    rows = (
        post_query(db, viewer_id)
        .join(PostHashtag, PostHashtag.post_id == Post.id)
        .join(Hashtag, PostHashtag.hashtag_id == Hashtag.id)
        .filter(Hashtag.tag == tag.lstrip("#").lower())
        .order_by(Post.created_at.desc(), Post.id.desc())
        .offset(offset)
        .limit(page_size)
        .all()
    )
    return Page(page=page, page_size=page_size, items=[serialize_post(r) for r in rows])
