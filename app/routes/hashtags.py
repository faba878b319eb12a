"""
FastAPI routes for trending hashtags, hashtag search and tagged posts.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from app.auth import Identity, get_optional_identity
from app.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, TRENDING_WINDOW_DAYS
from app.db import get_session
from app.errors import InvalidInputError
from app.routes.posts import PostPage
from app.services.hashtags import posts_by_hashtag, search_hashtags, trending_hashtags


# Response models
class TrendingHashtag(BaseModel):
    """Response model for trending hashtag."""
    tag: str = Field(..., description="Hashtag name")
    usage_count: int = Field(..., description="All-time number of posts that used it")
    recent_posts: int = Field(..., description="Posts inside the window")


class HashtagMatch(BaseModel):
    tag: str = Field(..., description="Hashtag name")
    usage_count: int = Field(..., description="All-time number of posts that used it")


class TrendingResponse(BaseModel):
    """Response model for trending hashtags endpoint."""
    items: List[TrendingHashtag] = Field(..., description="Hashtags ranked by recent posts")
    window_days: int = Field(..., description="Window size used")


class SearchResponse(BaseModel):
    items: List[HashtagMatch]
    query: str


# Router
router = APIRouter(prefix="/hashtags", tags=["hashtags"])


@router.get("/trending", response_model=TrendingResponse)
def get_trending_hashtags(
    limit: int = Query(10, ge=1, le=100, description="Number of hashtags to return (1-100)"),
) -> TrendingResponse:
    """
    Hashtags ranked by posts in the last window, then by all-time usage.
    """
    with get_session() as db:
        rows = trending_hashtags(db, limit=limit)
    return TrendingResponse(items=[TrendingHashtag(**row) for row in rows], window_days=TRENDING_WINDOW_DAYS)


@router.get("/search/{query}", response_model=SearchResponse)
def search_hashtags_endpoint(
    query: str,
    limit: int = Query(10, ge=1, le=100),
) -> SearchResponse:
    """Hashtags containing ``query``, most used first."""
    clean_query = query.lstrip("#").strip()
    if not clean_query:
        raise InvalidInputError("Search query cannot be empty")
    with get_session() as db:
        rows = search_hashtags(db, clean_query, limit=limit)
    return SearchResponse(items=[HashtagMatch(**row) for row in rows], query=clean_query.lower())


@router.get("/{tag}/posts", response_model=PostPage)
def get_hashtag_posts(
    tag: str,
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    identity: Optional[Identity] = Depends(get_optional_identity),
) -> PostPage:
    """Posts linked to ``tag``, newest first."""
    viewer_id = identity.user_id if identity else None
    with get_session() as db:
        return PostPage(**posts_by_hashtag(db, tag, viewer_id, page, page_size).to_dict())
