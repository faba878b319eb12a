"""
FastAPI routes for posts, feeds and likes.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query
from pydantic import BaseModel, Field

from app.auth import Identity, get_current_identity, get_optional_identity
from app.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, TRENDING_WINDOW_DAYS
from app.db import get_session
from app.services.engagement import toggle_like
from app.services.feed import compute_home_feed, compute_trending, get_post, user_posts
from app.services.posts import MediaRef, create_post, delete_post
from app.services.realtime import schedule_push


# Request / response models
class MediaIn(BaseModel):
    """Reference to media already stored by the upload service."""
    url: str = Field(..., max_length=255, description="Public URL of the stored file")
    mime_type: str = Field(..., max_length=50, description="MIME type reported by the upload service")


class CreatePostRequest(BaseModel):
    content: Optional[str] = Field(None, description="Post text; #hashtags are indexed")
    media: Optional[MediaIn] = Field(None, description="Attached media")
    tags: Optional[str] = Field(None, description="Free-text tags stored verbatim")
    location: Optional[str] = Field(None, description="Location label")


class PostOut(BaseModel):
    id: int
    user_id: int
    username: str
    full_name: Optional[str] = None
    profile_picture: Optional[str] = None
    verified: bool = False
    content: Optional[str] = None
    media_url: Optional[str] = None
    media_type: Optional[str] = None
    tags: Optional[str] = None
    location: Optional[str] = None
    likes_count: int
    comments_count: int
    shares_count: int
    user_liked: bool = Field(False, description="Whether the requesting user liked this post")
    engagement_score: Optional[int] = Field(None, description="Trending score (trending feed only)")
    created_at: datetime


class PostPage(BaseModel):
    items: List[PostOut]
    has_more: bool = Field(..., description="True when the page came back full")
    page: int
    page_size: int


class LikeResponse(BaseModel):
    liked: bool = Field(..., description="Resulting like state")
    likes_count: int
    message: str


class MessageResponse(BaseModel):
    message: str


# Router
router = APIRouter(prefix="/posts", tags=["posts"])


@router.post("", response_model=PostOut, status_code=201)
def create_post_endpoint(
    payload: CreatePostRequest,
    identity: Identity = Depends(get_current_identity),
) -> PostOut:
    """Create a post with text and/or media; hashtags in the text are indexed."""
    media = MediaRef(url=payload.media.url, mime_type=payload.media.mime_type) if payload.media else None
    with get_session() as db:
        post = create_post(
            db, identity, content=payload.content, media=media, tags=payload.tags, location=payload.location
        )
        return PostOut(**get_post(db, post.id, identity.user_id))


@router.get("/feed", response_model=PostPage)
def get_home_feed(
    page: int = Query(1, ge=1, description="1-based page number"),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Posts per page"),
    identity: Identity = Depends(get_current_identity),
) -> PostPage:
    """Posts by the requesting user and everyone they follow, newest first."""
    with get_session() as db:
        return PostPage(**compute_home_feed(db, identity.user_id, page, page_size).to_dict())


@router.get("/trending", response_model=PostPage)
def get_trending_posts(
    page: int = Query(1, ge=1, description="1-based page number"),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Posts per page"),
    window_days: int = Query(TRENDING_WINDOW_DAYS, ge=1, le=90, description="Trailing window in days"),
    identity: Optional[Identity] = Depends(get_optional_identity),
) -> PostPage:
    """
    Posts from the trailing window ranked by 2*likes + comments + shares.
    """
    viewer_id = identity.user_id if identity else None
    with get_session() as db:
        result = compute_trending(db, page, page_size, window_days=window_days, viewer_id=viewer_id)
        return PostPage(**result.to_dict())


@router.get("/user/{username}", response_model=PostPage)
def get_user_posts(
    username: str,
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    identity: Optional[Identity] = Depends(get_optional_identity),
) -> PostPage:
    viewer_id = identity.user_id if identity else None
    with get_session() as db:
        return PostPage(**user_posts(db, username, viewer_id, page, page_size).to_dict())


@router.get("/{post_id}", response_model=PostOut)
def get_post_endpoint(
    post_id: int = Path(..., ge=1),
    identity: Optional[Identity] = Depends(get_optional_identity),
) -> PostOut:
    viewer_id = identity.user_id if identity else None
    with get_session() as db:
        return PostOut(**get_post(db, post_id, viewer_id))


@router.post("/{post_id}/like", response_model=LikeResponse)
def toggle_like_endpoint(
    background_tasks: BackgroundTasks,
    post_id: int = Path(..., ge=1, description="Post to like or unlike"),
    identity: Identity = Depends(get_current_identity),
) -> LikeResponse:
    """
    Toggle the requesting user's like on a post.

    Returns 409 if a concurrent toggle on the same post won; re-read the post
    rather than retrying.
    """
    with get_session() as db:
        result = toggle_like(db, identity, post_id)
    schedule_push(background_tasks, result.event)
    return LikeResponse(
        liked=result.liked,
        likes_count=result.likes_count,
        message="Post liked" if result.liked else "Post unliked",
    )


@router.delete("/{post_id}", response_model=MessageResponse)
def delete_post_endpoint(
    post_id: int = Path(..., ge=1),
    identity: Identity = Depends(get_current_identity),
) -> MessageResponse:
    with get_session() as db:
        delete_post(db, identity, post_id)
    return MessageResponse(message="Post deleted successfully")
