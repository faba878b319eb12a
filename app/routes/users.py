"""
FastAPI routes for user profiles and the follow graph.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from pydantic import BaseModel, Field

from app.auth import Identity, get_current_identity, get_optional_identity
from app.db import get_session
from app.services.engagement import toggle_follow
from app.services.posts import MediaRef
from app.services.realtime import schedule_push
from app.services.users import (
    get_profile,
    list_followers,
    list_following,
    register_user,
    search_users,
    update_profile,
)


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_]+$")
    email: str = Field(..., max_length=100, description="Unique contact address")
    full_name: Optional[str] = Field(None, max_length=100, description="Defaults to the username")
    bio: Optional[str] = Field(None, max_length=500)


class ImageIn(BaseModel):
    """Reference to an image already stored by the upload service."""
    url: str = Field(..., max_length=255)
    mime_type: str = Field(..., max_length=50)


class UpdateProfileRequest(BaseModel):
    full_name: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = Field(None, description="http(s) URL")
    profile_picture: Optional[ImageIn] = None
    cover_photo: Optional[ImageIn] = None


class UserSummary(BaseModel):
    id: int
    username: str
    full_name: Optional[str] = None
    profile_picture: Optional[str] = None
    verified: bool = False


class FollowEntry(UserSummary):
    followed_at: datetime


class SearchEntry(UserSummary):
    followers_count: int


class UserProfile(UserSummary):
    email: str
    bio: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    cover_photo: Optional[str] = None
    private_account: bool = False
    followers_count: int
    following_count: int
    posts_count: int
    created_at: datetime
    is_following: bool = Field(..., description="Whether the requesting user follows this user")
    is_own_profile: bool


class FollowPage(BaseModel):
    items: List[FollowEntry]
    has_more: bool
    page: int
    page_size: int


class SearchPage(BaseModel):
    items: List[SearchEntry]
    has_more: bool
    page: int
    page_size: int


class FollowResponse(BaseModel):
    is_following: bool = Field(..., description="Resulting follow state")
    followers_count: int = Field(..., description="Target's follower count after the toggle")
    message: str


router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserProfile, status_code=201)
def register_user_endpoint(payload: RegisterRequest) -> UserProfile:
    """
    Create the account row for a user the auth provider has just signed up.

    Returns 409 if the username or email is already taken.
    """
    with get_session() as db:
        user = register_user(db, payload.username, payload.email, payload.full_name, payload.bio)
        return UserProfile(**get_profile(db, user.username, user.id))


@router.put("/profile", response_model=UserProfile)
def update_profile_endpoint(
    payload: UpdateProfileRequest,
    identity: Identity = Depends(get_current_identity),
) -> UserProfile:
    """Update the requesting user's profile; omitted fields are left unchanged."""

    def image(ref: Optional[ImageIn]) -> Optional[MediaRef]:
        return MediaRef(url=ref.url, mime_type=ref.mime_type) if ref else None

    with get_session() as db:
        user = update_profile(
            db,
            identity,
            full_name=payload.full_name,
            bio=payload.bio,
            location=payload.location,
            website=payload.website,
            profile_picture=image(payload.profile_picture),
            cover_photo=image(payload.cover_photo),
        )
        return UserProfile(**get_profile(db, user.username, identity.user_id))


@router.get("/search/{query}", response_model=SearchPage)
def search_users_endpoint(
    query: str,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> SearchPage:
    """Users whose username or full name contains ``query``, most followed first."""
    with get_session() as db:
        return SearchPage(**search_users(db, query, page, page_size).to_dict())


@router.get("/{username}", response_model=UserProfile)
def get_user_profile(
    username: str,
    identity: Optional[Identity] = Depends(get_optional_identity),
) -> UserProfile:
    viewer_id = identity.user_id if identity else None
    with get_session() as db:
        return UserProfile(**get_profile(db, username, viewer_id))


@router.post("/{username}/follow", response_model=FollowResponse)
def toggle_follow_endpoint(
    username: str,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(get_current_identity),
) -> FollowResponse:
    """
    Follow the user if not yet followed, otherwise unfollow.

    Returns 409 if a concurrent toggle on the same pair won; re-read the
    profile rather than retrying.
    """
    with get_session() as db:
        result = toggle_follow(db, identity, username)
    schedule_push(background_tasks, result.event)
    return FollowResponse(
        is_following=result.following,
        followers_count=result.followers_count,
        message="Followed successfully" if result.following else "Unfollowed successfully",
    )


@router.get("/{username}/followers", response_model=FollowPage)
def get_followers(
    username: str,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> FollowPage:
    with get_session() as db:
        return FollowPage(**list_followers(db, username, page, page_size).to_dict())


@router.get("/{username}/following", response_model=FollowPage)
def get_following(
    username: str,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> FollowPage:
    with get_session() as db:
        return FollowPage(**list_following(db, username, page, page_size).to_dict())
