# app/services/users.py
"""User accounts and reads over the follow graph."""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.auth import Identity
from app.config import ALLOWED_MEDIA_TYPES
from app.db import contains_pattern
from app.errors import ConflictError, InvalidInputError, NotFoundError
from app.models import Follow, User
from app.services.pagination import Page, page_offset
from app.services.posts import MediaRef

logger = logging.getLogger(__name__)

PUBLIC_FIELDS = ("id", "username", "full_name", "profile_picture", "verified")


def register_user(
    db: Session, username: str, email: str, full_name: Optional[str] = None, bio: Optional[str] = None
) -> User:
    """
    Create an account record.

    Credentials live with the auth provider; this only stores the profile
    that the rest of the system references.
    """
    username = (username or "").strip()
    email = (email or "").strip().lower()
    if not username or len(username) > 50:
        raise InvalidInputError("Username must be 1-50 characters")
    if "@" not in email or len(email) > 100:
        raise InvalidInputError("A valid email address is required")

    user = User(username=username, email=email, full_name=full_name or username, bio=bio)
    db.add(user)
    try:
        db.flush()
    except IntegrityError as exc:
        raise ConflictError("Username or email already registered", details=str(exc.orig)) from exc
    return user


PROFILE_LIMITS = {"full_name": 100, "bio": 500, "location": 100, "website": 255}


def _check_image_ref(field: str, ref: Optional[MediaRef]) -> Optional[str]:
    if ref is None:
        return None
    if ref.mime_type not in ALLOWED_MEDIA_TYPES or not ref.mime_type.startswith("image/"):
        raise InvalidInputError(f"{field} must be an image, got {ref.mime_type}")
    return ref.url


def update_profile(
    db: Session,
    requester: Identity,
    full_name: Optional[str] = None,
    bio: Optional[str] = None,
    location: Optional[str] = None,
    website: Optional[str] = None,
    profile_picture: Optional[MediaRef] = None,
    cover_photo: Optional[MediaRef] = None,
) -> User:
    """
    Update the requester's own profile. Fields left as None keep their value.

    Raises:
        InvalidInputError: a field is too long, the website is not an http(s)
            URL, or an image reference has a non-image type
        NotFoundError: the requester's account row is gone
    """
    changes = {"full_name": full_name, "bio": bio, "location": location, "website": website}
    changes = {field: value.strip() for field, value in changes.items() if value is not None}
    for field, value in changes.items():
        if len(value) > PROFILE_LIMITS[field]:
            raise InvalidInputError(f"{field} exceeds {PROFILE_LIMITS[field]} characters")
    if changes.get("website"):
        parsed = urlparse(changes["website"])
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidInputError("website must be an http(s) URL")

    picture = _check_image_ref("profile_picture", profile_picture)
    cover = _check_image_ref("cover_photo", cover_photo)
    if picture is not None:
        changes["profile_picture"] = picture
    if cover is not None:
        changes["cover_photo"] = cover

    user = db.get(User, requester.user_id)
    if user is None:
        raise NotFoundError(f"User {requester.user_id} not found")
    for field, value in changes.items():
        setattr(user, field, value)
    db.flush()
    logger.info("User %s updated profile fields %s", requester.user_id, sorted(changes))
    return user


def _public(user: User) -> Dict[str, Any]:
    data = {field: getattr(user, field) for field in PUBLIC_FIELDS}
    data["verified"] = bool(data["verified"])
    return data


def get_profile(db: Session, username: str, viewer_id: Optional[int] = None) -> Dict[str, Any]:
    user = db.query(User).filter(User.username == username).first()
    if user is None:
        raise NotFoundError(f"User {username} not found")

    is_following = False
    if viewer_id is not None and viewer_id != user.id:
        is_following = (
            db.query(Follow.id)
            .filter(Follow.follower_id == viewer_id, Follow.following_id == user.id)
            .first()
            is not None
        )

    profile = _public(user)
    profile.update({
        "email": user.email,
        "bio": user.bio,
        "location": user.location,
        "website": user.website,
        "cover_photo": user.cover_photo,
        "private_account": bool(user.private_account),
        "followers_count": user.followers_count,
        "following_count": user.following_count,
        "posts_count": user.posts_count,
        "created_at": user.created_at,
        "is_following": is_following,
        "is_own_profile": viewer_id == user.id,
    })
    return profile


def _follow_list(db: Session, username: str, page: int, page_size: int, followers: bool) -> Page:
    offset = page_offset(page, page_size)
    user_id = db.query(User.id).filter(User.username == username).scalar()
    if user_id is None:
        raise NotFoundError(f"User {username} not found")

    if followers:
        join_on, match = Follow.follower_id == User.id, Follow.following_id == user_id
    else:
        join_on, match = Follow.following_id == User.id, Follow.follower_id == user_id
    rows = (
        db.query(User, Follow.created_at.label("followed_at"))
        .join(Follow, join_on)
        .filter(match)
        .order_by(Follow.created_at.desc(), Follow.id.desc())
        .offset(offset)
        .limit(page_size)
        .all()
    )
    items = []
    for user, followed_at in rows:
        item = _public(user)
        item["followed_at"] = followed_at
        items.append(item)
    return Page(page=page, page_size=page_size, items=items)


def list_followers(db: Session, username: str, page: int = 1, page_size: int = 20) -> Page:
    return _follow_list(db, username, page, page_size, followers=True)


def list_following(db: Session, username: str, page: int = 1, page_size: int = 20) -> Page:
    return _follow_list(db, username, page, page_size, followers=False)


def search_users(db: Session, query: str, page: int = 1, page_size: int = 20) -> Page:
    offset = page_offset(page, page_size)
    pattern = contains_pattern(query)
    users = (
        db.query(User)
        .filter(User.username.ilike(pattern, escape="\\") | User.full_name.ilike(pattern, escape="\\"))
        .order_by(User.followers_count.desc(), User.username.asc())
        .offset(offset)
        .limit(page_size)
        .all()
    )
    items = []
    for user in users:
        item = _public(user)
        item["followers_count"] = user.followers_count
        items.append(item)
    return Page(page=page, page_size=page_size, items=items)
