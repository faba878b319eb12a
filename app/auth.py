"""
Identity resolution.

Credentials and tokens are handled upstream; by the time a request reaches
this service the gateway has put the authenticated user id in a header
(``AUTH_USER_HEADER``). This module turns that header into an ``Identity``.
"""

from dataclasses import dataclass
from typing import Mapping, Optional

from fastapi import Request

from app.config import AUTH_USER_HEADER
from app.db import get_session
from app.errors import AuthenticationError
from app.models import User


@dataclass(frozen=True)
class Identity:
    user_id: int
    username: str


def resolve_identity(headers: Mapping[str, str]) -> Optional[Identity]:
    """Return the identity carried by ``headers``, or None if there is none.

    Raises:
        AuthenticationError: the header is present but malformed or names an
            unknown user
    """
    raw = headers.get(AUTH_USER_HEADER)
    if raw is None or not raw.strip():
        return None
    try:
        user_id = int(raw)
    except ValueError:
        raise AuthenticationError("Invalid identity header")

    with get_session() as db:
        row = db.query(User.id, User.username).filter(User.id == user_id).first()
    if row is None:
        raise AuthenticationError("Unknown user")
    return Identity(user_id=row.id, username=row.username)


def get_current_identity(request: Request) -> Identity:
    """FastAPI dependency for endpoints that require an authenticated user."""
    identity = resolve_identity(request.headers)
    if identity is None:
        raise AuthenticationError("Authentication required")
    return identity


def get_optional_identity(request: Request) -> Optional[Identity]:
    """FastAPI dependency for endpoints that personalise output when possible."""
    try:
        return resolve_identity(request.headers)
    except AuthenticationError:
        return None
