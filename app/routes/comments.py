# app/routes/comments.py
"""FastAPI routes for comments and threaded replies."""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query
from pydantic import BaseModel, Field

from app.auth import Identity, get_current_identity
from app.config import MAX_COMMENT_LENGTH
from app.db import get_session
from app.services.comments import create_comment, delete_comment, list_post_comments, list_replies
from app.services.realtime import schedule_push


class CreateCommentRequest(BaseModel):
    post_id: int = Field(..., ge=1, description="Post being commented on")
    content: str = Field(..., min_length=1, max_length=MAX_COMMENT_LENGTH)
    parent_comment_id: Optional[int] = Field(None, ge=1, description="Comment being replied to")


class CommentOut(BaseModel):
    id: int
    post_id: int
    user_id: int
    parent_comment_id: Optional[int] = None
    content: str
    username: str
    full_name: Optional[str] = None
    profile_picture: Optional[str] = None
    verified: bool = False
    created_at: datetime


class CommentWithReplies(CommentOut):
    replies: List[CommentOut] = Field(default_factory=list, description="Earliest replies")
    replies_count: int = Field(0, description="Total number of direct replies")


class CreateCommentResponse(BaseModel):
    comment: CommentOut
    comments_count: int


class CommentPage(BaseModel):
    items: List[CommentWithReplies]
    has_more: bool
    page: int
    page_size: int


class ReplyPage(BaseModel):
    items: List[CommentOut]
    has_more: bool
    page: int
    page_size: int


class DeleteCommentResponse(BaseModel):
    message: str
    removed: int = Field(..., description="Comments removed, including replies")


router = APIRouter(prefix="/comments", tags=["comments"])


@router.post("", response_model=CreateCommentResponse, status_code=201)
def create_comment_endpoint(
    payload: CreateCommentRequest,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(get_current_identity),
) -> CreateCommentResponse:
    """
    Comment on a post, or reply to a comment on the same post.

    The post owner is notified unless they wrote the comment.
    """
    with get_session() as db:
        result = create_comment(db, identity, payload.post_id, payload.content, payload.parent_comment_id)
    schedule_push(background_tasks, result.event)
    return CreateCommentResponse(comment=CommentOut(**result.comment), comments_count=result.comments_count)


@router.get("/post/{post_id}", response_model=CommentPage)
def get_post_comments(
    post_id: int = Path(..., description="ID of the post", ge=1),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> CommentPage:
    """Top-level comments, newest first, each with a preview of its replies."""
    with get_session() as db:
        return CommentPage(**list_post_comments(db, post_id, page, page_size).to_dict())


@router.get("/{comment_id}/replies", response_model=ReplyPage)
def get_comment_replies(
    comment_id: int = Path(..., description="ID of the parent comment", ge=1),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
) -> ReplyPage:
    """Replies to a comment, oldest first."""
    with get_session() as db:
        return ReplyPage(**list_replies(db, comment_id, page, page_size).to_dict())


@router.delete("/{comment_id}", response_model=DeleteCommentResponse)
def delete_comment_endpoint(
    comment_id: int = Path(..., ge=1),
    identity: Identity = Depends(get_current_identity),
) -> DeleteCommentResponse:
    with get_session() as db:
        removed = delete_comment(db, identity, comment_id)
    return DeleteCommentResponse(message="Comment deleted successfully", removed=removed)
