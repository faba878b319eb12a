"""Tests for the counter consistency layer and the counter audit."""

from unittest.mock import MagicMock

import pytest
from conftest import identity_of

from app.db import get_session
from app.errors import ConflictError
from app.models import Comment, Like, Post, PostHashtag, User
from app.services.counters import RelationOp, apply_relation_change
from app.services.posts import create_post
from app.services.reports import get_counter_drift, repair_counters
from app.services.users import register_user


def _post(db, author, content="hello"):
    return create_post(db, author, content=content)


class TestRelationChanges:

    def test_like_and_unlike_move_counter(self, db, alice, bob):
        post = _post(db, alice)

        apply_relation_change(db, RelationOp.like, user_id=bob.user_id, post_id=post.id)
        assert db.get(Post, post.id).likes_count == 1

        apply_relation_change(db, RelationOp.unlike, user_id=bob.user_id, post_id=post.id)
        assert db.get(Post, post.id).likes_count == 0

    def test_duplicate_like_is_conflict_without_counter_change(self):
        with get_session() as session:
            author = identity_of(register_user(session, "dora", "dora@example.com"))
            fan = register_user(session, "eve", "eve@example.com")
            post_id = _post(session, author).id
            apply_relation_change(session, RelationOp.like, user_id=fan.id, post_id=post_id)

        with pytest.raises(ConflictError):
            with get_session() as session:
                apply_relation_change(session, RelationOp.like, user_id=fan.id, post_id=post_id)

        with get_session() as session:
            assert session.get(Post, post_id).likes_count == 1

    def test_unlike_without_like_is_conflict(self, db, alice, bob):
        post = _post(db, alice)
        with pytest.raises(ConflictError):
            apply_relation_change(db, RelationOp.unlike, user_id=bob.user_id, post_id=post.id)
        assert db.get(Post, post.id).likes_count == 0

    def test_follow_updates_both_sides(self, db, alice, bob):
        apply_relation_change(db, RelationOp.follow, follower_id=alice.user_id, following_id=bob.user_id)

        assert db.get(User, alice.user_id).following_count == 1
        assert db.get(User, bob.user_id).followers_count == 1

        apply_relation_change(db, RelationOp.unfollow, follower_id=alice.user_id, following_id=bob.user_id)

        assert db.get(User, alice.user_id).following_count == 0
        assert db.get(User, bob.user_id).followers_count == 0

    def test_post_add_and_remove_track_posts_count(self, db, alice, bob):
        post = _post(db, alice, "with #tag")
        apply_relation_change(db, RelationOp.like, user_id=bob.user_id, post_id=post.id)
        apply_relation_change(db, RelationOp.comment_add, user_id=bob.user_id, post_id=post.id, content="hi")
        assert db.get(User, alice.user_id).posts_count == 1

        apply_relation_change(db, RelationOp.post_remove, post_id=post.id, user_id=alice.user_id)

        assert db.get(User, alice.user_id).posts_count == 0
        assert db.query(Post).count() == 0
        assert db.query(Comment).count() == 0
        assert db.query(Like).count() == 0
        assert db.query(PostHashtag).count() == 0

    def test_comment_remove_counts_whole_subtree(self, db, alice, bob):
        post = _post(db, alice)
        root = apply_relation_change(
            db, RelationOp.comment_add, user_id=bob.user_id, post_id=post.id, content="root"
        )
        reply = apply_relation_change(
            db, RelationOp.comment_add, user_id=alice.user_id, post_id=post.id,
            content="reply", parent_comment_id=root.id,
        )
        apply_relation_change(
            db, RelationOp.comment_add, user_id=bob.user_id, post_id=post.id,
            content="nested", parent_comment_id=reply.id,
        )
        apply_relation_change(db, RelationOp.comment_add, user_id=bob.user_id, post_id=post.id, content="other")
        assert db.get(Post, post.id).comments_count == 4

        removed = apply_relation_change(db, RelationOp.comment_remove, comment_id=root.id, post_id=post.id)

        assert removed == 3
        assert db.get(Post, post.id).comments_count == 1
        assert db.query(Comment).filter(Comment.post_id == post.id).count() == 1

    def test_comment_remove_twice_is_conflict(self, db, alice, bob):
        post = _post(db, alice)
        comment = apply_relation_change(
            db, RelationOp.comment_add, user_id=bob.user_id, post_id=post.id, content="once"
        )
        apply_relation_change(db, RelationOp.comment_remove, comment_id=comment.id, post_id=post.id)

        with pytest.raises(ConflictError):
            apply_relation_change(db, RelationOp.comment_remove, comment_id=comment.id, post_id=post.id)
        assert db.get(Post, post.id).comments_count == 0

    def test_comment_subtree_is_locked_while_read(self):
        mock_db = MagicMock()
        locked = mock_db.query.return_value.filter.return_value.with_for_update
        locked.return_value.scalar.return_value = 5
        locked.return_value.all.return_value = []
        mock_db.execute.return_value.rowcount = 1

        removed = apply_relation_change(mock_db, RelationOp.comment_remove, comment_id=5, post_id=1)

        assert removed == 1
        assert locked.call_count == 2

    def test_unknown_operation_rejected(self, db):
        with pytest.raises(ValueError):
            apply_relation_change(db, "retweet", user_id=1, post_id=1)


class TestCounterAudit:

    def test_consistent_data_reports_no_drift(self, db, alice, bob):
        post = _post(db, alice)
        apply_relation_change(db, RelationOp.like, user_id=bob.user_id, post_id=post.id)
        apply_relation_change(db, RelationOp.follow, follower_id=bob.user_id, following_id=alice.user_id)

        assert get_counter_drift(db) == []

    def test_drift_detected_and_repaired(self, db, alice, bob):
        post = _post(db, alice)
        apply_relation_change(db, RelationOp.like, user_id=bob.user_id, post_id=post.id)
        db.query(Post).filter(Post.id == post.id).update({"likes_count": 7})
        db.flush()

        drift = get_counter_drift(db)
        assert drift == [{
            "table": "posts",
            "column": "likes_count",
            "row_id": post.id,
            "stored": 7,
            "actual": 1,
        }]

        assert repair_counters(db) == 1
        assert get_counter_drift(db) == []
