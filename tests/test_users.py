"""Tests for account rows, profile updates and user search."""

import pytest

from app.errors import ConflictError, InvalidInputError
from app.models import User
from app.services.posts import MediaRef
from app.services.users import get_profile, register_user, search_users, update_profile


class TestRegisterUser:

    def test_full_name_defaults_to_username(self, db):
        user = register_user(db, "dora", "Dora@Example.com")

        assert user.full_name == "dora"
        assert user.email == "dora@example.com"

    def test_duplicate_username_is_conflict(self, db, alice):
        with pytest.raises(ConflictError):
            register_user(db, "alice", "other@example.com")

    def test_invalid_email(self, db):
        with pytest.raises(InvalidInputError):
            register_user(db, "dora", "not-an-email")


class TestUpdateProfile:

    def test_updates_given_fields_only(self, db, alice):
        update_profile(db, alice, bio="Down the rabbit hole", location="Oxford", website="https://alice.example")

        profile = get_profile(db, "alice", alice.user_id)
        assert profile["bio"] == "Down the rabbit hole"
        assert profile["location"] == "Oxford"
        assert profile["website"] == "https://alice.example"
        assert profile["full_name"] == "Alice Liddell"

    def test_images_stored_as_references(self, db, alice):
        update_profile(
            db,
            alice,
            profile_picture=MediaRef(url="/uploads/me.png", mime_type="image/png"),
            cover_photo=MediaRef(url="/uploads/cover.jpg", mime_type="image/jpeg"),
        )

        user = db.get(User, alice.user_id)
        assert user.profile_picture == "/uploads/me.png"
        assert user.cover_photo == "/uploads/cover.jpg"

    @pytest.mark.parametrize("field, value", [
        ("full_name", "x" * 101),
        ("bio", "x" * 501),
        ("location", "x" * 101),
        ("website", "not a url"),
        ("website", "ftp://files.example"),
    ])
    def test_rejects_invalid_fields(self, db, alice, field, value):
        with pytest.raises(InvalidInputError):
            update_profile(db, alice, **{field: value})
        assert getattr(db.get(User, alice.user_id), field) != value

    def test_rejects_video_as_profile_picture(self, db, alice):
        with pytest.raises(InvalidInputError):
            update_profile(db, alice, profile_picture=MediaRef(url="/uploads/a.mp4", mime_type="video/mp4"))


class TestSearchUsers:

    def test_wildcards_match_literally(self, db, alice, bob):
        register_user(db, "snake_eyes", "snake@example.com")

        assert [u["username"] for u in search_users(db, "_").items] == ["snake_eyes"]
        assert search_users(db, "%").items == []
