"""Test deterministic seeding and that seeded data keeps counters consistent."""

import random

from faker import Faker

from app.models import Comment, Follow, Like, Post, User
from app.services import seeder
from app.services.reports import get_counter_drift
from app.services.seeder import seed_random_generators


def _seed_small(db):
    seed_random_generators()
    users = seeder.make_users(db, 8)
    seeder.make_follows(db, users, max_following=3)
    posts = seeder.make_posts(db, users, 15)
    seeder.make_comments(db, posts, users, frac_with_threads=0.6)
    seeder.make_likes(db, posts, users, max_likes=4)
    return users, posts


class TestDeterministicSeeding:
    """Test that seeding produces deterministic results."""

    def test_seed_random_generators_function(self):
        """Test that our seed_random_generators function resets both generators."""
        seed_random_generators()
        random_values1 = [random.randint(1, 100) for _ in range(5)]
        fake_names1 = [seeder.fake.user_name() for _ in range(3)]

        seed_random_generators()
        random_values2 = [random.randint(1, 100) for _ in range(5)]
        fake_names2 = [seeder.fake.user_name() for _ in range(3)]

        assert random_values1 == random_values2
        assert fake_names1 == fake_names2

    def test_faker_seed_deterministic(self):
        """Test that Faker.seed_instance produces deterministic results."""
        fake1 = Faker()
        fake1.seed_instance(seeder.SEED)
        fake2 = Faker()
        fake2.seed_instance(seeder.SEED)

        assert [fake1.user_name() for _ in range(5)] == [fake2.user_name() for _ in range(5)]

    def test_seeded_usernames_repeat(self, db):
        users, _ = _seed_small(db)
        first_names = [u.username for u in users]
        db.rollback()

        users, _ = _seed_small(db)

        assert [u.username for u in users] == first_names


class TestSeededData:

    def test_counters_match_relations(self, db):
        _, posts = _seed_small(db)

        assert db.query(User).count() == 8
        assert db.query(Post).count() == len(posts) == 15
        assert get_counter_drift(db) == []

    def test_totals_line_up(self, db):
        _seed_small(db)

        assert sum(u.followers_count for u in db.query(User)) == db.query(Follow).count()
        assert sum(p.likes_count for p in db.query(Post)) == db.query(Like).count()
        assert sum(p.comments_count for p in db.query(Post)) == db.query(Comment).count()

    def test_posts_backdated_within_two_weeks(self, db):
        from datetime import datetime, timedelta

        _, posts = _seed_small(db)
        cutoff = datetime.utcnow() - timedelta(days=15)

        assert all(p.created_at > cutoff for p in posts)
