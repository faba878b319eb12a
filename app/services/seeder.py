from __future__ import annotations
import random
from typing import Sequence
from faker import Faker
from sqlalchemy.orm import Session

from app.auth import Identity
from app.models import Post, User
from app.services.comments import create_comment
from app.services.engagement import toggle_follow, toggle_like
from app.services.posts import create_post
from app.services.users import register_user

SEED = 1337

fake = Faker()

# deterministic pool with some obvious domains
TAG_POOL = [
    "ai", "ml", "datascience", "python", "fastapi", "django", "cloud", "devops", "startup", "news",
    "music", "sports", "gaming", "travel", "food", "fitness", "health", "finance", "crypto", "stocks",
]


def seed_random_generators(seed: int = SEED) -> None:
    """Make seeding reproducible across runs."""
    random.seed(seed)
    Faker.seed(seed)
    fake.seed_instance(seed)
    fake.unique.clear()


def _identity(user: User) -> Identity:
    return Identity(user_id=user.id, username=user.username)


def make_users(db: Session, n_users: int) -> list[User]:
    users = []
    for _ in range(n_users):
        username = fake.unique.user_name()
        users.append(register_user(db, username, f"{username}@{fake.free_email_domain()}", fake.name()))
    return users


def make_follows(db: Session, users: Sequence[User], max_following: int = 20) -> int:
    created = 0
    for u in users:
        others = [o for o in users if o.id != u.id]
        for target in random.sample(others, k=min(len(others), random.randint(0, max_following))):
            toggle_follow(db, _identity(u), target.username)
            created += 1
    return created


def make_posts(db: Session, users: Sequence[User], n_posts: int) -> list[Post]:
    posts: list[Post] = []
    # biased so popular tags appear more
    weights = [5 if t in ("ai", "python", "news", "sports", "travel") else 1 for t in TAG_POOL]
    for _ in range(n_posts):
        u = random.choice(users)
        chosen = list(dict.fromkeys(random.choices(TAG_POOL, weights=weights, k=random.randint(0, 4))))
        content = fake.sentence(nb_words=random.randint(8, 20))
        if chosen:
            content = f"{content} " + " ".join(f"#{t}" for t in chosen)
        post = create_post(db, _identity(u), content=content, location=fake.city())
        post.created_at = fake.date_time_between(start_date="-14d", end_date="now")
        posts.append(post)
    db.flush()
    return posts


def make_comments(db: Session, posts: Sequence[Post], users: Sequence[User], frac_with_threads=0.6):
    """Top-level comments with a few replies on a fraction of posts."""
    for p in posts:
        if random.random() >= frac_with_threads:
            continue
        for _ in range(random.randint(1, 3)):
            root = create_comment(db, _identity(random.choice(users)), p.id, fake.sentence())
            for _ in range(random.randint(0, 3)):
                create_comment(
                    db, _identity(random.choice(users)), p.id, fake.sentence(),
                    parent_comment_id=root.comment["id"],
                )


def make_likes(db: Session, posts: Sequence[Post], users: Sequence[User], max_likes: int = 40):
    for p in posts:
        for u in random.sample(list(users), k=min(len(users), random.randint(0, max_likes))):
            toggle_like(db, _identity(u), p.id)
