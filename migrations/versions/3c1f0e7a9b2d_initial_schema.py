"""initial schema

Revision ID: 3c1f0e7a9b2d
Revises:
Create Date: 2026-10-18 10:12:41.208315

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1f0e7a9b2d'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

notification_kind = sa.Enum('like', 'comment', 'follow', name='notification_kind')


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=100), nullable=False),
        sa.Column('full_name', sa.String(length=100), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('profile_picture', sa.String(length=255), nullable=True),
        sa.Column('cover_photo', sa.String(length=255), nullable=True),
        sa.Column('location', sa.String(length=100), nullable=True),
        sa.Column('website', sa.String(length=255), nullable=True),
        sa.Column('verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('private_account', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('followers_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('following_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('posts_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('email'),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    op.create_table(
        'posts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('media_url', sa.String(length=255), nullable=True),
        sa.Column('media_type', sa.String(length=50), nullable=True),
        sa.Column('tags', sa.Text(), nullable=True),
        sa.Column('location', sa.String(length=100), nullable=True),
        sa.Column('likes_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('comments_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('shares_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('content IS NOT NULL OR media_url IS NOT NULL', name='ck_post_has_body'),
    )
    op.create_index('ix_posts_user_id', 'posts', ['user_id'])
    op.create_index('idx_posts_created', 'posts', [sa.text('created_at DESC')])
    op.create_index('idx_posts_user_created', 'posts', ['user_id', 'created_at'])

    op.create_table(
        'likes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('post_id', sa.Integer(), sa.ForeignKey('posts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('user_id', 'post_id', name='uq_likes_user_post'),
    )
    op.create_index('ix_likes_post_id', 'likes', ['post_id'])

    op.create_table(
        'comments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('post_id', sa.Integer(), sa.ForeignKey('posts.id', ondelete='CASCADE'), nullable=False),
        sa.Column(
            'parent_comment_id', sa.Integer(), sa.ForeignKey('comments.id', ondelete='CASCADE'), nullable=True
        ),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_comments_user_id', 'comments', ['user_id'])
    op.create_index('ix_comments_post_id', 'comments', ['post_id'])
    op.create_index('idx_comments_parent', 'comments', ['parent_comment_id'])

    op.create_table(
        'follows',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('follower_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('following_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('follower_id', 'following_id', name='uq_follows_pair'),
        sa.CheckConstraint('follower_id <> following_id', name='ck_follows_no_self'),
    )
    op.create_index('ix_follows_follower_id', 'follows', ['follower_id'])
    op.create_index('ix_follows_following_id', 'follows', ['following_id'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', notification_kind, nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column(
            'related_user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=True
        ),
        sa.Column(
            'related_post_id', sa.Integer(), sa.ForeignKey('posts.id', ondelete='CASCADE'), nullable=True
        ),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('idx_notifications_user', 'notifications', ['user_id', 'is_read'])

    op.create_table(
        'hashtags',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tag', sa.String(length=100), nullable=False),
        sa.Column('usage_count', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('tag'),
    )

    op.create_table(
        'post_hashtags',
        sa.Column('post_id', sa.Integer(), sa.ForeignKey('posts.id', ondelete='CASCADE'), primary_key=True),
        sa.Column(
            'hashtag_id', sa.Integer(), sa.ForeignKey('hashtags.id', ondelete='CASCADE'), primary_key=True
        ),
    )
    op.create_index('idx_posthashtags_tag_post', 'post_hashtags', ['hashtag_id', 'post_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('post_hashtags')
    op.drop_table('hashtags')
    op.drop_table('notifications')
    op.drop_table('follows')
    op.drop_table('comments')
    op.drop_table('likes')
    op.drop_table('posts')
    op.drop_table('users')
    notification_kind.drop(op.get_bind(), checkfirst=True)
