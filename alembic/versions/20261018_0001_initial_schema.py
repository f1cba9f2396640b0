"""Initial schema - Minjok Journal

Revision ID: 0001
Revises: 
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Profiles table
    op.create_table(
        'profiles',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('intro', sa.Text(), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='mentee'),
        sa.Column('admin_type', sa.String(20), nullable=False, server_default='user'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    # Refresh tokens table
    op.create_table(
        'refresh_tokens',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('profile_id', sa.Uuid(), nullable=False, index=True),
        sa.Column('token_hash', sa.String(255), unique=True, nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('revoked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Articles table; the current-version FK is added once article_versions exists
    op.create_table(
        'articles',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('author_id', sa.Uuid(), sa.ForeignKey('profiles.id'), nullable=False, index=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='draft', index=True),
        sa.Column('current_version_id', sa.Uuid(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'article_versions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('article_id', sa.Uuid(), sa.ForeignKey('articles.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('version_number', sa.Integer(), nullable=False),
        sa.Column('storage_path', sa.String(1024), nullable=False),
        sa.Column('file_name', sa.String(500), nullable=False),
        sa.Column('file_size', sa.BigInteger(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('uploaded_by', sa.Uuid(), sa.ForeignKey('profiles.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('article_id', 'version_number', name='uq_article_versions_number'),
    )
    op.create_index('ix_article_versions_article_created', 'article_versions', ['article_id', 'created_at'])

    op.create_foreign_key(
        'fk_articles_current_version',
        'articles',
        'article_versions',
        ['current_version_id'],
        ['id'],
        ondelete='SET NULL',
    )

    op.create_table(
        'article_authors',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('article_id', sa.Uuid(), sa.ForeignKey('articles.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('profile_id', sa.Uuid(), sa.ForeignKey('profiles.id'), nullable=False, index=True),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_corresponding', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint('article_id', 'profile_id', name='uq_article_authors_profile'),
    )

    # Community tables
    op.create_table(
        'board_posts',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('author_id', sa.Uuid(), sa.ForeignKey('profiles.id'), nullable=False, index=True),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'qna_questions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('author_id', sa.Uuid(), sa.ForeignKey('profiles.id'), nullable=False, index=True),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'qna_replies',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('question_id', sa.Uuid(), sa.ForeignKey('qna_questions.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('author_id', sa.Uuid(), sa.ForeignKey('profiles.id'), nullable=False, index=True),
        sa.Column('content', sa.Text(), nullable=False),
        *_timestamps(),
    )

    # Comments: either a paper version or a board post
    op.create_table(
        'comments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('article_id', sa.Uuid(), sa.ForeignKey('articles.id', ondelete='CASCADE'), nullable=True, index=True),
        sa.Column('version_id', sa.Uuid(), sa.ForeignKey('article_versions.id', ondelete='CASCADE'), nullable=True, index=True),
        sa.Column('board_post_id', sa.Uuid(), sa.ForeignKey('board_posts.id', ondelete='CASCADE'), nullable=True, index=True),
        sa.Column('author_id', sa.Uuid(), sa.ForeignKey('profiles.id'), nullable=False, index=True),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('parent_id', sa.Uuid(), sa.ForeignKey('comments.id', ondelete='CASCADE'), nullable=True, index=True),
        *_timestamps(),
        sa.CheckConstraint(
            "(article_id IS NOT NULL AND version_id IS NOT NULL AND board_post_id IS NULL)"
            " OR (article_id IS NULL AND version_id IS NULL AND board_post_id IS NOT NULL)",
            name='ck_comments_single_target',
        ),
    )

    # Catalog tables
    for bundle in ('issues', 'volumes'):
        op.create_table(
            bundle,
            sa.Column('id', sa.Uuid(), primary_key=True),
            sa.Column('title', sa.String(500), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('status', sa.String(20), nullable=False, server_default='draft', index=True),
            sa.Column('release_date', sa.DateTime(timezone=True), nullable=True),
            sa.Column('cover_path', sa.String(1024), nullable=True),
            sa.Column('cover_url', sa.String(2048), nullable=True),
            sa.Column('created_by', sa.Uuid(), sa.ForeignKey('profiles.id'), nullable=True),
            *_timestamps(),
        )

    op.create_table(
        'issue_articles',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('issue_id', sa.Uuid(), sa.ForeignKey('issues.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('article_id', sa.Uuid(), sa.ForeignKey('articles.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
    )

    op.create_table(
        'volume_issues',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('volume_id', sa.Uuid(), sa.ForeignKey('volumes.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('issue_id', sa.Uuid(), sa.ForeignKey('issues.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
    )

    # Event log (append-only)
    op.create_table(
        'event_logs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('event_type', sa.String(100), nullable=False, index=True),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False, index=True),
        sa.Column('profile_id', sa.Uuid(), nullable=True, index=True),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True),
    )
    op.create_index('ix_event_logs_entity', 'event_logs', ['entity_type', 'entity_id'])
    op.create_index('ix_event_logs_profile_time', 'event_logs', ['profile_id', 'created_at'])


def downgrade() -> None:
    op.drop_table('event_logs')
    op.drop_table('volume_issues')
    op.drop_table('issue_articles')
    op.drop_table('volumes')
    op.drop_table('issues')
    op.drop_table('comments')
    op.drop_table('qna_replies')
    op.drop_table('qna_questions')
    op.drop_table('board_posts')
    op.drop_table('article_authors')
    op.drop_constraint('fk_articles_current_version', 'articles', type_='foreignkey')
    op.drop_table('article_versions')
    op.drop_table('articles')
    op.drop_table('refresh_tokens')
    op.drop_table('profiles')
