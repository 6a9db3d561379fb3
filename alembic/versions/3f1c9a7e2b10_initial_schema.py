"""initial_schema

Revision ID: 3f1c9a7e2b10
Revises:
Create Date: 2026-10-19 10:12:41.518204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7e2b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


user_status = sa.Enum('active', 'blocked', name='user_status')
pending_user_status = sa.Enum('pending', 'approved', 'rejected', name='pending_user_status')
lesson_release_type = sa.Enum('immediate', 'scheduled', 'drip', 'prerequisite', name='lesson_release_type')
chat_message_type = sa.Enum('text', 'question', 'answer', 'announcement', name='chat_message_type')
private_room_role = sa.Enum('owner', 'moderator', 'member', name='private_room_role')
subscription_status = sa.Enum('pending', 'active', 'cancelled', 'expired', name='subscription_status')
payment_status = sa.Enum('pending', 'completed', 'failed', name='payment_status')
payment_method = sa.Enum('paypal', name='payment_method')


def _uuid_pk():
    return sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def _user_fk(name, nullable=False, ondelete='CASCADE'):
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey('users.id', ondelete=ondelete),
        nullable=nullable,
    )


def upgrade() -> None:
    """Upgrade schema."""
    # ---------- users & auth ----------
    op.create_table(
        'users',
        _uuid_pk(),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('discord_name', sa.String(100), nullable=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('status', user_status, server_default='active', nullable=False),
        sa.Column('email_verified', sa.Boolean(), nullable=False),
        sa.Column('avatar_color', sa.String(20), nullable=True),
        sa.Column('avatar_image', sa.String(500), nullable=True),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'roles',
        _uuid_pk(),
        sa.Column('name', sa.String(50), nullable=False, unique=True),
        sa.Column('description', sa.String(255), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'user_roles',
        _uuid_pk(),
        _user_fk('user_id'),
        sa.Column('role_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('roles.id', ondelete='CASCADE'), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'role_id', name='uq_user_role_user_role'),
    )

    op.create_table(
        'sessions',
        _uuid_pk(),
        _user_fk('user_id'),
        sa.Column('refresh_token', sa.String(512), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_sessions_user_id', 'sessions', ['user_id'])
    op.create_index('ix_sessions_refresh_token', 'sessions', ['refresh_token'], unique=True)

    # ---------- invites ----------
    op.create_table(
        'invite_links',
        _uuid_pk(),
        sa.Column('code', sa.String(64), nullable=False),
        _user_fk('created_by', nullable=True, ondelete='SET NULL'),
        sa.Column('max_uses', sa.Integer(), nullable=True),
        sa.Column('used_count', sa.Integer(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('description', sa.String(255), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_invite_links_code', 'invite_links', ['code'], unique=True)

    op.create_table(
        'invite_registrations',
        _uuid_pk(),
        sa.Column('invite_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('invite_links.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('registered_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_invite_registrations_invite_id', 'invite_registrations', ['invite_id'])

    op.create_table(
        'pending_users',
        _uuid_pk(),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('discord_name', sa.String(100), nullable=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('approval_token', sa.String(255), nullable=False),
        sa.Column('status', pending_user_status, server_default='pending', nullable=False),
        sa.Column('invite_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('invite_links.id', ondelete='SET NULL'), nullable=True),
        sa.Column('requested_at', sa.DateTime(), nullable=False),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        _user_fk('approved_by', nullable=True, ondelete='SET NULL'),
        sa.Column('rejected_at', sa.DateTime(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_pending_users_email', 'pending_users', ['email'])
    op.create_index('ix_pending_users_approval_token', 'pending_users', ['approval_token'], unique=True)
    op.create_index('ix_pending_users_status', 'pending_users', ['status'])

    # ---------- courses ----------
    op.create_table(
        'courses',
        _uuid_pk(),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('thumbnail', sa.String(500), nullable=True),
        sa.Column('slug', sa.String(255), nullable=False),
        sa.Column('is_published', sa.Boolean(), nullable=False),
        sa.Column('price', sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_courses_slug', 'courses', ['slug'], unique=True)

    op.create_table(
        'lessons',
        _uuid_pk(),
        sa.Column('course_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('courses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('video_url', sa.String(500), nullable=True),
        sa.Column('thumbnail', sa.String(500), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('order_index', sa.Integer(), nullable=False),
        sa.Column('release_type', lesson_release_type, server_default='immediate', nullable=False),
        sa.Column('release_days', sa.Integer(), nullable=True),
        sa.Column('release_date', sa.DateTime(), nullable=True),
        sa.Column('prerequisite_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('lessons.id', ondelete='SET NULL'), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_lessons_course_id', 'lessons', ['course_id'])

    op.create_table(
        'enrollments',
        _uuid_pk(),
        _user_fk('user_id'),
        sa.Column('course_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('courses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('enrolled_at', sa.DateTime(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'course_id', name='uq_enrollments_user_course'),
    )
    op.create_index('ix_enrollments_user_id', 'enrollments', ['user_id'])
    op.create_index('ix_enrollments_course_id', 'enrollments', ['course_id'])

    op.create_table(
        'progress',
        _uuid_pk(),
        _user_fk('user_id'),
        sa.Column('lesson_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('lessons.id', ondelete='CASCADE'), nullable=False),
        sa.Column('watched_seconds', sa.Integer(), nullable=False),
        sa.Column('completed', sa.Boolean(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('last_watched_at', sa.DateTime(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'lesson_id', name='uq_progress_user_lesson'),
    )
    op.create_index('ix_progress_user_id', 'progress', ['user_id'])
    op.create_index('ix_progress_lesson_id', 'progress', ['lesson_id'])

    op.create_table(
        'user_lesson_access',
        _uuid_pk(),
        _user_fk('user_id'),
        sa.Column('lesson_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('lessons.id', ondelete='CASCADE'), nullable=False),
        _user_fk('granted_by', nullable=True, ondelete='SET NULL'),
        sa.Column('reason', sa.String(500), nullable=True),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'lesson_id', name='uq_user_lesson_access_user_lesson'),
    )
    op.create_index('ix_user_lesson_access_user_id', 'user_lesson_access', ['user_id'])
    op.create_index('ix_user_lesson_access_lesson_id', 'user_lesson_access', ['lesson_id'])

    # ---------- private rooms & chat ----------
    op.create_table(
        'private_rooms',
        _uuid_pk(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('slug', sa.String(255), nullable=False),
        sa.Column('access_key_hash', sa.String(255), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=False),
        sa.Column('max_members', sa.Integer(), nullable=False),
        sa.Column('allow_invites', sa.Boolean(), nullable=False),
        sa.Column('require_approval', sa.Boolean(), nullable=False),
        _user_fk('created_by'),
        *_timestamps(),
    )
    op.create_index('ix_private_rooms_slug', 'private_rooms', ['slug'], unique=True)
    op.create_index('ix_private_rooms_created_by', 'private_rooms', ['created_by'])

    op.create_table(
        'private_room_members',
        _uuid_pk(),
        sa.Column('room_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('private_rooms.id', ondelete='CASCADE'), nullable=False),
        _user_fk('user_id'),
        sa.Column('role', private_room_role, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_banned', sa.Boolean(), nullable=False),
        _user_fk('invited_by', nullable=True, ondelete='SET NULL'),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('room_id', 'user_id', name='uq_private_room_members_room_user'),
    )
    op.create_index('ix_private_room_members_room_id', 'private_room_members', ['room_id'])
    op.create_index('ix_private_room_members_user_id', 'private_room_members', ['user_id'])

    op.create_table(
        'chat_messages',
        _uuid_pk(),
        _user_fk('user_id'),
        sa.Column('lesson_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('lessons.id', ondelete='CASCADE'), nullable=True),
        sa.Column('course_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('courses.id', ondelete='CASCADE'), nullable=True),
        sa.Column('private_room_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('private_rooms.id', ondelete='CASCADE'), nullable=True),
        sa.Column('dm_room_id', sa.String(100), nullable=True),
        sa.Column('channel_id', sa.String(100), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('type', chat_message_type, nullable=False),
        sa.Column('is_edited', sa.Boolean(), nullable=False),
        sa.Column('edited_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    for column in ('user_id', 'lesson_id', 'course_id', 'private_room_id', 'dm_room_id', 'channel_id', 'created_at'):
        op.create_index(f'ix_chat_messages_{column}', 'chat_messages', [column])

    op.create_table(
        'message_reads',
        _uuid_pk(),
        _user_fk('user_id'),
        sa.Column('message_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('chat_messages.id', ondelete='CASCADE'), nullable=False),
        sa.Column('read_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('user_id', 'message_id', name='uq_message_reads_user_message'),
    )
    op.create_index('ix_message_reads_user_id', 'message_reads', ['user_id'])
    op.create_index('ix_message_reads_message_id', 'message_reads', ['message_id'])

    # ---------- subscriptions ----------
    op.create_table(
        'subscription_plans',
        _uuid_pk(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('duration_days', sa.Integer(), nullable=False),
        sa.Column('features', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('paypal_plan_id', sa.String(100), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'subscriptions',
        _uuid_pk(),
        _user_fk('user_id'),
        sa.Column('plan_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('subscription_plans.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('status', subscription_status, nullable=False),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime(), nullable=False),
        sa.Column('auto_renew', sa.Boolean(), nullable=False),
        sa.Column('paypal_subscription_id', sa.String(100), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_subscriptions_user_id', 'subscriptions', ['user_id'])
    op.create_index('ix_subscriptions_plan_id', 'subscriptions', ['plan_id'])
    op.create_index('ix_subscriptions_status', 'subscriptions', ['status'])

    op.create_table(
        'payments',
        _uuid_pk(),
        sa.Column('subscription_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('subscriptions.id', ondelete='CASCADE'), nullable=False),
        _user_fk('user_id'),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('status', payment_status, nullable=False),
        sa.Column('method', payment_method, nullable=False),
        sa.Column('paypal_transaction_id', sa.String(100), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_payments_subscription_id', 'payments', ['subscription_id'])
    op.create_index('ix_payments_user_id', 'payments', ['user_id'])


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        'payments',
        'subscriptions',
        'subscription_plans',
        'message_reads',
        'chat_messages',
        'private_room_members',
        'private_rooms',
        'user_lesson_access',
        'progress',
        'enrollments',
        'lessons',
        'courses',
        'pending_users',
        'invite_registrations',
        'invite_links',
        'sessions',
        'user_roles',
        'roles',
        'users',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum in (
        payment_method,
        payment_status,
        subscription_status,
        private_room_role,
        chat_message_type,
        lesson_release_type,
        pending_user_status,
        user_status,
    ):
        enum.drop(bind, checkfirst=True)
