"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Detect database type
    bind = op.get_bind()
    is_sqlite = bind.dialect.name == 'sqlite'

    json_type = sa.JSON() if is_sqlite else postgresql.JSONB(astext_type=sa.Text())
    timestamp_default = sa.text("(datetime('now'))") if is_sqlite else sa.text('now()')
    true_default = '1' if is_sqlite else 'true'
    false_default = '0' if is_sqlite else 'false'

    # Users
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=50), nullable=False),
        sa.Column('username', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='user'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=true_default),
        sa.Column('google_id', sa.String(length=255), nullable=True),
        sa.Column('import_source', sa.String(length=20), nullable=False, server_default='manual'),
        sa.Column('import_date', sa.DateTime(), nullable=True),
        sa.Column('first_name', sa.String(length=100), nullable=False, server_default=''),
        sa.Column('last_name', sa.String(length=100), nullable=False, server_default=''),
        sa.Column('phone', sa.String(length=30), nullable=False, server_default=''),
        sa.Column('phone2', sa.String(length=30), nullable=False, server_default=''),
        sa.Column('birthday', sa.DateTime(), nullable=True),
        sa.Column('discord_id', sa.String(length=100), nullable=False, server_default=''),
        sa.Column('tradingview_id', sa.String(length=100), nullable=False, server_default=''),
        sa.Column('trading_segment', sa.String(length=100), nullable=False, server_default=''),
        sa.Column('badge', sa.String(length=50), nullable=False, server_default='Beginner'),
        sa.Column('address', json_type, nullable=True),
        sa.Column('address2', json_type, nullable=True),
        sa.Column('address3', json_type, nullable=True),
        sa.Column('labels', json_type, nullable=False, server_default='[]'),
        sa.Column('email_subscriber_status', sa.String(length=50), nullable=False, server_default=''),
        sa.Column('sms_subscriber_status', sa.String(length=50), nullable=False, server_default=''),
        sa.Column('source', sa.String(length=100), nullable=False, server_default=''),
        sa.Column('language', sa.String(length=50), nullable=False, server_default=''),
        sa.Column('last_activity', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('last_activity_date', sa.DateTime(), nullable=True),
        sa.Column('created_at_utc', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
        sa.UniqueConstraint('username'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('google_id')
    )
    op.create_index('ix_users_user_id', 'users', ['user_id'])
    op.create_index('ix_users_username', 'users', ['username'])
    op.create_index('ix_users_email', 'users', ['email'])

    # Admin users
    op.create_table(
        'admin_users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('admin_id', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=true_default),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True, server_default=timestamp_default),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('admin_id'),
        sa.UniqueConstraint('email')
    )
    op.create_index('ix_admin_users_admin_id', 'admin_users', ['admin_id'])
    op.create_index('ix_admin_users_email', 'admin_users', ['email'])

    # Courses
    op.create_table(
        'courses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('course_id', sa.String(length=50), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('category', sa.String(length=100), nullable=False, server_default=''),
        sa.Column('level', sa.String(length=50), nullable=False, server_default='Beginner'),
        sa.Column('instructor', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('thumbnail', sa.String(length=1024), nullable=True),
        sa.Column('price', sa.Float(), nullable=False, server_default='0'),
        sa.Column('discounted_price', sa.Float(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('students_enrolled', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('course_id'),
        sa.UniqueConstraint('slug')
    )
    op.create_index('ix_courses_course_id', 'courses', ['course_id'])
    op.create_index('ix_courses_slug', 'courses', ['slug'])
    op.create_index('ix_courses_status', 'courses', ['status'])

    # Course content
    op.create_table(
        'course_contents',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('content_id', sa.String(length=50), nullable=False),
        sa.Column('course_id', sa.String(length=50), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('duration', sa.String(length=50), nullable=False, server_default=''),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_free', sa.Boolean(), nullable=False, server_default=false_default),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('video_url', sa.String(length=1024), nullable=True),
        sa.Column('document_url', sa.String(length=1024), nullable=True),
        sa.Column('video_file', json_type, nullable=True),
        sa.Column('document_file', json_type, nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.ForeignKeyConstraint(['course_id'], ['courses.course_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('content_id')
    )
    op.create_index('ix_course_contents_content_id', 'course_contents', ['content_id'])
    op.create_index('ix_course_contents_course_id', 'course_contents', ['course_id'])
    op.create_index('ix_course_contents_status', 'course_contents', ['status'])

    # Enrollments
    op.create_table(
        'enrollments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('enrollment_id', sa.String(length=50), nullable=False),
        sa.Column('user_id', sa.String(length=50), nullable=False),
        sa.Column('course_id', sa.String(length=50), nullable=False),
        sa.Column('order_id', sa.String(length=100), nullable=True),
        sa.Column('payment_id', sa.String(length=100), nullable=True),
        sa.Column('payment_status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('amount_paid', sa.Float(), nullable=False, server_default='0'),
        sa.Column('coupon_code', sa.String(length=50), nullable=True),
        sa.Column('progress', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('completed', sa.Boolean(), nullable=False, server_default=false_default),
        sa.Column('enrollment_date', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['course_id'], ['courses.course_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('enrollment_id'),
        sa.UniqueConstraint('user_id', 'course_id', name='uq_enrollment_user_course')
    )
    op.create_index('ix_enrollments_enrollment_id', 'enrollments', ['enrollment_id'])
    op.create_index('ix_enrollments_user_id', 'enrollments', ['user_id'])
    op.create_index('ix_enrollments_course_id', 'enrollments', ['course_id'])
    op.create_index('ix_enrollments_order_id', 'enrollments', ['order_id'])
    op.create_index('ix_enrollments_payment_status', 'enrollments', ['payment_status'])

    # Per-item progress
    op.create_table(
        'content_progress',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=50), nullable=False),
        sa.Column('course_id', sa.String(length=50), nullable=False),
        sa.Column('content_id', sa.String(length=50), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['content_id'], ['course_contents.content_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'content_id', name='uq_progress_user_content')
    )
    op.create_index('ix_content_progress_user_id', 'content_progress', ['user_id'])
    op.create_index('ix_content_progress_course_id', 'content_progress', ['course_id'])
    op.create_index('ix_content_progress_content_id', 'content_progress', ['content_id'])

    # Coupons
    op.create_table(
        'coupons',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('discount_type', sa.String(length=20), nullable=False),
        sa.Column('discount_value', sa.Float(), nullable=False),
        sa.Column('min_purchase', sa.Float(), nullable=False, server_default='0'),
        sa.Column('max_discount', sa.Float(), nullable=True),
        sa.Column('valid_from', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.Column('valid_until', sa.DateTime(), nullable=False),
        sa.Column('usage_limit', sa.Integer(), nullable=True),
        sa.Column('used_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=true_default),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code')
    )
    op.create_index('ix_coupons_code', 'coupons', ['code'])

    # Password reset codes
    op.create_table(
        'password_resets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=6), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('used', sa.Boolean(), nullable=False, server_default=false_default),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_password_resets_email', 'password_resets', ['email'])

    # Live chat
    op.create_table(
        'chat_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('chat_id', sa.String(length=50), nullable=False),
        sa.Column('user_id', sa.String(length=50), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='open'),
        sa.Column('last_message_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('chat_id')
    )
    op.create_index('ix_chat_sessions_chat_id', 'chat_sessions', ['chat_id'])
    op.create_index('ix_chat_sessions_user_id', 'chat_sessions', ['user_id'])
    op.create_index('ix_chat_sessions_status', 'chat_sessions', ['status'])

    op.create_table(
        'chat_messages',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('chat_id', sa.String(length=50), nullable=False),
        sa.Column('sender', sa.String(length=10), nullable=False),
        sa.Column('sender_id', sa.String(length=50), nullable=True),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=false_default),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.ForeignKeyConstraint(['chat_id'], ['chat_sessions.chat_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_chat_messages_chat_id', 'chat_messages', ['chat_id'])

    # Session logout blocklist
    op.create_table(
        'revoked_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('jti', sa.String(length=36), nullable=False),
        sa.Column('revoked_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('jti')
    )
    op.create_index('ix_revoked_tokens_jti', 'revoked_tokens', ['jti'])

    # Shared media token revocation registry (REVOCATION_BACKEND=database)
    op.create_table(
        'revoked_media_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('revoked_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token_hash')
    )
    op.create_index('ix_revoked_media_tokens_token_hash', 'revoked_media_tokens', ['token_hash'])
    op.create_index('ix_revoked_media_tokens_expires_at', 'revoked_media_tokens', ['expires_at'])


def downgrade() -> None:
    op.drop_table('revoked_media_tokens')
    op.drop_table('revoked_tokens')
    op.drop_table('chat_messages')
    op.drop_table('chat_sessions')
    op.drop_table('password_resets')
    op.drop_table('coupons')
    op.drop_table('content_progress')
    op.drop_table('enrollments')
    op.drop_table('course_contents')
    op.drop_table('courses')
    op.drop_table('admin_users')
    op.drop_table('users')
