"""create users, forum posts and workout signup tables

Revision ID: 20251019_workout_signups
Revises:
Create Date: 2025-10-19 00:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20251019_workout_signups'
down_revision = None
branch_labels = None
depends_on = None

USER_ROLES = ('pending', 'member', 'coach', 'exec', 'administrator')


def _pair_table(name, *columns):
    op.create_table(
        name,
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('post_id', sa.Integer(), sa.ForeignKey('forum_posts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        *columns,
        sa.UniqueConstraint('post_id', 'user_id', name=f'uq_{name}_post_user'),
    )
    op.create_index(f'ix_{name}_id', name, ['id'])
    op.create_index(f'ix_{name}_post_id', name, ['post_id'])


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False, unique=True),
        sa.Column('phone_number', sa.String(), nullable=True),
        sa.Column('role', sa.Enum(*USER_ROLES, name='user_role_enum'), nullable=False, server_default='pending'),
        sa.Column('absences', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('absences >= 0', name='check_users_absences_non_negative'),
    )
    op.create_index('ix_users_id', 'users', ['id'])

    op.create_table(
        'forum_posts',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(50), nullable=False, server_default='post'),
        sa.Column('title', sa.String(255), nullable=True),
        sa.Column('content', sa.Text(), nullable=False, server_default=''),
        sa.Column('workout_type', sa.String(100), nullable=True),
        sa.Column('workout_date', sa.Date(), nullable=True),
        sa.Column('workout_time', sa.Time(), nullable=True),
        sa.Column('capacity', sa.Integer(), nullable=True),
        sa.Column('event_date', sa.Date(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_forum_posts_id', 'forum_posts', ['id'])

    _pair_table(
        'workout_signups',
        sa.Column('signup_time', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    _pair_table(
        'workout_waitlist',
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    _pair_table(
        'workout_cancellations',
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('within_12hrs', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('marked_absent', sa.Boolean(), nullable=False, server_default=sa.text('false')),
    )
    _pair_table(
        'workout_attendance',
        sa.Column('attended', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('late', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('recorded_by_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('recorded_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    # FIFO promotion reads the waitlist head per workout
    op.create_index('ix_workout_waitlist_post_joined', 'workout_waitlist', ['post_id', 'joined_at', 'id'])


def downgrade() -> None:
    op.drop_index('ix_workout_waitlist_post_joined', table_name='workout_waitlist')
    for name in ('workout_attendance', 'workout_cancellations', 'workout_waitlist', 'workout_signups'):
        op.drop_index(f'ix_{name}_post_id', table_name=name)
        op.drop_index(f'ix_{name}_id', table_name=name)
        op.drop_table(name)
    op.drop_index('ix_forum_posts_id', table_name='forum_posts')
    op.drop_table('forum_posts')
    op.drop_index('ix_users_id', table_name='users')
    op.drop_table('users')
    op.execute("DROP TYPE IF EXISTS user_role_enum")
