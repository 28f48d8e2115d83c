"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # users first; the avatar foreign key is added once photos exists
    op.create_table('users',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('email', sa.String(), nullable=True),
                    sa.Column('password', sa.String(), nullable=True),
                    sa.Column('password_reset_token', sa.String(), nullable=True),
                    sa.Column('password_reset_expires', sa.DateTime(timezone=True), nullable=True),
                    sa.Column('facebook', sa.String(), nullable=True),
                    sa.Column('google', sa.String(), nullable=True),
                    sa.Column('is_admin', sa.Boolean(), nullable=False,
                              server_default=sa.false()),
                    sa.Column('name', sa.String(), nullable=True),
                    sa.Column('gender', sa.String(), nullable=False, server_default='male'),
                    sa.Column('location', sa.String(), nullable=False,
                              server_default='Hong Kong'),
                    sa.Column('phone', sa.String(), nullable=True),
                    sa.Column('website', sa.String(), nullable=True),
                    sa.Column('picture', sa.String(), nullable=True),
                    sa.Column('avatar_id', sa.Integer(), nullable=True),
                    sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
                    sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
                    sa.PrimaryKeyConstraint('id')
                    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_password_reset_token'), 'users',
                    ['password_reset_token'], unique=True)
    op.create_index(op.f('ix_users_facebook'), 'users', ['facebook'], unique=True)
    op.create_index(op.f('ix_users_google'), 'users', ['google'], unique=True)

    op.create_table('oauth_tokens',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('user_id', sa.Integer(), nullable=False),
                    sa.Column('kind', sa.String(), nullable=False),
                    sa.Column('access_token', sa.Text(), nullable=False),
                    sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
                    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('user_id', 'kind', name='uq_oauth_token_user_kind')
                    )
    op.create_index(op.f('ix_oauth_tokens_id'), 'oauth_tokens', ['id'], unique=False)
    op.create_index(op.f('ix_oauth_tokens_user_id'), 'oauth_tokens', ['user_id'], unique=False)

    op.create_table('venues',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('name', sa.String(), nullable=False),
                    sa.Column('address1', sa.String(), nullable=False),
                    sa.Column('address2', sa.String(), nullable=True),
                    sa.Column('address3', sa.String(), nullable=True),
                    sa.Column('city', sa.String(), nullable=True),
                    sa.Column('country', sa.String(), nullable=True),
                    sa.Column('phone', sa.String(), nullable=True),
                    sa.Column('lat', sa.Float(), nullable=True),
                    sa.Column('lon', sa.Float(), nullable=True),
                    sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
                    sa.PrimaryKeyConstraint('id')
                    )
    op.create_index(op.f('ix_venues_id'), 'venues', ['id'], unique=False)

    op.create_table('events',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('name', sa.String(), nullable=False),
                    sa.Column('description', sa.Text(), nullable=False),
                    sa.Column('time', sa.DateTime(timezone=True), nullable=False),
                    sa.Column('duration_hours', sa.Float(), nullable=False),
                    sa.Column('fee', sa.Integer(), nullable=False, server_default='0'),
                    sa.Column('status', sa.String(), nullable=False, server_default='upcoming'),
                    sa.Column('venue_id', sa.Integer(), nullable=True),
                    sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
                    sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
                    sa.ForeignKeyConstraint(['venue_id'], ['venues.id'], ondelete='SET NULL'),
                    sa.PrimaryKeyConstraint('id')
                    )
    op.create_index(op.f('ix_events_id'), 'events', ['id'], unique=False)
    op.create_index(op.f('ix_events_status'), 'events', ['status'], unique=False)

    op.create_table('photos',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('photo_url', sa.String(), nullable=False),
                    sa.Column('highres_url', sa.String(), nullable=False),
                    sa.Column('base_url', sa.String(), nullable=True),
                    sa.Column('kind', sa.String(), nullable=False, server_default='member'),
                    sa.Column('user_id', sa.Integer(), nullable=True),
                    sa.Column('event_id', sa.Integer(), nullable=True),
                    sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
                    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
                    sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
                    sa.PrimaryKeyConstraint('id')
                    )
    op.create_index(op.f('ix_photos_id'), 'photos', ['id'], unique=False)
    op.create_index(op.f('ix_photos_user_id'), 'photos', ['user_id'], unique=False)
    op.create_index(op.f('ix_photos_event_id'), 'photos', ['event_id'], unique=False)

    with op.batch_alter_table('users') as batch_op:
        batch_op.create_foreign_key(
            'fk_users_avatar_id', 'photos', ['avatar_id'], ['id'], ondelete='SET NULL')

    op.create_table('event_hosts',
                    sa.Column('event_id', sa.Integer(), nullable=False),
                    sa.Column('user_id', sa.Integer(), nullable=False),
                    sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
                    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
                    sa.PrimaryKeyConstraint('event_id', 'user_id')
                    )

    op.create_table('event_attendees',
                    sa.Column('event_id', sa.Integer(), nullable=False),
                    sa.Column('user_id', sa.Integer(), nullable=False),
                    sa.Column('joined_at', sa.DateTime(timezone=True), nullable=True),
                    sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
                    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
                    sa.PrimaryKeyConstraint('event_id', 'user_id')
                    )

    op.create_table('event_comments',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('event_id', sa.Integer(), nullable=False),
                    sa.Column('member_id', sa.Integer(), nullable=False),
                    sa.Column('title', sa.String(), nullable=True),
                    sa.Column('comment', sa.Text(), nullable=False),
                    sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
                    sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
                    sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
                    sa.ForeignKeyConstraint(['member_id'], ['users.id'], ondelete='CASCADE'),
                    sa.PrimaryKeyConstraint('id')
                    )
    op.create_index(op.f('ix_event_comments_id'), 'event_comments', ['id'], unique=False)
    op.create_index(op.f('ix_event_comments_event_id'), 'event_comments',
                    ['event_id'], unique=False)
    op.create_index(op.f('ix_event_comments_member_id'), 'event_comments',
                    ['member_id'], unique=False)

    op.create_table('event_ratings',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('event_id', sa.Integer(), nullable=False),
                    sa.Column('member_id', sa.Integer(), nullable=False),
                    sa.Column('rating', sa.Integer(), nullable=False),
                    sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
                    sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
                    sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
                    sa.ForeignKeyConstraint(['member_id'], ['users.id'], ondelete='CASCADE'),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('event_id', 'member_id', name='uq_event_rating_member')
                    )
    op.create_index(op.f('ix_event_ratings_id'), 'event_ratings', ['id'], unique=False)
    op.create_index(op.f('ix_event_ratings_event_id'), 'event_ratings',
                    ['event_id'], unique=False)
    op.create_index(op.f('ix_event_ratings_member_id'), 'event_ratings',
                    ['member_id'], unique=False)


def downgrade() -> None:
    op.drop_table('event_ratings')
    op.drop_table('event_comments')
    op.drop_table('event_attendees')
    op.drop_table('event_hosts')
    with op.batch_alter_table('users') as batch_op:
        batch_op.drop_constraint('fk_users_avatar_id', type_='foreignkey')
    op.drop_table('photos')
    op.drop_table('events')
    op.drop_table('venues')
    op.drop_table('oauth_tokens')
    op.drop_table('users')
