"""create events, event days and suspensions

Revision ID: 2b3c4d5e6f7a
Revises: 1a2b3c4d5e6f
Create Date: 2026-10-08 09:00:00.000000

Events are a single table discriminated by ``type``; dated events own an
ordered day schedule and recurring events own suspension periods.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import advanced_alchemy.types


# revision identifiers, used by Alembic.
revision: str = '2b3c4d5e6f7a'
down_revision: Union[str, None] = '1a2b3c4d5e6f'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('events',
        sa.Column('id', advanced_alchemy.types.guid.GUID(length=16), nullable=False),
        sa.Column('sa_orm_sentinel', sa.Integer(), nullable=True),
        sa.Column('created_at', advanced_alchemy.types.datetime.DateTimeUTC(timezone=True), nullable=False),
        sa.Column('updated_at', advanced_alchemy.types.datetime.DateTimeUTC(timezone=True), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('type', sa.Enum('recurring', 'dated', name='event_type'), nullable=False),
        sa.Column('recurrence', sa.Text(), nullable=True),
        sa.Column('time', sa.String(length=32), nullable=True),
        sa.Column('rrule', sa.String(length=255), nullable=True),
        sa.Column('start_date', sa.String(length=64), nullable=True),
        sa.Column('end_date', sa.String(length=64), nullable=True),
        sa.Column('rosary_time', sa.String(length=64), nullable=True),
        sa.Column('parking_info', sa.Text(), nullable=True),
        sa.Column('venue', sa.String(length=500), nullable=False),
        sa.Column('address', sa.String(length=1000), nullable=False),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('published', sa.Boolean(), nullable=False),
        sa.Column('created_by', advanced_alchemy.types.guid.GUID(length=16), nullable=True),
        sa.Column('last_modified_by', advanced_alchemy.types.guid.GUID(length=16), nullable=True),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], name=op.f('fk_events_created_by_users'), ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['last_modified_by'], ['users.id'], name=op.f('fk_events_last_modified_by_users'), ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_events')),
    )
    op.create_index(op.f('ix_events_slug'), 'events', ['slug'], unique=True)
    op.create_index(op.f('ix_events_type'), 'events', ['type'], unique=False)
    op.create_index(op.f('ix_events_published'), 'events', ['published'], unique=False)

    op.create_table('event_days',
        sa.Column('id', advanced_alchemy.types.guid.GUID(length=16), nullable=False),
        sa.Column('sa_orm_sentinel', sa.Integer(), nullable=True),
        sa.Column('created_at', advanced_alchemy.types.datetime.DateTimeUTC(timezone=True), nullable=False),
        sa.Column('updated_at', advanced_alchemy.types.datetime.DateTimeUTC(timezone=True), nullable=False),
        sa.Column('event_id', advanced_alchemy.types.guid.GUID(length=16), nullable=False),
        sa.Column('day_number', sa.Integer(), nullable=False),
        sa.Column('date', sa.String(length=128), nullable=False),
        sa.Column('choir', sa.String(length=500), nullable=False),
        sa.Column('sponsors_pilgrims', sa.Text(), nullable=False),
        sa.Column('area_coordinators', sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], name=op.f('fk_event_days_event_id_events'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_event_days')),
        sa.UniqueConstraint('event_id', 'day_number', name='unique_event_day'),
    )
    op.create_index(op.f('ix_event_days_event_id'), 'event_days', ['event_id'], unique=False)

    op.create_table('event_suspensions',
        sa.Column('id', advanced_alchemy.types.guid.GUID(length=16), nullable=False),
        sa.Column('sa_orm_sentinel', sa.Integer(), nullable=True),
        sa.Column('created_at', advanced_alchemy.types.datetime.DateTimeUTC(timezone=True), nullable=False),
        sa.Column('updated_at', advanced_alchemy.types.datetime.DateTimeUTC(timezone=True), nullable=False),
        sa.Column('event_id', advanced_alchemy.types.guid.GUID(length=16), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('reason', sa.String(length=500), nullable=True),
        sa.Column('created_by', advanced_alchemy.types.guid.GUID(length=16), nullable=True),
        sa.CheckConstraint('end_date >= start_date', name='valid_suspension_dates'),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], name=op.f('fk_event_suspensions_event_id_events'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], name=op.f('fk_event_suspensions_created_by_users'), ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_event_suspensions')),
    )
    op.create_index(op.f('ix_event_suspensions_event_id'), 'event_suspensions', ['event_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_event_suspensions_event_id'), table_name='event_suspensions')
    op.drop_table('event_suspensions')
    op.drop_index(op.f('ix_event_days_event_id'), table_name='event_days')
    op.drop_table('event_days')
    op.drop_index(op.f('ix_events_published'), table_name='events')
    op.drop_index(op.f('ix_events_type'), table_name='events')
    op.drop_index(op.f('ix_events_slug'), table_name='events')
    op.drop_table('events')
    sa.Enum(name='event_type').drop(op.get_bind(), checkfirst=True)
