"""001 Flight tracking - flights, flight_status_events, bookings

Revision ID: 001_flight_tracking
Revises:
Create Date: 2026-02-18

- flights: one row per (flight_number, flight_date), unique alert_id
- flight_status_events: webhook audit log, UNIQUE (flight_id, event_type, event_time)
  is the idempotency key for redeliveries
- bookings: the columns flight tracking reads
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_flight_tracking'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'flights',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('flight_number', sa.String(10), nullable=False),
        sa.Column('flight_date', sa.Date(), nullable=False),
        sa.Column('fa_flight_id', sa.String(100), nullable=True),
        sa.Column('origin_code', sa.String(10), nullable=False),
        sa.Column('origin_code_iata', sa.String(10), nullable=True),
        sa.Column('origin_name', sa.String(255), nullable=True),
        sa.Column('origin_city', sa.String(100), nullable=True),
        sa.Column('destination_code', sa.String(10), nullable=False),
        sa.Column('destination_code_iata', sa.String(10), nullable=True),
        sa.Column('destination_name', sa.String(255), nullable=True),
        sa.Column('destination_city', sa.String(100), nullable=True),
        sa.Column('scheduled_departure', sa.DateTime(), nullable=True),
        sa.Column('scheduled_arrival', sa.DateTime(), nullable=False),
        sa.Column('estimated_departure', sa.DateTime(), nullable=True),
        sa.Column('estimated_arrival', sa.DateTime(), nullable=True),
        sa.Column('actual_departure', sa.DateTime(), nullable=True),
        sa.Column('actual_arrival', sa.DateTime(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='SCHEDULED'),
        sa.Column('delay_minutes', sa.Integer(), nullable=True),
        sa.Column('aircraft_type', sa.String(20), nullable=True),
        sa.Column('registration', sa.String(20), nullable=True),
        sa.Column('departure_gate', sa.String(20), nullable=True),
        sa.Column('arrival_gate', sa.String(20), nullable=True),
        sa.Column('alert_id', sa.String(100), nullable=True),
        sa.Column('alert_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('alert_created_at', sa.DateTime(), nullable=True),
        sa.Column('alert_disabled_at', sa.DateTime(), nullable=True),
        sa.Column('data_source', sa.String(20), nullable=False, server_default='FLIGHTAWARE'),
        sa.Column('is_live', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('last_updated', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint('flight_number', 'flight_date', name='uq_flight_number_date'),
        sa.UniqueConstraint('alert_id', name='uq_flights_alert_id'),
    )
    op.create_index('ix_flight_status', 'flights', ['status'])
    op.create_index('ix_flight_destination_date', 'flights', ['destination_code_iata', 'flight_date'])
    op.create_index('ix_flight_scheduled_arrival', 'flights', ['scheduled_arrival'])

    op.create_table(
        'flight_status_events',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('flight_id', sa.String(36),
                  sa.ForeignKey('flights.id', ondelete='CASCADE'), nullable=False),
        sa.Column('event_type', sa.String(50), nullable=False),
        sa.Column('event_time', sa.DateTime(), nullable=False),
        sa.Column('event_data', sa.JSON(), nullable=False),
        sa.Column('old_status', sa.String(20), nullable=True),
        sa.Column('new_status', sa.String(20), nullable=True),
        sa.Column('delay_change', sa.Integer(), nullable=True),
        sa.Column('processed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('notifications_sent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint('flight_id', 'event_type', 'event_time', name='uq_flight_status_event_key'),
    )
    op.create_index('ix_flight_status_event_flight_time', 'flight_status_events', ['flight_id', 'event_time'])
    op.create_index('ix_flight_status_event_processed', 'flight_status_events', ['processed'])

    op.create_table(
        'bookings',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('flight_id', sa.String(36),
                  sa.ForeignKey('flights.id', ondelete='SET NULL'), nullable=True),
        sa.Column('customer_name', sa.String(100), nullable=True),
        sa.Column('pickup_at', sa.DateTime(), nullable=True),
        sa.Column('status', sa.String(30), server_default='confirmed'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('is_deleted', sa.Boolean(), server_default=sa.false()),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_booking_flight', 'bookings', ['flight_id'])
    op.create_index('ix_bookings_is_deleted', 'bookings', ['is_deleted'])


def downgrade():
    op.drop_index('ix_bookings_is_deleted', table_name='bookings')
    op.drop_index('ix_booking_flight', table_name='bookings')
    op.drop_table('bookings')

    op.drop_index('ix_flight_status_event_processed', table_name='flight_status_events')
    op.drop_index('ix_flight_status_event_flight_time', table_name='flight_status_events')
    op.drop_table('flight_status_events')

    op.drop_index('ix_flight_scheduled_arrival', table_name='flights')
    op.drop_index('ix_flight_destination_date', table_name='flights')
    op.drop_index('ix_flight_status', table_name='flights')
    op.drop_table('flights')
