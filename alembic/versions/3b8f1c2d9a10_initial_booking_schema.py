"""initial_booking_schema

Revision ID: 3b8f1c2d9a10
Revises:
Create Date: 2026-10-19 10:12:41.208113

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b8f1c2d9a10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


user_role = sa.Enum('ADMIN', 'STAFF', 'CUSTOMER', name='userrole')
room_status = sa.Enum('AVAILABLE', 'OCCUPIED', 'MAINTENANCE', 'CLEANING', name='roomstatus')
booking_status = sa.Enum(
    'PENDING', 'CONFIRMED', 'CHECKED_IN', 'CHECKED_OUT', 'CANCELLED', name='bookingstatus'
)
booking_payment_method = sa.Enum('CASH', 'BANK_TRANSFER', name='bookingpaymentmethod')
payment_method = sa.Enum(
    'CASH', 'CREDIT_CARD', 'DEBIT_CARD', 'BANK_TRANSFER', 'E_WALLET', name='paymentmethod'
)
payment_type = sa.Enum('FULL', 'DEPOSIT', 'REMAINING', name='paymenttype')
payment_status = sa.Enum('PENDING', 'COMPLETED', 'FAILED', 'REFUNDED', name='paymentstatus')


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=100), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('role', user_role, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'room_types',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('base_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'rooms',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('room_number', sa.String(length=20), nullable=False),
        sa.Column('floor', sa.Integer(), nullable=False),
        sa.Column('room_type_id', sa.Integer(), nullable=False),
        sa.Column('status', room_status, nullable=False),
        sa.ForeignKeyConstraint(['room_type_id'], ['room_types.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('room_number'),
    )
    op.create_index('ix_rooms_room_type_id', 'rooms', ['room_type_id'], unique=False)

    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('booking_number', sa.String(length=50), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('room_id', sa.Integer(), nullable=False),
        sa.Column('check_in_date', sa.Date(), nullable=False),
        sa.Column('check_out_date', sa.Date(), nullable=False),
        sa.Column('num_guests', sa.Integer(), nullable=False),
        sa.Column('total_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('special_requests', sa.Text(), nullable=True),
        sa.Column('status', booking_status, nullable=False),
        sa.Column('payment_method', booking_payment_method, nullable=False),
        sa.Column('requires_deposit', sa.Boolean(), nullable=False),
        sa.Column('deposit_paid', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['room_id'], ['rooms.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_bookings_booking_number', 'bookings', ['booking_number'], unique=True)
    op.create_index('ix_bookings_user_id', 'bookings', ['user_id'], unique=False)
    op.create_index('ix_bookings_room_id', 'bookings', ['room_id'], unique=False)
    op.create_index('ix_bookings_status', 'bookings', ['status'], unique=False)

    op.create_table(
        'payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('booking_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('payment_method', payment_method, nullable=False),
        sa.Column('payment_type', payment_type, nullable=False),
        sa.Column('deposit_percentage', sa.Integer(), nullable=True),
        sa.Column('related_payment_id', sa.Integer(), nullable=True),
        sa.Column('payment_status', payment_status, nullable=False),
        sa.Column('transaction_id', sa.String(length=100), nullable=True),
        sa.Column('payment_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('receipt_path', sa.String(length=255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id']),
        sa.ForeignKeyConstraint(['related_payment_id'], ['payments.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_payments_booking_id', 'payments', ['booking_id'], unique=False)
    op.create_index('ix_payments_payment_status', 'payments', ['payment_status'], unique=False)

    op.create_table(
        'checkin_checkout',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('booking_id', sa.Integer(), nullable=False),
        sa.Column('checkin_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('checkout_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('checkin_by', sa.Integer(), nullable=True),
        sa.Column('checkout_by', sa.Integer(), nullable=True),
        sa.Column('room_condition_checkin', sa.Text(), nullable=True),
        sa.Column('room_condition_checkout', sa.Text(), nullable=True),
        sa.Column('additional_charges', sa.Numeric(12, 2), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id']),
        sa.ForeignKeyConstraint(['checkin_by'], ['users.id']),
        sa.ForeignKeyConstraint(['checkout_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_checkin_checkout_booking_id', 'checkin_checkout', ['booking_id'], unique=True
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_checkin_checkout_booking_id', table_name='checkin_checkout')
    op.drop_table('checkin_checkout')
    op.drop_index('ix_payments_payment_status', table_name='payments')
    op.drop_index('ix_payments_booking_id', table_name='payments')
    op.drop_table('payments')
    op.drop_index('ix_bookings_status', table_name='bookings')
    op.drop_index('ix_bookings_room_id', table_name='bookings')
    op.drop_index('ix_bookings_user_id', table_name='bookings')
    op.drop_index('ix_bookings_booking_number', table_name='bookings')
    op.drop_table('bookings')
    op.drop_index('ix_rooms_room_type_id', table_name='rooms')
    op.drop_table('rooms')
    op.drop_table('room_types')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
