"""init_settlement_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-17

Schema:
- inventory: Capacity counters per event / ticket type
- reservation: Time-boxed holds against an inventory row
- ticket: Tickets issued when a reservation is consumed
- payment: Provider payments, unique per provider payment id
- processed_external_event: Idempotency ledger for webhook deliveries
- reconciliation_result: Persisted reconciliation reports
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables with final schema."""

    # Inventory table
    op.create_table(
        'inventory',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('event_id', UUID(as_uuid=True), nullable=False),
        sa.Column('ticket_type_id', UUID(as_uuid=True), nullable=True),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('total_capacity', sa.Integer(), nullable=False),
        sa.Column('reserved_count', sa.Integer(), nullable=False),
        sa.Column('sold_count', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('total_capacity > 0', name='ck_inventory_capacity_positive'),
        sa.CheckConstraint('price_cents >= 0', name='ck_inventory_price_non_negative'),
        sa.CheckConstraint('reserved_count >= 0', name='ck_inventory_reserved_non_negative'),
        sa.CheckConstraint('sold_count >= 0', name='ck_inventory_sold_non_negative'),
        sa.CheckConstraint(
            'reserved_count + sold_count <= total_capacity',
            name='ck_inventory_within_capacity',
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('event_id', 'ticket_type_id', name='uq_inventory_event_ticket_type'),
    )
    op.create_index(op.f('ix_inventory_event_id'), 'inventory', ['event_id'], unique=False)
    op.create_index(
        'uq_inventory_event_untyped',
        'inventory',
        ['event_id'],
        unique=True,
        postgresql_where=sa.text('ticket_type_id IS NULL'),
    )

    # Reservation table
    op.create_table(
        'reservation',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('event_id', UUID(as_uuid=True), nullable=False),
        sa.Column('inventory_id', UUID(as_uuid=True), nullable=False),
        sa.Column('ticket_type_id', UUID(as_uuid=True), nullable=True),
        sa.Column('user_id', UUID(as_uuid=True), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('consumed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('released_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('checkout_session_id', sa.String(length=255), nullable=True),
        sa.CheckConstraint('quantity > 0', name='ck_reservation_quantity_positive'),
        sa.CheckConstraint(
            'expires_at > created_at', name='ck_reservation_expiry_after_creation'
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'consumed', 'expired', 'cancelled')",
            name='ck_reservation_status',
        ),
        sa.CheckConstraint(
            "status <> 'consumed' OR consumed_at IS NOT NULL",
            name='ck_reservation_consumed_at',
        ),
        sa.CheckConstraint(
            "status NOT IN ('expired', 'cancelled') OR released_at IS NOT NULL",
            name='ck_reservation_released_at',
        ),
        sa.ForeignKeyConstraint(['inventory_id'], ['inventory.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('checkout_session_id'),
    )
    op.create_index(op.f('ix_reservation_event_id'), 'reservation', ['event_id'], unique=False)
    op.create_index(
        op.f('ix_reservation_inventory_id'), 'reservation', ['inventory_id'], unique=False
    )
    op.create_index(op.f('ix_reservation_user_id'), 'reservation', ['user_id'], unique=False)
    op.create_index(
        'ix_reservation_pending_expires_at',
        'reservation',
        ['expires_at'],
        unique=False,
        postgresql_where=sa.text("status = 'pending'"),
    )

    # Ticket table
    op.create_table(
        'ticket',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('reservation_id', UUID(as_uuid=True), nullable=False),
        sa.Column('event_id', UUID(as_uuid=True), nullable=False),
        sa.Column('ticket_type_id', UUID(as_uuid=True), nullable=True),
        sa.Column('user_id', UUID(as_uuid=True), nullable=False),
        sa.Column('token', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('issued_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['reservation_id'], ['reservation.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token'),
    )
    op.create_index(op.f('ix_ticket_reservation_id'), 'ticket', ['reservation_id'], unique=False)
    op.create_index(op.f('ix_ticket_event_id'), 'ticket', ['event_id'], unique=False)
    op.create_index(op.f('ix_ticket_user_id'), 'ticket', ['user_id'], unique=False)

    # Payment table
    op.create_table(
        'payment',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('reservation_id', UUID(as_uuid=True), nullable=True),
        sa.Column('event_id', UUID(as_uuid=True), nullable=False),
        sa.Column('checkout_session_id', sa.String(length=255), nullable=True),
        sa.Column('provider_payment_id', sa.String(length=255), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('platform_fee_cents', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('amount_cents >= 0', name='ck_payment_amount_non_negative'),
        sa.CheckConstraint("status = 'succeeded'", name='ck_payment_status'),
        sa.ForeignKeyConstraint(['reservation_id'], ['reservation.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('provider_payment_id'),
    )
    op.create_index(
        op.f('ix_payment_reservation_id'), 'payment', ['reservation_id'], unique=False
    )
    op.create_index(op.f('ix_payment_event_id'), 'payment', ['event_id'], unique=False)

    # Idempotency ledger
    op.create_table(
        'processed_external_event',
        sa.Column('external_event_id', sa.String(length=255), nullable=False),
        sa.Column('event_type', sa.String(length=100), nullable=False),
        sa.Column('outcome', sa.String(length=50), nullable=True),
        sa.Column('reservation_id', UUID(as_uuid=True), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('external_event_id'),
    )
    op.create_index(
        op.f('ix_processed_external_event_reservation_id'),
        'processed_external_event',
        ['reservation_id'],
        unique=False,
    )

    # Reconciliation reports
    op.create_table(
        'reconciliation_result',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('event_id', UUID(as_uuid=True), nullable=False),
        sa.Column('generated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('has_discrepancies', sa.Boolean(), nullable=False),
        sa.Column('issues', JSONB(), nullable=False),
        sa.Column('sold_count', sa.Integer(), nullable=False),
        sa.Column('tickets_issued_count', sa.Integer(), nullable=False),
        sa.Column('consumed_reservations_count', sa.Integer(), nullable=False),
        sa.Column('payments_succeeded_count', sa.Integer(), nullable=False),
        sa.Column('expected_revenue_cents', sa.Integer(), nullable=False),
        sa.Column('actual_revenue_cents', sa.Integer(), nullable=False),
        sa.Column('revenue_discrepancy_cents', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_reconciliation_result_event_generated',
        'reconciliation_result',
        ['event_id', 'generated_at'],
        unique=False,
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('reconciliation_result')
    op.drop_table('processed_external_event')
    op.drop_table('payment')
    op.drop_table('ticket')
    op.drop_table('reservation')
    op.drop_table('inventory')
