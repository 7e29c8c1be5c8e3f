"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the complete fairy schema from scratch:
- stores, floor_tables, products: catalog and floor layout
- cast_members, staff_members: the two identities acting on the floor
- bills, orders, bill_designations, price_adjustments, cast_table_assignments:
  table sessions and everything rung up on them
- cast_shifts: attendance with per-edge approval
- store_settings, daily_reports: numeric configuration and report snapshots
- activity_events: per-bill activity log

One open bill per table is enforced by a partial unique index.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # stores / floor_tables / products: catalog
    # ============================================================================
    op.create_table(
        'stores',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('timezone', sa.String(length=64), nullable=False, server_default='Asia/Tokyo'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'floor_tables',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('label', sa.String(length=32), nullable=False),
        sa.Column('seats', sa.Integer(), nullable=False, server_default='4'),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id', 'label', name='uq_floor_tables_store_label'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_floor_tables_store_id', 'floor_tables', ['store_id'])

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name_jp', sa.String(length=120), nullable=False),
        sa.Column('category', sa.String(length=16), nullable=False),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('tax_applicable', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('back_free', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('back_designated', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('drink_size', sa.String(length=8), nullable=True),
        sa.Column('drink_units', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('extension_minutes', sa.Integer(), nullable=True),
        sa.Column('extension_tier', sa.String(length=16), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('price >= 0', name='ck_products_price_nonnegative'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_category', 'products', ['category'])
    op.create_index('ix_products_category_active', 'products', ['category', 'is_active'])

    # ============================================================================
    # cast_members / staff_members: floor identities
    # ============================================================================
    op.create_table(
        'cast_members',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=80), nullable=False),
        sa.Column('home_store_id', sa.Integer(), nullable=True),
        sa.Column('hourly_rate', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('transport_fee', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('referred_by_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['home_store_id'], ['stores.id'], ),
        sa.ForeignKeyConstraint(['referred_by_id'], ['cast_members.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_cast_members_home_store_id', 'cast_members', ['home_store_id'])
    op.create_index('ix_cast_members_referred_by_id', 'cast_members', ['referred_by_id'])

    op.create_table(
        'staff_members',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=80), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=True),
        sa.Column('is_manager', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_staff_members_store_id', 'staff_members', ['store_id'])

    # ============================================================================
    # bills: table sessions (one open bill per table)
    # ============================================================================
    op.create_table(
        'bills',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('table_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='open'),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('close_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('base_minutes', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('seating_type', sa.String(length=16), nullable=False, server_default='free'),
        sa.Column('payment_method', sa.String(length=16), nullable=True),
        sa.Column('is_cancelled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('read_token', sa.String(length=32), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
        sa.ForeignKeyConstraint(['table_id'], ['floor_tables.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_bills_store_id', 'bills', ['store_id'])
    op.create_index('ix_bills_table_id', 'bills', ['table_id'])
    op.create_index('ix_bills_status', 'bills', ['status'])
    op.create_index('ix_bills_read_token', 'bills', ['read_token'], unique=True)
    op.create_index('ix_bills_store_start', 'bills', ['store_id', 'start_time'])
    op.create_index(
        'uq_bills_one_open_per_table',
        'bills',
        ['table_id'],
        unique=True,
        sqlite_where=sa.text("status = 'open'"),
        postgresql_where=sa.text("status = 'open'"),
    )

    # ============================================================================
    # orders: line items (captured price, back and points per unit)
    # ============================================================================
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bill_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('cast_id', sa.Integer(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('unit_price', sa.Integer(), nullable=False),
        sa.Column('back_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('points_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_cancelled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('cancelled_by_staff_id', sa.Integer(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancel_reason', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['bill_id'], ['bills.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.ForeignKeyConstraint(['cast_id'], ['cast_members.id'], ),
        sa.ForeignKeyConstraint(['cancelled_by_staff_id'], ['staff_members.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity > 0', name='ck_orders_quantity_positive'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_orders_bill_id', 'orders', ['bill_id'])
    op.create_index('ix_orders_cast_id', 'orders', ['cast_id'])
    op.create_index('ix_orders_bill_cancelled', 'orders', ['bill_id', 'is_cancelled'])
    op.create_index('ix_orders_cast_created', 'orders', ['cast_id', 'created_at'])

    # ============================================================================
    # bill_designations: per (bill, cast) extension counter
    # ============================================================================
    op.create_table(
        'bill_designations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bill_id', sa.Integer(), nullable=False),
        sa.Column('cast_id', sa.Integer(), nullable=False),
        sa.Column('extension_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_designated', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('designated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['bill_id'], ['bills.id'], ),
        sa.ForeignKeyConstraint(['cast_id'], ['cast_members.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('bill_id', 'cast_id', name='uq_bill_designations_bill_cast'),
        sa.CheckConstraint('extension_count >= 0', name='ck_bill_designations_count_nonnegative'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_bill_designations_bill_id', 'bill_designations', ['bill_id'])
    op.create_index('ix_bill_designations_cast_id', 'bill_designations', ['cast_id'])

    # ============================================================================
    # price_adjustments: append-only staff deltas
    # ============================================================================
    op.create_table(
        'price_adjustments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bill_id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=True),
        sa.Column('staff_id', sa.Integer(), nullable=False),
        sa.Column('adjustment_type', sa.String(length=16), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['bill_id'], ['bills.id'], ),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.ForeignKeyConstraint(['staff_id'], ['staff_members.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_price_adjustments_bill_id', 'price_adjustments', ['bill_id'])

    # ============================================================================
    # cast_table_assignments: who is seated at a bill
    # ============================================================================
    op.create_table(
        'cast_table_assignments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bill_id', sa.Integer(), nullable=False),
        sa.Column('cast_id', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('assigned_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('removed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['bill_id'], ['bills.id'], ),
        sa.ForeignKeyConstraint(['cast_id'], ['cast_members.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_cast_table_assignments_bill_id', 'cast_table_assignments', ['bill_id'])
    op.create_index('ix_cast_table_assignments_cast_id', 'cast_table_assignments', ['cast_id'])
    op.create_index('ix_cast_assignments_bill_active', 'cast_table_assignments', ['bill_id', 'is_active'])

    # ============================================================================
    # cast_shifts: attendance with per-edge approval
    # ============================================================================
    op.create_table(
        'cast_shifts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cast_id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('clock_in', sa.DateTime(timezone=True), nullable=False),
        sa.Column('clock_out', sa.DateTime(timezone=True), nullable=True),
        sa.Column('clock_in_status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('clock_out_status', sa.String(length=16), nullable=True),
        sa.Column('clock_in_approved_by_staff_id', sa.Integer(), nullable=True),
        sa.Column('clock_out_approved_by_staff_id', sa.Integer(), nullable=True),
        sa.Column('is_late_pickup', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('late_pickup_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['cast_id'], ['cast_members.id'], ),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
        sa.ForeignKeyConstraint(['clock_in_approved_by_staff_id'], ['staff_members.id'], ),
        sa.ForeignKeyConstraint(['clock_out_approved_by_staff_id'], ['staff_members.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_cast_shifts_cast_id', 'cast_shifts', ['cast_id'])
    op.create_index('ix_cast_shifts_store_id', 'cast_shifts', ['store_id'])
    op.create_index('ix_cast_shifts_clock_in_status', 'cast_shifts', ['clock_in_status'])
    op.create_index('ix_cast_shifts_cast_clock_in', 'cast_shifts', ['cast_id', 'clock_in'])
    op.create_index('ix_cast_shifts_store_clock_in', 'cast_shifts', ['store_id', 'clock_in'])

    # ============================================================================
    # store_settings / daily_reports
    # ============================================================================
    op.create_table(
        'store_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(length=64), nullable=False),
        sa.Column('label', sa.String(length=120), nullable=False),
        sa.Column('value', sa.Integer(), nullable=False),
        sa.Column('updated_by_staff_id', sa.Integer(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['updated_by_staff_id'], ['staff_members.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'daily_reports',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('report_date', sa.Date(), nullable=False),
        sa.Column('total_sales', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('card_sales', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('cash_sales', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_bills', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_weekend_holiday', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('bonus_tier', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('bonus_per_point', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('saved_by_staff_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
        sa.ForeignKeyConstraint(['saved_by_staff_id'], ['staff_members.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id', 'report_date', name='uq_daily_reports_store_date'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_daily_reports_store_id', 'daily_reports', ['store_id'])
    op.create_index('ix_daily_reports_report_date', 'daily_reports', ['report_date'])

    # ============================================================================
    # activity_events: per-bill activity log
    # ============================================================================
    op.create_table(
        'activity_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('bill_id', sa.Integer(), nullable=True),
        sa.Column('event_type', sa.String(length=32), nullable=False),
        sa.Column('entity_type', sa.String(length=32), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('actor_staff_id', sa.Integer(), nullable=True),
        sa.Column('actor_cast_id', sa.Integer(), nullable=True),
        sa.Column('label', sa.String(length=120), nullable=True),
        sa.Column('detail', sa.String(length=255), nullable=True),
        sa.Column('amount', sa.Integer(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
        sa.ForeignKeyConstraint(['bill_id'], ['bills.id'], ),
        sa.ForeignKeyConstraint(['actor_staff_id'], ['staff_members.id'], ),
        sa.ForeignKeyConstraint(['actor_cast_id'], ['cast_members.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_activity_events_store_id', 'activity_events', ['store_id'])
    op.create_index('ix_activity_events_bill_id', 'activity_events', ['bill_id'])
    op.create_index('ix_activity_events_event_type', 'activity_events', ['event_type'])
    op.create_index('ix_activity_events_bill_occurred', 'activity_events', ['bill_id', 'occurred_at'])
    op.create_index('ix_activity_events_store_occurred', 'activity_events', ['store_id', 'occurred_at'])


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('activity_events')
    op.drop_table('daily_reports')
    op.drop_table('store_settings')
    op.drop_table('cast_shifts')
    op.drop_table('cast_table_assignments')
    op.drop_table('price_adjustments')
    op.drop_table('bill_designations')
    op.drop_index('uq_bills_one_open_per_table', table_name='bills')
    op.drop_table('orders')
    op.drop_table('bills')
    op.drop_table('staff_members')
    op.drop_table('cast_members')
    op.drop_table('products')
    op.drop_table('floor_tables')
    op.drop_table('stores')
