"""baseline_matching_engine

Revision ID: 7c1e4b9a2d10
Revises:
Create Date: 2026-03-02 10:12:41.118204

Production-safe migration: only creates tables that do not exist yet.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '7c1e4b9a2d10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def table_exists(table_name: str) -> bool:
    """Check if a table exists in the database."""
    bind = op.get_bind()
    inspector = inspect(bind)
    return table_name in inspector.get_table_names()


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    ]


def upgrade() -> None:
    # Listing and profile tables are owned by the CRUD services; create them
    # only on fresh databases
    if not table_exists('users'):
        op.create_table('users',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('full_name', sa.String(), nullable=False),
            sa.Column('email', sa.String(), nullable=True),
            sa.Column('user_type', sa.String(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
        op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
        op.create_index(op.f('ix_users_user_type'), 'users', ['user_type'], unique=False)

    for offer_table, extra_column in (('job_offers', 'contract_type'), ('internship_offers', 'type')):
        if not table_exists(offer_table):
            op.create_table(offer_table,
                sa.Column('id', sa.Integer(), nullable=False),
                sa.Column('pharmacy_owner_id', sa.Integer(), nullable=False),
                sa.Column('title', sa.String(), nullable=False),
                sa.Column(extra_column, sa.String(), nullable=True),
                sa.Column('region', sa.String(), nullable=True),
                sa.Column('status', sa.String(), nullable=False),
                sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
                sa.ForeignKeyConstraint(['pharmacy_owner_id'], ['users.id'], ),
                sa.PrimaryKeyConstraint('id')
            )
            op.create_index(op.f(f'ix_{offer_table}_id'), offer_table, ['id'], unique=False)
            op.create_index(op.f(f'ix_{offer_table}_pharmacy_owner_id'), offer_table, ['pharmacy_owner_id'], unique=False)
            op.create_index(op.f(f'ix_{offer_table}_region'), offer_table, ['region'], unique=False)
            op.create_index(op.f(f'ix_{offer_table}_status'), offer_table, ['status'], unique=False)

    if not table_exists('animation_missions'):
        op.create_table('animation_missions',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('client_id', sa.Integer(), nullable=False),
            sa.Column('animator_id', sa.Integer(), nullable=True),
            sa.Column('title', sa.String(), nullable=False),
            sa.Column('region', sa.String(), nullable=True),
            sa.Column('daily_rate', sa.Integer(), nullable=True),
            sa.Column('start_date', sa.Date(), nullable=False),
            sa.Column('end_date', sa.Date(), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
            sa.ForeignKeyConstraint(['animator_id'], ['users.id'], ),
            sa.ForeignKeyConstraint(['client_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_animation_missions_id'), 'animation_missions', ['id'], unique=False)
        op.create_index(op.f('ix_animation_missions_client_id'), 'animation_missions', ['client_id'], unique=False)
        op.create_index(op.f('ix_animation_missions_animator_id'), 'animation_missions', ['animator_id'], unique=False)
        op.create_index(op.f('ix_animation_missions_region'), 'animation_missions', ['region'], unique=False)
        op.create_index(op.f('ix_animation_missions_status'), 'animation_missions', ['status'], unique=False)

    if not table_exists('subscriptions'):
        op.create_table('subscriptions',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('tier', sa.String(), nullable=False),
            sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('auto_renew', sa.Boolean(), nullable=False),
            sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('user_id')
        )
        op.create_index(op.f('ix_subscriptions_id'), 'subscriptions', ['id'], unique=False)

    if not table_exists('usage_records'):
        counters = [
            'missions_published', 'missions_confirmed', 'alerts_sent', 'favorites_count',
            'super_likes_today', 'posts_published', 'videos_published',
            'sponsored_weeks_used', 'sponsored_cards_used', 'photos_count',
        ]
        op.create_table('usage_records',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('month_key', sa.String(length=7), nullable=False),
            *[sa.Column(name, sa.Integer(), nullable=False) for name in counters],
            sa.Column('super_likes_last_reset', sa.Date(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.CheckConstraint(' AND '.join(f'{name} >= 0' for name in counters), name='ck_usage_counters_non_negative'),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('user_id', 'month_key', name='uq_usage_user_month')
        )
        op.create_index(op.f('ix_usage_records_id'), 'usage_records', ['id'], unique=False)
        op.create_index(op.f('ix_usage_records_user_id'), 'usage_records', ['user_id'], unique=False)
        op.create_index(op.f('ix_usage_records_month_key'), 'usage_records', ['month_key'], unique=False)

    if not table_exists('swipes'):
        op.create_table('swipes',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('target_type', sa.String(), nullable=False),
            sa.Column('target_id', sa.Integer(), nullable=False),
            sa.Column('action', sa.String(), nullable=False),
            sa.Column('is_super_like', sa.Boolean(), nullable=False),
            sa.Column('super_liked_at', sa.DateTime(timezone=True), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('user_id', 'target_type', 'target_id', name='uq_swipe_actor_target')
        )
        op.create_index(op.f('ix_swipes_id'), 'swipes', ['id'], unique=False)
        op.create_index(op.f('ix_swipes_user_id'), 'swipes', ['user_id'], unique=False)
        op.create_index('idx_swipes_target', 'swipes', ['target_type', 'target_id'], unique=False)

    if not table_exists('matches'):
        op.create_table('matches',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('offer_type', sa.String(), nullable=False),
            sa.Column('offer_id', sa.Integer(), nullable=False),
            sa.Column('candidate_id', sa.Integer(), nullable=False),
            sa.Column('employer_id', sa.Integer(), nullable=False),
            sa.Column('candidate_liked', sa.Boolean(), nullable=False),
            sa.Column('employer_liked', sa.Boolean(), nullable=False),
            sa.Column('is_super_like', sa.Boolean(), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('matched_at', sa.DateTime(timezone=True), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(['candidate_id'], ['users.id'], ),
            sa.ForeignKeyConstraint(['employer_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('offer_type', 'offer_id', 'candidate_id', name='uq_match_offer_candidate')
        )
        op.create_index(op.f('ix_matches_id'), 'matches', ['id'], unique=False)
        op.create_index(op.f('ix_matches_candidate_id'), 'matches', ['candidate_id'], unique=False)
        op.create_index(op.f('ix_matches_employer_id'), 'matches', ['employer_id'], unique=False)
        op.create_index(op.f('ix_matches_status'), 'matches', ['status'], unique=False)
        op.create_index('idx_matches_employer_status', 'matches', ['employer_id', 'status'], unique=False)

    if not table_exists('animator_matches'):
        op.create_table('animator_matches',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('mission_id', sa.Integer(), nullable=False),
            sa.Column('animator_id', sa.Integer(), nullable=False),
            sa.Column('laboratory_id', sa.Integer(), nullable=False),
            sa.Column('animator_liked', sa.Boolean(), nullable=False),
            sa.Column('laboratory_liked', sa.Boolean(), nullable=False),
            sa.Column('is_super_like', sa.Boolean(), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('matched_at', sa.DateTime(timezone=True), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(['mission_id'], ['animation_missions.id'], ),
            sa.ForeignKeyConstraint(['animator_id'], ['users.id'], ),
            sa.ForeignKeyConstraint(['laboratory_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('mission_id', 'animator_id', name='uq_animator_match_mission_animator')
        )
        op.create_index(op.f('ix_animator_matches_id'), 'animator_matches', ['id'], unique=False)
        op.create_index(op.f('ix_animator_matches_mission_id'), 'animator_matches', ['mission_id'], unique=False)
        op.create_index(op.f('ix_animator_matches_animator_id'), 'animator_matches', ['animator_id'], unique=False)
        op.create_index(op.f('ix_animator_matches_laboratory_id'), 'animator_matches', ['laboratory_id'], unique=False)
        op.create_index(op.f('ix_animator_matches_status'), 'animator_matches', ['status'], unique=False)
        op.create_index('idx_animator_matches_lab_status', 'animator_matches', ['laboratory_id', 'status'], unique=False)

    if not table_exists('mission_fees'):
        op.create_table('mission_fees',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('mission_id', sa.Integer(), nullable=False),
            sa.Column('payer_id', sa.Integer(), nullable=False),
            sa.Column('amount', sa.Integer(), nullable=False),
            sa.Column('days', sa.Integer(), nullable=True),
            sa.Column('tier', sa.String(), nullable=True),
            sa.Column('included_in_subscription', sa.Boolean(), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(['mission_id'], ['animation_missions.id'], ),
            sa.ForeignKeyConstraint(['payer_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('mission_id')
        )
        op.create_index(op.f('ix_mission_fees_id'), 'mission_fees', ['id'], unique=False)
        op.create_index(op.f('ix_mission_fees_payer_id'), 'mission_fees', ['payer_id'], unique=False)
        op.create_index(op.f('ix_mission_fees_status'), 'mission_fees', ['status'], unique=False)

    if not table_exists('invoices'):
        op.create_table('invoices',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('invoice_number', sa.String(), nullable=False),
            sa.Column('kind', sa.String(), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('currency', sa.String(length=3), nullable=False),
            sa.Column('subtotal', sa.Integer(), nullable=False),
            sa.Column('discount', sa.Integer(), nullable=False),
            sa.Column('tax', sa.Integer(), nullable=False),
            sa.Column('total', sa.Integer(), nullable=False),
            sa.Column('description', sa.String(), nullable=True),
            sa.Column('line_items', sa.JSON(), nullable=False),
            sa.Column('mission_fee_id', sa.Integer(), nullable=True),
            sa.Column('subscription_id', sa.Integer(), nullable=True),
            sa.Column('period_start', sa.DateTime(timezone=True), nullable=True),
            sa.Column('period_end', sa.DateTime(timezone=True), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(['mission_fee_id'], ['mission_fees.id'], ),
            sa.ForeignKeyConstraint(['subscription_id'], ['subscriptions.id'], ),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('mission_fee_id')
        )
        op.create_index(op.f('ix_invoices_id'), 'invoices', ['id'], unique=False)
        op.create_index(op.f('ix_invoices_user_id'), 'invoices', ['user_id'], unique=False)
        op.create_index(op.f('ix_invoices_invoice_number'), 'invoices', ['invoice_number'], unique=True)
        op.create_index(op.f('ix_invoices_status'), 'invoices', ['status'], unique=False)
        op.create_index(op.f('ix_invoices_subscription_id'), 'invoices', ['subscription_id'], unique=False)
        op.create_index(op.f('ix_invoices_created_at'), 'invoices', ['created_at'], unique=False)

    if not table_exists('notifications'):
        op.create_table('notifications',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('type', sa.String(), nullable=False),
            sa.Column('title', sa.String(), nullable=False),
            sa.Column('body', sa.Text(), nullable=True),
            sa.Column('data', sa.JSON(), nullable=True),
            sa.Column('read', sa.Boolean(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_notifications_id'), 'notifications', ['id'], unique=False)
        op.create_index(op.f('ix_notifications_user_id'), 'notifications', ['user_id'], unique=False)
        op.create_index(op.f('ix_notifications_read'), 'notifications', ['read'], unique=False)
        op.create_index(op.f('ix_notifications_created_at'), 'notifications', ['created_at'], unique=False)

    if not table_exists('favorites'):
        op.create_table('favorites',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('target_type', sa.String(), nullable=False),
            sa.Column('target_id', sa.Integer(), nullable=False),
            sa.Column('notes', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('user_id', 'target_type', 'target_id', name='uq_favorite_user_target')
        )
        op.create_index(op.f('ix_favorites_id'), 'favorites', ['id'], unique=False)
        op.create_index(op.f('ix_favorites_user_id'), 'favorites', ['user_id'], unique=False)


def downgrade() -> None:
    """Drop the matching engine tables. Listing and user tables are left in place."""
    for table in (
        'favorites', 'notifications', 'invoices', 'mission_fees', 'animator_matches',
        'matches', 'swipes', 'usage_records', 'subscriptions',
    ):
        if table_exists(table):
            op.drop_table(table)
