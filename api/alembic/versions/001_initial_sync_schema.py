"""Initial migration: users, synced entities and sync bookkeeping

Revision ID: initial_sync
Revises:
Create Date: 2026-01-15 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'initial_sync'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create user table
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('password', sa.String(), nullable=False),
        sa.Column('lang_native', sa.String(), nullable=False),
        sa.Column('lang_learning', sa.String(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_user_username'), 'user', ['username'], unique=True)
    op.create_index(op.f('ix_user_email'), 'user', ['email'], unique=True)

    # Create review table (append-only; client_id is the idempotency key)
    op.create_table(
        'review',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('client_id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('vocabulary_id', sa.String(), nullable=False),
        sa.Column('review_type', sa.String(), nullable=False),
        sa.Column('direction', sa.String(), nullable=False),
        sa.Column('rating', sa.String(), nullable=False),
        sa.Column('quality', sa.Integer(), nullable=False),
        sa.Column('time_spent', sa.Integer(), nullable=False),
        sa.Column('correct', sa.Boolean(), nullable=False),
        sa.Column('difficulty', sa.Float(), nullable=False),
        sa.Column('reviewed_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('last_synced_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'client_id', name='uq_review_user_client_id')
    )
    op.create_index(op.f('ix_review_user_id'), 'review', ['user_id'], unique=False)
    op.create_index(op.f('ix_review_vocabulary_id'), 'review', ['vocabulary_id'], unique=False)
    op.create_index(op.f('ix_review_last_synced_at'), 'review', ['last_synced_at'], unique=False)

    # Create daily_stats table (one row per user and date)
    op.create_table(
        'daily_stats',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('words_added', sa.Integer(), nullable=False),
        sa.Column('cards_reviewed', sa.Integer(), nullable=False),
        sa.Column('correct_reviews', sa.Integer(), nullable=False),
        sa.Column('study_time', sa.Integer(), nullable=False),
        sa.Column('sessions_completed', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('last_synced_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'date', name='uq_daily_stats_user_date')
    )
    op.create_index(op.f('ix_daily_stats_user_id'), 'daily_stats', ['user_id'], unique=False)
    op.create_index(op.f('ix_daily_stats_last_synced_at'), 'daily_stats', ['last_synced_at'], unique=False)

    # Create vocabulary_item table (client-generated string ids)
    op.create_table(
        'vocabulary_item',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('spanish', sa.String(), nullable=False),
        sa.Column('english', sa.String(), nullable=False),
        sa.Column('part_of_speech', sa.String(), nullable=True),
        sa.Column('gender', sa.String(), nullable=True),
        sa.Column('level', sa.String(), nullable=False),
        sa.Column('notes', sa.String(), nullable=True),
        sa.Column('examples', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(), nullable=True),
        sa.Column('ease_factor', sa.Float(), nullable=False),
        sa.Column('interval', sa.Integer(), nullable=False),
        sa.Column('repetitions', sa.Integer(), nullable=False),
        sa.Column('last_review_date', sa.DateTime(), nullable=True),
        sa.Column('next_review_date', sa.DateTime(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('last_synced_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_vocabulary_item_user_id'), 'vocabulary_item', ['user_id'], unique=False)
    op.create_index(op.f('ix_vocabulary_item_last_synced_at'), 'vocabulary_item', ['last_synced_at'], unique=False)

    # Create sync_receipt table
    op.create_table(
        'sync_receipt',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('stream', sa.String(), nullable=False),
        sa.Column('operation_id', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'stream', 'operation_id', name='uq_sync_receipt_operation')
    )
    op.create_index(op.f('ix_sync_receipt_user_id'), 'sync_receipt', ['user_id'], unique=False)
    op.create_index(op.f('ix_sync_receipt_created_at'), 'sync_receipt', ['created_at'], unique=False)

    # Create sync_log table
    op.create_table(
        'sync_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('stream', sa.String(), nullable=False),
        sa.Column('sync_type', sa.String(), nullable=False),
        sa.Column('direction', sa.String(), nullable=False),
        sa.Column('device_id', sa.String(), nullable=True),
        sa.Column('items_synced', sa.Integer(), nullable=False),
        sa.Column('items_returned', sa.Integer(), nullable=False),
        sa.Column('conflicts_found', sa.Integer(), nullable=False),
        sa.Column('errors', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_sync_log_user_id'), 'sync_log', ['user_id'], unique=False)

    # Create device_info table
    op.create_table(
        'device_info',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('device_id', sa.String(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('device_name', sa.String(), nullable=False),
        sa.Column('last_active_at', sa.DateTime(), nullable=False),
        sa.Column('last_sync_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_device_info_device_id'), 'device_info', ['device_id'], unique=True)
    op.create_index(op.f('ix_device_info_user_id'), 'device_info', ['user_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_device_info_user_id'), table_name='device_info')
    op.drop_index(op.f('ix_device_info_device_id'), table_name='device_info')
    op.drop_table('device_info')
    op.drop_index(op.f('ix_sync_log_user_id'), table_name='sync_log')
    op.drop_table('sync_log')
    op.drop_index(op.f('ix_sync_receipt_created_at'), table_name='sync_receipt')
    op.drop_index(op.f('ix_sync_receipt_user_id'), table_name='sync_receipt')
    op.drop_table('sync_receipt')
    op.drop_index(op.f('ix_vocabulary_item_last_synced_at'), table_name='vocabulary_item')
    op.drop_index(op.f('ix_vocabulary_item_user_id'), table_name='vocabulary_item')
    op.drop_table('vocabulary_item')
    op.drop_index(op.f('ix_daily_stats_last_synced_at'), table_name='daily_stats')
    op.drop_index(op.f('ix_daily_stats_user_id'), table_name='daily_stats')
    op.drop_table('daily_stats')
    op.drop_index(op.f('ix_review_last_synced_at'), table_name='review')
    op.drop_index(op.f('ix_review_vocabulary_id'), table_name='review')
    op.drop_index(op.f('ix_review_user_id'), table_name='review')
    op.drop_table('review')
    op.drop_index(op.f('ix_user_email'), table_name='user')
    op.drop_index(op.f('ix_user_username'), table_name='user')
    op.drop_table('user')
