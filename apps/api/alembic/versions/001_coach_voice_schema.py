"""coach voice schema with pgvector extension

Revision ID: 001
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from pgvector.sqlalchemy import Vector

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

EMBEDDING_DIMENSIONS = 1536

JSONType = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def _is_postgres() -> bool:
    return op.get_bind().dialect.name == 'postgresql'


def upgrade() -> None:
    # Enable pgvector for the embedding column
    if _is_postgres():
        op.execute('CREATE EXTENSION IF NOT EXISTS vector;')

    # Create coach table
    op.create_table(
        'coach',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('handle', sa.String(64), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('primary_response_style', sa.Text(), nullable=False),
        sa.Column('secondary_response_style', sa.Text(), nullable=True),
        sa.Column('communication_traits', JSONType, nullable=False),
        sa.Column('voice_profile', JSONType, nullable=False),
        sa.Column('catchphrases', JSONType, nullable=False),
        sa.Column('is_preset', sa.Boolean(), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('public', sa.Boolean(), nullable=False),
        sa.Column('total_content_pieces', sa.Integer(), nullable=False),
        sa.Column('total_conversations', sa.Integer(), nullable=False),
        sa.Column('processing_status', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_coach_handle', 'coach', ['handle'], unique=True)

    # Create coach_content_chunk table
    op.create_table(
        'coach_content_chunk',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('coach_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('content_type', sa.Text(), nullable=False),
        sa.Column('file_name', sa.Text(), nullable=True),
        sa.Column('intent_tags', JSONType, nullable=False),
        sa.Column('situation_tags', JSONType, nullable=False),
        sa.Column('voice_sample', sa.Boolean(), nullable=False),
        sa.Column('sentence_structure', sa.Text(), nullable=True),
        sa.Column('energy_level', sa.Integer(), nullable=True),
        sa.Column('word_count', sa.Integer(), nullable=False),
        sa.Column('embedding', Vector(EMBEDDING_DIMENSIONS), nullable=True),
        sa.Column('processing_status', sa.Text(), nullable=False),
        sa.Column('is_deleted', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['coach_id'], ['coach.id'], ),
    )
    op.create_index('ix_coach_content_chunk_coach_id', 'coach_content_chunk', ['coach_id'])
    op.create_index('ix_coach_content_chunk_coach_live', 'coach_content_chunk', ['coach_id', 'is_deleted'])

    # Create conversation_turn table
    op.create_table(
        'conversation_turn',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('subscriber_id', sa.Text(), nullable=False),
        sa.Column('coach_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('role', sa.Text(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['coach_id'], ['coach.id'], ),
        sa.CheckConstraint("role IN ('user', 'assistant')", name='ck_conversation_turn_role'),
    )
    op.create_index('ix_conversation_turn_subscriber_id', 'conversation_turn', ['subscriber_id'])

    # Create subscriber table
    op.create_table(
        'subscriber',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('phone_number', sa.Text(), nullable=False),
        sa.Column('spice_level', sa.Integer(), nullable=True),
        sa.Column('image_preference', sa.Text(), nullable=True),
        sa.Column('coach_style', sa.Text(), nullable=True),
        sa.Column('custom_coach_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['custom_coach_id'], ['coach.id'], ),
        sa.CheckConstraint(
            'spice_level IS NULL OR (spice_level >= 1 AND spice_level <= 5)',
            name='ck_subscriber_spice_level',
        ),
    )
    op.create_index('ix_subscriber_phone_number', 'subscriber', ['phone_number'], unique=True)

    # Create coach_reply_log table
    op.create_table(
        'coach_reply_log',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('coach_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('subscriber_id', sa.Text(), nullable=True),
        sa.Column('user_message', sa.Text(), nullable=False),
        sa.Column('reply_text', sa.Text(), nullable=False),
        sa.Column('emotional_need', sa.Text(), nullable=True),
        sa.Column('situation', sa.Text(), nullable=True),
        sa.Column('used_chunk_ids', JSONType, nullable=False),
        sa.Column('retrieval_status', sa.Text(), nullable=True),
        sa.Column('response_time_ms', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['coach_id'], ['coach.id'], ),
    )
    op.create_index('ix_coach_reply_log_coach_id', 'coach_reply_log', ['coach_id'])


def downgrade() -> None:
    op.drop_index('ix_coach_reply_log_coach_id', table_name='coach_reply_log')
    op.drop_table('coach_reply_log')
    op.drop_index('ix_subscriber_phone_number', table_name='subscriber')
    op.drop_table('subscriber')
    op.drop_index('ix_conversation_turn_subscriber_id', table_name='conversation_turn')
    op.drop_table('conversation_turn')
    op.drop_index('ix_coach_content_chunk_coach_live', table_name='coach_content_chunk')
    op.drop_index('ix_coach_content_chunk_coach_id', table_name='coach_content_chunk')
    op.drop_table('coach_content_chunk')
    op.drop_index('ix_coach_handle', table_name='coach')
    op.drop_table('coach')
    if _is_postgres():
        op.execute('DROP EXTENSION IF EXISTS vector;')
