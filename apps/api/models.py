from sqlalchemy import Column, Integer, Boolean, CheckConstraint, DateTime, ForeignKey, JSON, Text, String, Index
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.sql import func
from pgvector.sqlalchemy import Vector
from core.config import settings
from core.database import Base
import uuid

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Coach(Base):
    """
    A coaching persona (preset or user-authored).

    voice_profile holds the aggregated fingerprint produced by ingestion;
    catchphrases is the coach-level ordered, de-duplicated list (capped at 10).
    Deleting a coach means setting active=False.
    """
    __tablename__ = "coach"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    handle = Column(String(64), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)

    # One of the seven response style archetypes
    primary_response_style = Column(Text, nullable=False, default="empathetic_mirror")
    secondary_response_style = Column(Text, nullable=True)

    # {"energy_level", "directness", "formality", "emotion_focus"}: ints 1-10
    communication_traits = Column(JSONType, nullable=False, default=dict)
    voice_profile = Column(JSONType, nullable=False, default=dict)
    catchphrases = Column(JSONType, nullable=False, default=list)

    is_preset = Column(Boolean, default=False, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    public = Column(Boolean, default=False, nullable=False)

    total_content_pieces = Column(Integer, default=0, nullable=False)
    total_conversations = Column(Integer, default=0, nullable=False)
    # 'pending' | 'ready'
    processing_status = Column(Text, default="pending", nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    content_chunks = relationship("CoachContentChunk", back_populates="coach")


class CoachContentChunk(Base):
    """
    One ingested piece of coach material with its tags, stats and embedding.

    Rows are append-only; soft delete via is_deleted.
    """
    __tablename__ = "coach_content_chunk"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    coach_id = Column(UUID(as_uuid=True), ForeignKey("coach.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    content_type = Column(Text, nullable=False)
    file_name = Column(Text, nullable=True)

    intent_tags = Column(JSONType, nullable=False, default=list)
    situation_tags = Column(JSONType, nullable=False, default=list)
    voice_sample = Column(Boolean, default=False, nullable=False)
    sentence_structure = Column(Text, nullable=True)
    energy_level = Column(Integer, nullable=True)
    word_count = Column(Integer, default=0, nullable=False)

    # Null when the embedding call failed at ingestion time
    embedding = Column(Vector(settings.EMBEDDING_DIMENSIONS), nullable=True)
    # 'processed' | 'embedding_failed'
    processing_status = Column(Text, default="processed", nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    coach = relationship("Coach", back_populates="content_chunks")

    __table_args__ = (
        Index("ix_coach_content_chunk_coach_live", "coach_id", "is_deleted"),
    )


class ConversationTurn(Base):
    """One user or assistant message in a subscriber's SMS thread."""
    __tablename__ = "conversation_turn"

    # Integer key gives a stable insertion order for the retention window
    id = Column(Integer, primary_key=True, autoincrement=True)
    subscriber_id = Column(Text, nullable=False, index=True)
    coach_id = Column(UUID(as_uuid=True), ForeignKey("coach.id"), nullable=True)
    role = Column(Text, nullable=False)  # 'user' | 'assistant'
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("role IN ('user', 'assistant')", name="ck_conversation_turn_role"),
    )


class Subscriber(Base):
    """SMS subscriber and their delivery preferences."""
    __tablename__ = "subscriber"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    phone_number = Column(Text, unique=True, nullable=False, index=True)
    spice_level = Column(Integer, nullable=True)
    image_preference = Column(Text, nullable=True)
    coach_style = Column(Text, nullable=True)
    custom_coach_id = Column(UUID(as_uuid=True), ForeignKey("coach.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    custom_coach = relationship("Coach")

    __table_args__ = (
        CheckConstraint("spice_level IS NULL OR (spice_level >= 1 AND spice_level <= 5)", name="ck_subscriber_spice_level"),
    )


class CoachReplyLog(Base):
    """Best-effort analytics record of each generated reply."""
    __tablename__ = "coach_reply_log"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    coach_id = Column(UUID(as_uuid=True), ForeignKey("coach.id"), nullable=False, index=True)
    subscriber_id = Column(Text, nullable=True)
    user_message = Column(Text, nullable=False)
    reply_text = Column(Text, nullable=False)
    emotional_need = Column(Text, nullable=True)
    situation = Column(Text, nullable=True)
    used_chunk_ids = Column(JSONType, nullable=False, default=list)
    retrieval_status = Column(Text, nullable=True)
    response_time_ms = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
