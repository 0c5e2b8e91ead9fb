"""
Coach Content Store

SQLAlchemy-backed repositories used by the voice pipeline:

- CoachContentStore: coach rows and their content chunks, including the
  pgvector nearest-neighbour search scoped to one coach.
- ConversationLogStore: per-subscriber SMS turns with a retention cap.

Repositories flush but never commit; the caller owns the transaction.
"""
import logging
from typing import Any, List, Mapping, Optional, Sequence
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import Coach, CoachContentChunk, CoachReplyLog, ConversationTurn
from services.coach_voice.config import DEFAULT_CONFIG
from services.coach_voice.retrieval import RetrievedChunk

logger = logging.getLogger(__name__)


# Columns update_coach() may touch
COACH_UPDATABLE_FIELDS = {
    "name",
    "description",
    "primary_response_style",
    "secondary_response_style",
    "communication_traits",
    "voice_profile",
    "catchphrases",
    "active",
    "public",
    "total_content_pieces",
    "total_conversations",
    "processing_status",
}


class CoachContentStore:

    def __init__(self, db: Session):
        self.db = db

    def get_coach(self, coach_id: UUID, active_only: bool = False) -> Optional[Coach]:
        query = self.db.query(Coach).filter(Coach.id == coach_id)
        if active_only:
            query = query.filter(Coach.active.is_(True))
        return query.first()

    def get_coach_by_handle(self, handle: str) -> Optional[Coach]:
        return self.db.query(Coach).filter(Coach.handle == handle).first()

    def update_coach(self, coach_id: UUID, fields: Mapping[str, Any]) -> Optional[Coach]:
        unknown = set(fields) - COACH_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update coach fields: {', '.join(sorted(unknown))}")

        coach = self.get_coach(coach_id)
        if coach is None:
            return None
        for key, value in fields.items():
            setattr(coach, key, value)
        self.db.flush()
        return coach

    def insert_chunk(self, record: Mapping[str, Any]) -> CoachContentChunk:
        chunk = CoachContentChunk(**record)
        self.db.add(chunk)
        self.db.flush()
        return chunk

    def count_chunks(self, coach_id: UUID) -> int:
        return (
            self.db.query(func.count(CoachContentChunk.id))
            .filter(
                CoachContentChunk.coach_id == coach_id,
                CoachContentChunk.is_deleted.is_(False),
            )
            .scalar()
            or 0
        )

    def find_similar(
        self,
        coach_id: UUID,
        query_vector: Sequence[float],
        threshold: float,
        limit: int,
    ) -> List[RetrievedChunk]:
        """
        Nearest chunks for one coach by cosine similarity (pgvector).

        similarity = 1 - cosine_distance; rows below threshold are dropped,
        results ordered by similarity descending.
        """
        distance = CoachContentChunk.embedding.cosine_distance(list(query_vector))
        similarity = (1 - distance).label("similarity")
        rows = (
            self.db.query(CoachContentChunk, similarity)
            .filter(
                CoachContentChunk.coach_id == coach_id,
                CoachContentChunk.is_deleted.is_(False),
                CoachContentChunk.embedding.isnot(None),
                distance <= 1 - threshold,
            )
            .order_by(distance)
            .limit(limit)
            .all()
        )
        return [
            RetrievedChunk(
                id=chunk.id,
                content=chunk.content,
                similarity=float(score),
                content_type=chunk.content_type,
            )
            for chunk, score in rows
        ]

    def log_reply(self, record: Mapping[str, Any]) -> CoachReplyLog:
        entry = CoachReplyLog(**record)
        self.db.add(entry)
        self.db.flush()
        return entry


class ConversationLogStore:

    def __init__(self, db: Session, retention: int = DEFAULT_CONFIG.conversation_retention):
        self.db = db
        self.retention = retention

    def append_turn(
        self,
        subscriber_id: str,
        role: str,
        content: str,
        coach_id: Optional[UUID] = None,
    ) -> ConversationTurn:
        """Append a turn, then drop the oldest turns beyond the retention cap."""
        turn = ConversationTurn(
            subscriber_id=subscriber_id,
            role=role,
            content=content,
            coach_id=coach_id,
        )
        self.db.add(turn)
        self.db.flush()
        self._trim(subscriber_id)
        return turn

    def _trim(self, subscriber_id: str) -> int:
        keep_ids = [
            row.id
            for row in self.db.query(ConversationTurn.id)
            .filter(ConversationTurn.subscriber_id == subscriber_id)
            .order_by(ConversationTurn.id.desc())
            .limit(self.retention)
            .all()
        ]
        removed = (
            self.db.query(ConversationTurn)
            .filter(
                ConversationTurn.subscriber_id == subscriber_id,
                ConversationTurn.id.notin_(keep_ids),
            )
            .delete(synchronize_session=False)
        )
        if removed:
            logger.debug(f"Trimmed {removed} conversation turns for subscriber {subscriber_id}")
        return removed

    def get_recent_turns(self, subscriber_id: str, n: int) -> List[ConversationTurn]:
        """Last n turns for a subscriber, oldest first."""
        if n <= 0:
            return []
        newest_first = (
            self.db.query(ConversationTurn)
            .filter(ConversationTurn.subscriber_id == subscriber_id)
            .order_by(ConversationTurn.id.desc())
            .limit(n)
            .all()
        )
        return list(reversed(newest_first))

    def count_turns(self, subscriber_id: str) -> int:
        return (
            self.db.query(func.count(ConversationTurn.id))
            .filter(ConversationTurn.subscriber_id == subscriber_id)
            .scalar()
            or 0
        )

