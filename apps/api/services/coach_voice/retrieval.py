"""
Semantic Retriever

Finds a coach's own content that is semantically close to an incoming
message: embed the query, then ask the store for the nearest chunks owned
by that coach above a similarity threshold.

Retrieval only enriches the prompt, so it never raises. Failures come back
as a RetrievalResult with status "degraded" and a reason.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence
from uuid import UUID

from .config import DEFAULT_CONFIG, VoiceEngineConfig

logger = logging.getLogger(__name__)


RETRIEVAL_OK = "ok"
RETRIEVAL_EMPTY = "empty"
RETRIEVAL_DEGRADED = "degraded"


@dataclass
class RetrievedChunk:
    id: UUID
    content: str
    similarity: float
    content_type: Optional[str] = None


class SupportsEmbedding(Protocol):
    def embed(self, text: str) -> List[float]: ...


class SupportsSimilaritySearch(Protocol):
    def find_similar(
        self,
        coach_id: UUID,
        query_vector: Sequence[float],
        threshold: float,
        limit: int,
    ) -> List[RetrievedChunk]: ...


@dataclass
class RetrievalResult:
    chunks: List[RetrievedChunk] = field(default_factory=list)
    status: str = RETRIEVAL_EMPTY
    reason: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.status == RETRIEVAL_DEGRADED

    @property
    def chunk_ids(self) -> List[UUID]:
        return [chunk.id for chunk in self.chunks]


class SemanticRetriever:

    def __init__(
        self,
        embedder: SupportsEmbedding,
        store: SupportsSimilaritySearch,
        config: VoiceEngineConfig = DEFAULT_CONFIG,
    ):
        self.embedder = embedder
        self.store = store
        self.config = config

    def retrieve(
        self,
        coach_id: UUID,
        query: str,
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> RetrievalResult:
        limit = self.config.retrieval_limit if limit is None else limit
        threshold = self.config.similarity_threshold if threshold is None else threshold

        if not (query or "").strip():
            return RetrievalResult(status=RETRIEVAL_EMPTY, reason="empty query")

        try:
            query_vector = self.embedder.embed(query)
        except Exception as e:
            logger.warning(
                f"Query embedding failed for coach {coach_id}: {e}",
                extra={"extra_fields": {"coach_id": str(coach_id), "stage": "embed"}},
            )
            return RetrievalResult(status=RETRIEVAL_DEGRADED, reason=f"embedding failed: {e}")

        try:
            found = self.store.find_similar(coach_id, query_vector, threshold, limit)
        except Exception as e:
            logger.warning(
                f"Similarity search failed for coach {coach_id}: {e}",
                extra={"extra_fields": {"coach_id": str(coach_id), "stage": "search"}},
            )
            return RetrievalResult(status=RETRIEVAL_DEGRADED, reason=f"search failed: {e}")

        # threshold and limit hold even if the store returns extra rows
        chunks = sorted(
            (c for c in found if c.similarity >= threshold),
            key=lambda c: c.similarity,
            reverse=True,
        )[:limit]

        if not chunks:
            return RetrievalResult(status=RETRIEVAL_EMPTY, reason="no chunks above threshold")
        return RetrievalResult(chunks=chunks, status=RETRIEVAL_OK)

    def find_relevant_content(
        self,
        coach_id: UUID,
        query: str,
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> List[RetrievedChunk]:
        """Plain-list view of retrieve(); [] on any failure."""
        return self.retrieve(coach_id, query, limit=limit, threshold=threshold).chunks

