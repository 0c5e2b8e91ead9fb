"""
Tests for SemanticRetriever.

Retrieval never raises: embedding or search failures come back as a
degraded RetrievalResult and find_relevant_content() returns [].
"""

import pytest
from unittest.mock import MagicMock
from uuid import uuid4

from services.coach_voice.config import VoiceEngineConfig
from services.coach_voice.retrieval import (
    RETRIEVAL_DEGRADED,
    RETRIEVAL_EMPTY,
    RETRIEVAL_OK,
    RetrievedChunk,
    SemanticRetriever,
)


def chunk(similarity, content="content"):
    return RetrievedChunk(id=uuid4(), content=content, similarity=similarity)


@pytest.fixture
def embedder():
    client = MagicMock()
    client.embed.return_value = [0.1, 0.2, 0.3]
    return client


@pytest.fixture
def store():
    return MagicMock()


class TestRetrieve:

    def test_passes_defaults_to_store(self, embedder, store):
        coach_id = uuid4()
        store.find_similar.return_value = []
        SemanticRetriever(embedder, store).retrieve(coach_id, "how do I squat")

        embedder.embed.assert_called_once_with("how do I squat")
        store.find_similar.assert_called_once_with(coach_id, [0.1, 0.2, 0.3], 0.7, 3)

    def test_config_overrides_defaults(self, embedder, store):
        store.find_similar.return_value = []
        config = VoiceEngineConfig(similarity_threshold=0.8, retrieval_limit=5)
        SemanticRetriever(embedder, store, config).retrieve(uuid4(), "query")
        _, _, threshold, limit = store.find_similar.call_args[0]
        assert (threshold, limit) == (0.8, 5)

    def test_ok_result_sorted_and_capped(self, embedder, store):
        store.find_similar.return_value = [chunk(0.75), chunk(0.95), chunk(0.85), chunk(0.9)]
        result = SemanticRetriever(embedder, store).retrieve(uuid4(), "query")

        assert result.status == RETRIEVAL_OK
        assert not result.degraded
        assert [c.similarity for c in result.chunks] == [0.95, 0.9, 0.85]
        assert result.chunk_ids == [c.id for c in result.chunks]

    def test_below_threshold_filtered(self, embedder, store):
        store.find_similar.return_value = [chunk(0.69), chunk(0.7)]
        result = SemanticRetriever(embedder, store).retrieve(uuid4(), "query")
        assert [c.similarity for c in result.chunks] == [0.7]

    def test_no_matches_is_empty_not_degraded(self, embedder, store):
        store.find_similar.return_value = []
        result = SemanticRetriever(embedder, store).retrieve(uuid4(), "query")
        assert result.status == RETRIEVAL_EMPTY
        assert result.chunks == []
        assert not result.degraded

    def test_blank_query_skips_embedding(self, embedder, store):
        result = SemanticRetriever(embedder, store).retrieve(uuid4(), "   ")
        assert result.status == RETRIEVAL_EMPTY
        embedder.embed.assert_not_called()

    def test_embedding_failure_degrades(self, embedder, store):
        embedder.embed.side_effect = RuntimeError("rate limited")
        result = SemanticRetriever(embedder, store).retrieve(uuid4(), "query")

        assert result.status == RETRIEVAL_DEGRADED
        assert result.degraded
        assert result.chunks == []
        assert "rate limited" in result.reason
        store.find_similar.assert_not_called()

    def test_search_failure_degrades(self, embedder, store):
        store.find_similar.side_effect = Exception("operator does not exist")
        result = SemanticRetriever(embedder, store).retrieve(uuid4(), "query")
        assert result.degraded
        assert result.reason.startswith("search failed")


class TestFindRelevantContent:

    def test_embedding_failure_returns_empty_list(self, embedder, store):
        embedder.embed.side_effect = Exception("boom")
        assert SemanticRetriever(embedder, store).find_relevant_content(uuid4(), "query") == []

    def test_returns_chunks(self, embedder, store):
        found = chunk(0.9, "Squat deep")
        store.find_similar.return_value = [found]
        assert SemanticRetriever(embedder, store).find_relevant_content(uuid4(), "query") == [found]
