"""Unit tests for RetrievalEngine."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import Mock
from models.chunk import SearchResult
from services.retrieval_engine import (
    RetrievalEngine,
    ANSWERED,
    NO_MATCH,
    NOT_RELEVANT,
)
from services.vector_store import VectorStore, NotInitializedError


def make_results(*similarities):
    return [
        SearchResult(chunk=Mock(id=f"chunk-{i}"), similarity=similarity)
        for i, similarity in enumerate(similarities)
    ]


@pytest.fixture
def mock_vector_store():
    return Mock(spec=VectorStore)


class TestRetrievalEngine:
    """Test suite for RetrievalEngine."""

    def test_initialization_defaults(self, mock_vector_store):
        """Test default thresholds and top_k."""
        engine = RetrievalEngine(mock_vector_store)

        assert engine.top_k == 3
        assert engine.no_match_threshold == 0.05
        assert engine.relevance_threshold == 0.1

    def test_retrieve_searches_top_k(self, mock_vector_store):
        """Test the vector store is queried with the configured top_k."""
        mock_vector_store.search.return_value = make_results(0.5)
        engine = RetrievalEngine(mock_vector_store, top_k=4)

        engine.retrieve("what is the warranty?")

        mock_vector_store.search.assert_called_once_with("what is the warranty?", top_k=4)

    def test_no_results_is_no_match(self, mock_vector_store):
        mock_vector_store.search.return_value = []

        outcome = RetrievalEngine(mock_vector_store).retrieve("anything")

        assert outcome.status == NO_MATCH
        assert outcome.results == []

    def test_low_top_similarity_is_no_match(self, mock_vector_store):
        """Test a best score below 0.05 means nothing was found."""
        mock_vector_store.search.return_value = make_results(0.04, 0.01)

        outcome = RetrievalEngine(mock_vector_store).retrieve("anything")

        assert outcome.status == NO_MATCH
        assert outcome.results == []

    def test_weak_match_is_not_relevant(self, mock_vector_store):
        """Test scores between the thresholds report NOT_RELEVANT."""
        mock_vector_store.search.return_value = make_results(0.08, 0.06)

        outcome = RetrievalEngine(mock_vector_store).retrieve("anything")

        assert outcome.status == NOT_RELEVANT
        assert outcome.results == []
        assert outcome.top_similarity == 0.08

    def test_thresholds_at_boundaries(self, mock_vector_store):
        """Test 0.05 is not a no-match and 0.1 is not yet relevant."""
        engine = RetrievalEngine(mock_vector_store)

        mock_vector_store.search.return_value = make_results(0.05)
        assert engine.retrieve("q").status == NOT_RELEVANT

        mock_vector_store.search.return_value = make_results(0.1)
        assert engine.retrieve("q").status == NOT_RELEVANT

    def test_keeps_only_relevant_results(self, mock_vector_store):
        """Test results at or below the relevance threshold are filtered out."""
        mock_vector_store.search.return_value = make_results(0.5, 0.15, 0.1)

        outcome = RetrievalEngine(mock_vector_store).retrieve("q")

        assert outcome.status == ANSWERED
        assert [r.similarity for r in outcome.results] == [0.5, 0.15]
        assert outcome.top_similarity == 0.5

    def test_custom_thresholds(self, mock_vector_store):
        mock_vector_store.search.return_value = make_results(0.3, 0.25)
        engine = RetrievalEngine(mock_vector_store, no_match_threshold=0.2, relevance_threshold=0.28)

        outcome = engine.retrieve("q")

        assert outcome.status == ANSWERED
        assert len(outcome.results) == 1

    def test_not_initialized_propagates(self, mock_vector_store):
        """Test retrieval before indexing raises NotInitializedError."""
        mock_vector_store.search.side_effect = NotInitializedError()

        with pytest.raises(NotInitializedError):
            RetrievalEngine(mock_vector_store).retrieve("q")

    def test_with_real_store(self):
        """Test end to end over an indexed store."""
        from models.chunk import DocumentChunk

        texts = [
            "The warranty covers manufacturing defects for two years.",
            "Shipping takes five business days within Europe.",
            "Returns are accepted within thirty days of delivery.",
        ]
        chunks = [
            DocumentChunk(id=f"chunk-{i}", text=t, page_number=1, chunk_index=i,
                          start_offset=0, end_offset=len(t))
            for i, t in enumerate(texts)
        ]
        engine = RetrievalEngine(VectorStore.from_chunks(chunks))

        answered = engine.retrieve("How long is the warranty?")
        missing = engine.retrieve("What about volcanoes?")

        assert answered.status == ANSWERED
        assert answered.results[0].chunk.id == "chunk-0"
        assert missing.status == NO_MATCH
