"""In-memory TF-IDF vector store with cosine similarity search."""
import logging
import math
import time
from typing import List, Optional, Sequence, Tuple

from models.chunk import DocumentChunk, ProcessedChunk, SearchResult, TFIDFVector
from services.text_processing import analyze_terms, extract_key_sentences
from services.tfidf_index import IndexSnapshot, build_index
from config import TOP_K, KEY_SENTENCE_LIMIT

logger = logging.getLogger(__name__)


class NotInitializedError(RuntimeError):
    """Raised when the store is queried before an index has been built."""

    def __init__(self, message: str = "Vector store not initialized"):
        super().__init__(message)


def cosine_similarity(vector_a: TFIDFVector, vector_b: TFIDFVector) -> float:
    """
    Calculate cosine similarity between two sparse vectors.

    Returns 0.0 when either vector has zero magnitude.
    """
    dot_product = 0.0
    magnitude_a = 0.0
    magnitude_b = 0.0

    for key in set(vector_a) | set(vector_b):
        value_a = vector_a.get(key, 0.0)
        value_b = vector_b.get(key, 0.0)
        dot_product += value_a * value_b
        magnitude_a += value_a * value_a
        magnitude_b += value_b * value_b

    magnitude = math.sqrt(magnitude_a) * math.sqrt(magnitude_b)
    if magnitude == 0:
        return 0.0

    # Clamp rounding noise, weights are non-negative
    return max(0.0, min(1.0, dot_product / magnitude))


class VectorStore:
    """Store chunk TF-IDF vectors for one document and rank them against queries."""

    def __init__(self, key_sentence_limit: int = KEY_SENTENCE_LIMIT):
        """
        Initialize an empty, not yet searchable store.

        Args:
            key_sentence_limit: Maximum highlighted sentences per result
        """
        self.key_sentence_limit = key_sentence_limit
        self._snapshot: Optional[IndexSnapshot] = None

    @classmethod
    def from_chunks(cls, chunks: Sequence[DocumentChunk], **kwargs) -> "VectorStore":
        """Create a store and index the given chunks."""
        store = cls(**kwargs)
        store.build(chunks)
        return store

    @property
    def is_initialized(self) -> bool:
        return self._snapshot is not None

    @property
    def snapshot(self) -> IndexSnapshot:
        return self._require_snapshot()

    @property
    def chunks(self) -> Tuple[ProcessedChunk, ...]:
        return self._require_snapshot().chunks

    def build(self, chunks: Sequence[DocumentChunk]) -> None:
        """
        Index a document's chunks, replacing any previous index wholesale.

        Args:
            chunks: All chunks of the document
        """
        self._snapshot = build_index(chunks)
        logger.info("Vector store initialized. Ready for queries.")

    def search(self, query: str, top_k: int = TOP_K) -> List[SearchResult]:
        """
        Rank all chunks by cosine similarity to the query.

        No similarity threshold is applied; callers decide what is relevant
        enough. Ties keep the original chunk order.

        Args:
            query: Natural-language query
            top_k: Maximum number of results

        Returns:
            Up to top_k results, most similar first

        Raises:
            NotInitializedError: If no index has been built
            ValueError: If top_k is less than 1
        """
        snapshot = self._require_snapshot()
        if top_k < 1:
            raise ValueError("top_k must be positive")

        start_time = time.time()

        # Step 1: Query vector against the frozen IDF table
        analysis = analyze_terms(query)
        query_vector = snapshot.vectorize(analysis)
        logger.debug(f"Query terms: [{', '.join(analysis.terms)}]")

        # Step 2: Similarity with every chunk
        similarities = [
            (chunk, cosine_similarity(query_vector, chunk.tfidf_vector))
            for chunk in snapshot.chunks
        ]

        # Step 3-4: Stable sort, take top K
        similarities.sort(key=lambda item: item[1], reverse=True)
        top_results = similarities[:top_k]

        # Step 5: Highlight sentences
        results = [
            SearchResult(
                chunk=chunk,
                similarity=similarity,
                relevant_sentences=extract_key_sentences(
                    chunk.text, analysis.terms, limit=self.key_sentence_limit
                ),
            )
            for chunk, similarity in top_results
        ]

        elapsed_ms = int((time.time() - start_time) * 1000)
        top_similarity = f"{results[0].similarity:.3f}" if results else "N/A"
        logger.info(
            f"Search completed in {elapsed_ms}ms. Top similarity: {top_similarity}",
            extra={"query_terms": len(analysis.terms), "results": len(results)},
        )

        return results

    def get_stats(self) -> dict:
        """
        Get statistics about the store.

        Safe to call before the index is built.
        """
        if self._snapshot is None:
            return {
                "chunk_count": 0,
                "vocabulary_size": 0,
                "average_chunk_length": 0,
                "is_initialized": False,
            }

        chunks = self._snapshot.chunks
        average_chunk_length = (
            int(sum(len(chunk.text) for chunk in chunks) / len(chunks) + 0.5) if chunks else 0
        )
        return {
            "chunk_count": len(chunks),
            "vocabulary_size": len(self._snapshot.vocabulary),
            "average_chunk_length": average_chunk_length,
            "is_initialized": True,
        }

    def get_top_terms(self, limit: int = 20) -> List[Tuple[str, float]]:
        """
        Get the most important terms of the document.

        Each term is scored by the sum of its TF-IDF weight over all chunks.

        Raises:
            NotInitializedError: If no index has been built
        """
        snapshot = self._require_snapshot()
        term_scores: dict = {}
        for chunk in snapshot.chunks:
            for term, score in chunk.tfidf_vector.items():
                term_scores[term] = term_scores.get(term, 0.0) + score

        ranked = sorted(term_scores.items(), key=lambda item: item[1], reverse=True)
        return ranked[:limit]

    def find_chunks_with_terms(self, terms: Sequence[str]) -> List[ProcessedChunk]:
        """
        Find chunks whose raw text contains any of the terms.

        Plain case-insensitive substring matching, no tokenization.

        Raises:
            NotInitializedError: If no index has been built
        """
        snapshot = self._require_snapshot()
        lower_terms = [term.lower() for term in terms if term]
        return [
            chunk for chunk in snapshot.chunks
            if any(term in chunk.text.lower() for term in lower_terms)
        ]

    def _require_snapshot(self) -> IndexSnapshot:
        if self._snapshot is None:
            raise NotInitializedError()
        return self._snapshot
