"""Retrieval engine applying relevance thresholds on top of ranked search."""
import logging
from dataclasses import dataclass, field
from typing import List

from models.chunk import SearchResult
from services.vector_store import VectorStore
from config import QUERY_TOP_K, NO_MATCH_THRESHOLD, RELEVANCE_THRESHOLD

logger = logging.getLogger(__name__)

ANSWERED = "answered"
NO_MATCH = "no_match"
NOT_RELEVANT = "not_relevant"


@dataclass
class RetrievalOutcome:
    """Filtered search results and the policy decision behind them."""
    status: str
    results: List[SearchResult] = field(default_factory=list)
    top_similarity: float = 0.0


class RetrievalEngine:
    """Decide which ranked chunks are relevant enough to answer from."""

    def __init__(
        self,
        vector_store: VectorStore,
        top_k: int = QUERY_TOP_K,
        no_match_threshold: float = NO_MATCH_THRESHOLD,
        relevance_threshold: float = RELEVANCE_THRESHOLD
    ):
        """
        Initialize the retrieval engine.

        Args:
            vector_store: Indexed VectorStore to search
            top_k: Number of ranked chunks to consider
            no_match_threshold: Top similarity below this means nothing was found
            relevance_threshold: Results must score above this to be kept
        """
        self.vector_store = vector_store
        self.top_k = top_k
        self.no_match_threshold = no_match_threshold
        self.relevance_threshold = relevance_threshold
        logger.info("Initialized RetrievalEngine")

    def retrieve(self, query: str) -> RetrievalOutcome:
        """
        Retrieve relevant chunks for a query.

        1. Rank chunks with the vector store
        2. Report NO_MATCH when the best similarity is below no_match_threshold
        3. Keep only results above relevance_threshold; NOT_RELEVANT if none remain

        Args:
            query: User question

        Returns:
            RetrievalOutcome with status and the kept results

        Raises:
            NotInitializedError: If the vector store has no index yet
        """
        results = self.vector_store.search(query, top_k=self.top_k)

        if not results or results[0].similarity < self.no_match_threshold:
            logger.info("No chunks matched the query")
            return RetrievalOutcome(status=NO_MATCH)

        top_similarity = results[0].similarity
        relevant = [r for r in results if r.similarity > self.relevance_threshold]

        if not relevant:
            logger.info(
                f"No chunks above relevance threshold {self.relevance_threshold} "
                f"(top score: {top_similarity:.3f})"
            )
            return RetrievalOutcome(status=NOT_RELEVANT, top_similarity=top_similarity)

        logger.info(f"Retrieved {len(relevant)} chunks (top score: {top_similarity:.3f})")
        return RetrievalOutcome(status=ANSWERED, results=relevant, top_similarity=top_similarity)
