"""TF-IDF index construction over document chunks."""
import logging
import math
import time
from collections import Counter
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping, Sequence, Tuple

from models.chunk import DocumentChunk, ProcessedChunk, TFIDFVector
from services.text_processing import TermAnalysis, analyze_terms

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexSnapshot:
    """
    Immutable result of indexing one document.

    The vocabulary and IDF table are frozen at build time. Processed chunk
    vectors are only meaningful relative to the snapshot that produced them.
    """
    chunks: Tuple[ProcessedChunk, ...]
    vocabulary: FrozenSet[str]
    idf: Mapping[str, float]

    def vectorize(self, analysis: TermAnalysis) -> TFIDFVector:
        """Weight raw term counts by the frozen IDF table."""
        return compute_tfidf(analysis, self.idf)

    @property
    def chunk_count(self) -> int:
        return len(self.chunks)


def compute_idf(term_sets: Sequence[Sequence[str]]) -> Dict[str, float]:
    """
    Calculate inverse document frequency for every observed term.

    IDF = ln(total_chunks / chunks_containing_term)

    Args:
        term_sets: Deduplicated terms of each chunk

    Returns:
        Mapping of term to IDF; terms present in every chunk get 0.0
    """
    document_count = len(term_sets)
    document_frequency: Counter = Counter()
    for terms in term_sets:
        document_frequency.update(set(terms))

    return {
        term: math.log(document_count / df)
        for term, df in document_frequency.items()
    }


def compute_tfidf(analysis: TermAnalysis, idf: Mapping[str, float]) -> TFIDFVector:
    """
    Calculate the TF-IDF vector for analyzed text.

    TF = raw_occurrences / total_raw_terms, TF-IDF = TF * IDF. Terms missing
    from the IDF table are weighted 0.

    Args:
        analysis: Term list and raw counts from analyze_terms
        idf: IDF table

    Returns:
        Read-only mapping of term to weight, empty when there are no terms
    """
    total = analysis.total
    if total == 0:
        return MappingProxyType({})

    vector = {
        term: (count / total) * idf.get(term, 0.0)
        for term, count in analysis.counts.items()
    }
    return MappingProxyType(vector)


def build_index(chunks: Sequence[DocumentChunk]) -> IndexSnapshot:
    """
    Build a TF-IDF index over all chunks of a document.

    Args:
        chunks: Ordered chunks from the chunking engine

    Returns:
        IndexSnapshot with vocabulary, IDF table and processed chunks
    """
    start_time = time.time()
    logger.info(f"Building TF-IDF index over {len(chunks)} chunks...")

    # Step 1: Extract terms and raw counts per chunk
    analyses = [analyze_terms(chunk.text) for chunk in chunks]

    # Step 2: Global vocabulary
    vocabulary = frozenset(term for analysis in analyses for term in analysis.terms)

    # Step 3: IDF table
    idf = MappingProxyType(compute_idf([analysis.terms for analysis in analyses]))

    # Step 4: Per-chunk vectors
    processed = tuple(
        ProcessedChunk(
            id=chunk.id,
            text=chunk.text,
            page_number=chunk.page_number,
            chunk_index=chunk.chunk_index,
            start_offset=chunk.start_offset,
            end_offset=chunk.end_offset,
            tfidf_vector=compute_tfidf(analysis, idf),
            term_count=analysis.total,
        )
        for chunk, analysis in zip(chunks, analyses)
    )

    elapsed_ms = int((time.time() - start_time) * 1000)
    logger.info(
        f"Index built: {len(processed)} chunks, {len(vocabulary)} unique terms "
        f"in {elapsed_ms}ms"
    )

    return IndexSnapshot(chunks=processed, vocabulary=vocabulary, idf=idf)
