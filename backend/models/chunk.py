"""Chunk data models."""
from dataclasses import dataclass, field
from typing import List, Mapping

# term -> TF-IDF weight; absent terms are zero
TFIDFVector = Mapping[str, float]


@dataclass(frozen=True)
class DocumentChunk:
    """Represents one retrievable segment of the source document."""
    id: str  # Format: "chunk-{chunk_index}"
    text: str
    page_number: int
    chunk_index: int
    start_offset: int
    end_offset: int


@dataclass(frozen=True)
class ProcessedChunk(DocumentChunk):
    """Chunk carrying its TF-IDF vector relative to one index snapshot."""
    tfidf_vector: TFIDFVector
    term_count: int


@dataclass
class SearchResult:
    """Chunk with cosine similarity and highlighted sentences for a query."""
    chunk: ProcessedChunk
    similarity: float  # 0.0 to 1.0
    relevant_sentences: List[str] = field(default_factory=list)
