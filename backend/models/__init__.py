"""Data models for the PDF question answering service."""
from .document import ExtractedDocument, DocumentInfo
from .chunk import DocumentChunk, ProcessedChunk, SearchResult, TFIDFVector
from .api import (
    QueryRequest,
    QueryResponse,
    SearchRequest,
    SearchResponse,
    Source,
    DocumentResponse,
    StatsResponse,
    TermScore,
    TopTermsResponse,
    ChunkMatch,
    ChunkMatchResponse,
)

__all__ = [
    "ExtractedDocument",
    "DocumentInfo",
    "DocumentChunk",
    "ProcessedChunk",
    "SearchResult",
    "TFIDFVector",
    "QueryRequest",
    "QueryResponse",
    "SearchRequest",
    "SearchResponse",
    "Source",
    "DocumentResponse",
    "StatsResponse",
    "TermScore",
    "TopTermsResponse",
    "ChunkMatch",
    "ChunkMatchResponse",
]
