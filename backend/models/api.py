"""API request and response schemas."""
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator


class QueryRequest(BaseModel):
    """Request to ask a question about the loaded document."""
    question: str = Field(..., min_length=1, max_length=2000)

    @field_validator("question")
    @classmethod
    def validate_question(cls, v: str) -> str:
        """Ensure question is not just whitespace."""
        if not v.strip():
            raise ValueError("Question cannot be empty or only whitespace")
        return v.strip()


class SearchRequest(BaseModel):
    """Request for raw ranked retrieval without relevance thresholds."""
    query: str = Field(..., max_length=2000)
    top_k: int = Field(5, ge=1, le=50)


class Source(BaseModel):
    """A retrieved chunk cited by an answer."""
    chunk_id: str
    page_number: int
    similarity: float = Field(..., ge=0.0, le=1.0)
    relevant_sentences: List[str] = []
    text: Optional[str] = None


class QueryResponse(BaseModel):
    """Answer to a question with the sources it was built from."""
    answer: str
    status: str
    is_llm_generated: bool
    processing_time_ms: int
    sources: List[Source] = []


class SearchResponse(BaseModel):
    """Ranked retrieval results."""
    query: str
    results: List[Source]


class DocumentResponse(BaseModel):
    """Summary returned after a document is loaded and indexed."""
    title: str
    page_count: int
    chunk_count: int
    average_chunk_size: int
    total_words: int
    message: str = "Document loaded and indexed successfully"


class StatsResponse(BaseModel):
    """Index statistics."""
    chunk_count: int
    vocabulary_size: int
    average_chunk_length: int
    is_initialized: bool
    document_title: Optional[str] = None


class TermScore(BaseModel):
    term: str
    score: float


class TopTermsResponse(BaseModel):
    terms: List[TermScore]


class ChunkMatch(BaseModel):
    chunk_id: str
    page_number: int
    text: str


class ChunkMatchResponse(BaseModel):
    terms: List[str]
    chunks: List[ChunkMatch]
