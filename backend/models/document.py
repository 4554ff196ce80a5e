"""Document data models."""
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class ExtractedDocument:
    """Text extracted from a PDF with the offsets at which pages 2..n begin."""
    text: str
    page_breaks: List[int] = field(default_factory=list)
    page_count: int = 1
    title: Optional[str] = None
    author: Optional[str] = None

    @property
    def word_count(self) -> int:
        return len(self.text.split())


@dataclass
class DocumentInfo:
    """Summary of the currently loaded document."""
    title: str
    page_count: int
    chunk_count: int
    average_chunk_size: int
    total_words: int
