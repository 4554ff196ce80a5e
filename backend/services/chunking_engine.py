"""Chunking engine that splits document text along paragraph and sentence boundaries."""
import logging
import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from models.chunk import DocumentChunk
from config import (
    CHUNK_TARGET_SIZE,
    CHUNK_MAX_SIZE,
    CHUNK_MIN_SIZE,
    CHUNK_OVERLAP,
    EMIT_SHORT_TAIL,
)

logger = logging.getLogger(__name__)

PARAGRAPH_PATTERN = re.compile(r"\n\s*\n")
SENTENCE_END_PATTERN = re.compile(r"([.!?]+)\s+")
PARAGRAPH_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class ChunkConfig:
    """Character-based size limits for chunking."""
    target_size: int = CHUNK_TARGET_SIZE
    max_size: int = CHUNK_MAX_SIZE
    min_size: int = CHUNK_MIN_SIZE
    overlap_size: int = CHUNK_OVERLAP
    emit_short_tail: bool = EMIT_SHORT_TAIL  # keep a trailing remainder below min_size

    def __post_init__(self):
        if self.min_size <= 0 or self.target_size <= 0 or self.max_size <= 0:
            raise ValueError("Chunk sizes must be positive")
        if not self.min_size <= self.target_size <= self.max_size:
            raise ValueError(
                f"Chunk sizes must satisfy min <= target <= max "
                f"(min={self.min_size}, target={self.target_size}, max={self.max_size})"
            )
        if self.overlap_size < 0:
            raise ValueError(f"Invalid chunk overlap: {self.overlap_size}")
        if self.overlap_size >= self.min_size:
            raise ValueError(
                f"Overlap must be smaller than the minimum chunk size "
                f"(overlap={self.overlap_size}, min={self.min_size})"
            )


def get_page_number(offset: int, page_breaks: Sequence[int]) -> int:
    """
    Determine which page a character offset belongs to.

    Args:
        offset: Character position in the full text
        page_breaks: Ordered offsets at which pages 2..n begin

    Returns:
        1-indexed page number
    """
    for i, page_break in enumerate(page_breaks):
        if offset < page_break:
            return i + 1
    return len(page_breaks) + 1


class ChunkingEngine:
    """Segments document text into overlapping, size-bounded chunks."""

    def __init__(self, config: Optional[ChunkConfig] = None):
        """
        Initialize ChunkingEngine.

        Args:
            config: Size limits; defaults come from config.py
        """
        self.config = config or ChunkConfig()

    def chunk_text(self, text: str, page_breaks: Optional[Sequence[int]] = None) -> List[DocumentChunk]:
        """
        Chunk text, preferring paragraph and sentence boundaries.

        Paragraphs are accumulated into a buffer. A buffer that would overflow
        max_size is emitted and the next buffer starts with its trailing
        overlap. Once the buffer reaches target_size it is cut at the latest
        sentence end between min_size and target_size.

        Args:
            text: The full document text
            page_breaks: Character offsets where pages 2..n begin

        Returns:
            Ordered list of chunks with page numbers and character offsets
        """
        page_breaks = list(page_breaks or [])
        cfg = self.config
        chunks: List[DocumentChunk] = []

        buffer = ""
        buffer_start = 0
        buffer_end = 0

        for para_start, para_end, paragraph in self._paragraphs(text):
            if buffer and len(buffer) + len(paragraph) > cfg.max_size:
                if len(buffer) >= cfg.min_size:
                    chunks.append(self._create_chunk(
                        buffer.strip(), len(chunks), buffer_start, buffer_end, page_breaks
                    ))
                    overlap = self._overlap_text(buffer)
                    buffer = overlap
                    buffer_start = buffer_end - len(overlap)
                # else: too small to emit, the paragraph is appended anyway

            if buffer:
                buffer += PARAGRAPH_SEPARATOR + paragraph
            else:
                buffer = paragraph
                buffer_start = para_start
            buffer_end = para_end

            while len(buffer) >= cfg.target_size:
                break_point = self._find_break_point(buffer)
                if break_point is None:
                    break

                chunks.append(self._create_chunk(
                    buffer[:break_point].strip(),
                    len(chunks),
                    buffer_start,
                    buffer_start + break_point,
                    page_breaks,
                ))

                # Continue with the overlap window plus everything after the break
                restart = max(break_point - cfg.overlap_size, 0)
                remainder = buffer[restart:]
                leading = len(remainder) - len(remainder.lstrip())
                buffer = remainder.strip()
                buffer_start += restart + leading

        if buffer.strip():
            if len(buffer) >= cfg.min_size or cfg.emit_short_tail:
                chunks.append(self._create_chunk(
                    buffer.strip(), len(chunks), buffer_start, buffer_end, page_breaks
                ))
            else:
                logger.debug(
                    f"Dropped trailing remainder of {len(buffer)} chars "
                    f"(below min size {cfg.min_size})"
                )

        logger.info(f"Created {len(chunks)} chunks from {len(text)} characters")
        return chunks

    @staticmethod
    def _paragraphs(text: str) -> Iterator[Tuple[int, int, str]]:
        """Yield (start, end, text) for each non-empty trimmed paragraph."""
        position = 0
        for separator in PARAGRAPH_PATTERN.finditer(text):
            yield from ChunkingEngine._trimmed(text, position, separator.start())
            position = separator.end()
        yield from ChunkingEngine._trimmed(text, position, len(text))

    @staticmethod
    def _trimmed(text: str, start: int, end: int) -> Iterator[Tuple[int, int, str]]:
        raw = text[start:end]
        paragraph = raw.strip()
        if paragraph:
            leading = len(raw) - len(raw.lstrip())
            yield start + leading, start + leading + len(paragraph), paragraph

    def _find_break_point(self, text: str) -> Optional[int]:
        """Latest sentence end within [min_size, target_size], or None."""
        best_break = None
        for match in SENTENCE_END_PATTERN.finditer(text):
            position = match.end(1)
            if position > self.config.target_size:
                break
            if position >= self.config.min_size:
                best_break = position
        return best_break

    def _overlap_text(self, text: str) -> str:
        """Get overlap text from the end of a chunk, starting at a word boundary."""
        overlap_size = self.config.overlap_size
        if overlap_size == 0:
            return ""
        if len(text) <= overlap_size:
            return text

        overlap = text[-overlap_size:]
        space_index = overlap.find(" ")
        if space_index != -1:
            return overlap[space_index + 1:].lstrip()
        return overlap.lstrip()

    @staticmethod
    def _create_chunk(
        text: str,
        chunk_index: int,
        start_offset: int,
        end_offset: int,
        page_breaks: Sequence[int]
    ) -> DocumentChunk:
        return DocumentChunk(
            id=f"chunk-{chunk_index}",
            text=text,
            page_number=get_page_number(start_offset, page_breaks),
            chunk_index=chunk_index,
            start_offset=start_offset,
            end_offset=end_offset,
        )
