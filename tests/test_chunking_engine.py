"""Unit tests for ChunkingEngine."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from services.chunking_engine import ChunkingEngine, ChunkConfig, get_page_number

# 50 characters, no sentence terminators
PARAGRAPH = "alpha beta gamma delta epsilon zeta eta theta iota"


@pytest.fixture
def small_engine():
    """Engine with small limits so short texts exercise splitting."""
    return ChunkingEngine(ChunkConfig(target_size=60, max_size=100, min_size=20, overlap_size=10))


class TestChunkConfig:
    """Test suite for ChunkConfig validation."""

    def test_defaults(self):
        """Test default character limits."""
        config = ChunkConfig()

        assert config.target_size == 800
        assert config.max_size == 1200
        assert config.min_size == 200
        assert config.overlap_size == 100
        assert config.emit_short_tail is False

    def test_min_above_target_raises(self):
        """Test that min > target is rejected."""
        with pytest.raises(ValueError, match="min <= target <= max"):
            ChunkConfig(min_size=900)

    def test_target_above_max_raises(self):
        """Test that target > max is rejected."""
        with pytest.raises(ValueError, match="min <= target <= max"):
            ChunkConfig(target_size=1500)

    def test_overlap_not_below_min_raises(self):
        """Test that overlap >= min is rejected."""
        with pytest.raises(ValueError, match="Overlap must be smaller"):
            ChunkConfig(overlap_size=200)

    def test_negative_overlap_raises(self):
        """Test that negative overlap is rejected."""
        with pytest.raises(ValueError, match="Invalid chunk overlap"):
            ChunkConfig(overlap_size=-1)


class TestGetPageNumber:
    """Test suite for page lookup from character offsets."""

    def test_no_page_breaks(self):
        assert get_page_number(5, []) == 1

    def test_offsets_around_breaks(self):
        """Test that a break offset belongs to the page it starts."""
        breaks = [100, 200]

        assert get_page_number(0, breaks) == 1
        assert get_page_number(99, breaks) == 1
        assert get_page_number(100, breaks) == 2
        assert get_page_number(250, breaks) == 3


class TestChunkingEngine:
    """Test suite for ChunkingEngine."""

    def test_empty_text(self):
        """Test that empty or whitespace-only text produces no chunks."""
        engine = ChunkingEngine()

        assert engine.chunk_text("") == []
        assert engine.chunk_text(" \n\n \n ") == []

    def test_short_document_dropped_by_default(self):
        """Test that a document shorter than min_size yields no chunks."""
        text = "Cats are small mammals that purr.\n\nDogs are loyal mammals that bark."

        assert ChunkingEngine().chunk_text(text) == []

    def test_short_document_kept_with_emit_short_tail(self):
        """Test that emit_short_tail keeps an undersized remainder."""
        text = "Cats are small mammals that purr.\n\nDogs are loyal mammals that bark."
        engine = ChunkingEngine(ChunkConfig(emit_short_tail=True))

        chunks = engine.chunk_text(text)

        assert len(chunks) == 1
        assert chunks[0].text == text

    def test_two_paragraphs_single_chunk(self):
        """Test that paragraphs below target are merged into one chunk."""
        text = "Cats are small mammals that purr.\n\nDogs are loyal mammals that bark."
        engine = ChunkingEngine(ChunkConfig(target_size=100, max_size=150, min_size=20, overlap_size=5))

        chunks = engine.chunk_text(text)

        assert len(chunks) == 1
        chunk = chunks[0]
        assert chunk.text == text
        assert chunk.id == "chunk-0"
        assert chunk.chunk_index == 0
        assert chunk.page_number == 1
        assert chunk.start_offset == 0
        assert chunk.end_offset == len(text)

    def test_overflow_emits_buffer_and_carries_overlap(self, small_engine):
        """Test that a paragraph overflowing max_size starts a new chunk with overlap."""
        text = "\n\n".join([PARAGRAPH, PARAGRAPH, PARAGRAPH])

        chunks = small_engine.chunk_text(text)

        assert len(chunks) == 2
        assert chunks[0].text == PARAGRAPH + "\n\n" + PARAGRAPH
        assert chunks[0].end_offset == 102
        # Overlap starts at a word boundary inside the last 10 characters
        assert chunks[1].text == "iota\n\n" + PARAGRAPH
        assert chunks[1].start_offset == 98

    def test_overflowing_paragraph_is_not_lost(self, small_engine):
        """Test that the paragraph causing an overflow appears in the next chunk."""
        last = "omega kappa lambda sigma upsilon chi psi rho tau mu"
        text = "\n\n".join([PARAGRAPH, PARAGRAPH, last])

        chunks = small_engine.chunk_text(text)

        assert last in chunks[-1].text

    def test_sentence_break_within_target(self, small_engine):
        """Test that a long buffer is cut at the last sentence end before target_size."""
        text = (
            "First sentence here. Second sentence goes here. "
            "Third one is right here. Last one."
        )

        chunks = small_engine.chunk_text(text)

        assert len(chunks) == 2
        assert chunks[0].text == "First sentence here. Second sentence goes here."
        assert chunks[0].start_offset == 0
        assert chunks[0].end_offset == 47
        # Next chunk restarts overlap_size characters before the break
        assert chunks[1].text == "goes here. Third one is right here. Last one."
        assert chunks[1].start_offset == 37

    def test_no_sentence_break_yields_oversized_chunk(self):
        """Test that a giant paragraph without sentence ends becomes one large chunk."""
        text = " ".join(["word"] * 400)

        chunks = ChunkingEngine().chunk_text(text)

        assert len(chunks) == 1
        assert chunks[0].text == text
        assert len(chunks[0].text) > 800

    def test_page_numbers_from_start_offset(self, small_engine):
        """Test that each chunk gets the page its start offset falls on."""
        text = "\n\n".join([PARAGRAPH, PARAGRAPH, PARAGRAPH])

        chunks = small_engine.chunk_text(text, page_breaks=[52])

        assert [chunk.page_number for chunk in chunks] == [1, 2]

    def test_chunk_size_bounds_and_ordering(self):
        """Test every chunk reaches min_size and chunks are numbered in order."""
        paragraphs = [
            " ".join(
                f"Sentence {p}-{s} discusses topic number {(p + s) % 7} in detail."
                for s in range(4)
            )
            for p in range(40)
        ]
        text = "\n\n".join(paragraphs)

        chunks = ChunkingEngine().chunk_text(text, page_breaks=[len(text) // 2])

        assert len(chunks) > 3
        for i, chunk in enumerate(chunks):
            assert len(chunk.text) >= 200
            assert chunk.chunk_index == i
            assert chunk.id == f"chunk-{i}"
        pages = [chunk.page_number for chunk in chunks]
        assert pages == sorted(pages)
        assert pages[0] == 1 and pages[-1] == 2

    def test_deterministic(self):
        """Test that chunking the same text twice gives identical chunks."""
        text = "\n\n".join(f"Paragraph {i} has some words. And another sentence." for i in range(30))
        engine = ChunkingEngine()

        assert engine.chunk_text(text) == engine.chunk_text(text)
