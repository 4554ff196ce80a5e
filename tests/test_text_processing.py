"""Unit tests for text normalization, term extraction and key sentences."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from services.text_processing import (
    STOP_WORDS,
    analyze_terms,
    clean_text,
    extract_key_sentences,
    extract_terms,
    preprocess_text,
    split_sentences,
)


class TestTermExtraction:
    """Test suite for preprocessing and term extraction."""

    def test_preprocess_lowercases_and_strips_punctuation(self):
        """Test punctuation becomes whitespace and runs collapse."""
        assert preprocess_text("Hello, World!  How's   it going?") == "hello world how s it going"

    def test_extract_terms_drops_stop_words_and_short_tokens(self):
        """Test stop words and tokens of two characters or fewer are removed."""
        terms = extract_terms("The cat is on a mat by an ox")

        assert terms == ["cat", "mat"]

    def test_extract_terms_deduplicates_in_first_occurrence_order(self):
        """Test repeats are removed while keeping order."""
        terms = extract_terms("Beta alpha beta gamma ALPHA")

        assert terms == ["beta", "alpha", "gamma"]

    def test_extract_terms_only_stop_words(self):
        """Test a query made of stop words yields no terms."""
        assert extract_terms("the and of") == []
        assert extract_terms("") == []

    def test_stop_word_list(self):
        """Test the stop word list holds the expected common words."""
        assert len(STOP_WORDS) == 56
        for word in ("the", "would", "their", "those"):
            assert word in STOP_WORDS

    def test_analyze_terms_keeps_raw_counts(self):
        """Test the analysis exposes deduplicated terms plus raw counts."""
        analysis = analyze_terms("Apple banana apple. APPLE cherry!")

        assert analysis.terms == ["apple", "banana", "cherry"]
        assert analysis.counts == {"apple": 3, "banana": 1, "cherry": 1}
        assert analysis.total == 5

    def test_analyze_terms_empty(self):
        """Test empty text has zero total."""
        analysis = analyze_terms("a an the")

        assert analysis.terms == []
        assert analysis.total == 0


class TestCleanText:
    """Test suite for clean_text and split_sentences."""

    def test_clean_text_normalizes_whitespace(self):
        """Test line endings, tabs and repeated spaces are normalized."""
        text = "  First\tline\r\nSecond   line\r\n\r\n\r\n\r\nThird  "

        assert clean_text(text) == "First line\nSecond line\n\nThird"

    def test_split_sentences(self):
        """Test splitting on terminators drops empty fragments."""
        sentences = split_sentences("One. Two!! Three?  ...Four")

        assert sentences == ["One", "Two", "Three", "Four"]


class TestKeySentences:
    """Test suite for key sentence extraction."""

    TEXT = (
        "Paris is the capital of France. It has a population of over two million. "
        "The Eiffel Tower is located there."
    )

    def test_scores_by_term_length(self):
        """Test longer matched terms rank their sentence higher."""
        sentences = extract_key_sentences(self.TEXT, ["paris", "population"])

        # "population" (10) outweighs "paris" (5); the third sentence scores 0
        assert sentences == [
            "It has a population of over two million",
            "Paris is the capital of France",
        ]

    def test_multi_term_bonus(self):
        """Test sentences containing several distinct terms get a bonus."""
        text = "Solar panels convert light. Panels need sunlight and solar cells. Wind."
        sentences = extract_key_sentences(text, ["solar", "panels", "sunlight"])

        assert sentences[0] == "Panels need sunlight and solar cells"
        assert sentences[1] == "Solar panels convert light"
        assert len(sentences) == 2

    def test_limit(self):
        """Test at most `limit` sentences are returned."""
        text = "Data one. Data two. Data three. Data four."

        assert extract_key_sentences(text, ["data"], limit=3) == [
            "Data one", "Data two", "Data three",
        ]
        assert len(extract_key_sentences(text, ["data"], limit=1)) == 1

    def test_ties_keep_document_order(self):
        """Test equal scores keep the order of appearance."""
        text = "Zeta comes first. Nothing here. Zeta comes last."

        assert extract_key_sentences(text, ["zeta"]) == ["Zeta comes first", "Zeta comes last"]

    def test_no_terms(self):
        """Test no query terms highlight nothing."""
        assert extract_key_sentences(self.TEXT, []) == []
        assert extract_key_sentences(self.TEXT, ["london"]) == []
