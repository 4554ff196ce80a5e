"""Text normalization, term extraction and key-sentence highlighting."""
import re
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Sequence

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with",
    "by", "is", "are", "was", "were", "be", "been", "have", "has", "had", "do", "does",
    "did", "will", "would", "could", "should", "may", "might", "must", "can", "this",
    "that", "these", "those", "i", "you", "he", "she", "it", "we", "they", "me", "him",
    "her", "us", "them", "my", "your", "his", "its", "our", "their",
})

MIN_TERM_LENGTH = 3

_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
MULTI_TERM_BONUS = 50


@dataclass(frozen=True)
class TermAnalysis:
    """Deduplicated terms plus raw occurrence counts for one piece of text."""
    terms: List[str]  # first-occurrence order, no repeats
    counts: Dict[str, int]  # raw occurrences of each surviving term

    @property
    def total(self) -> int:
        return sum(self.counts.values())


def preprocess_text(text: str) -> str:
    """Lowercase, strip punctuation and collapse whitespace."""
    text = _PUNCTUATION_RE.sub(" ", text.lower())
    return _WHITESPACE_RE.sub(" ", text).strip()


def _tokens(text: str) -> List[str]:
    return [
        token for token in preprocess_text(text).split()
        if len(token) >= MIN_TERM_LENGTH and token not in STOP_WORDS
    ]


def extract_terms(text: str) -> List[str]:
    """
    Extract meaningful terms from text.

    Tokens of two characters or fewer and stop words are dropped; repeats are
    removed keeping the first occurrence.
    """
    return list(dict.fromkeys(_tokens(text)))


def analyze_terms(text: str) -> TermAnalysis:
    """Return the deduplicated term list together with raw term counts."""
    counts = Counter(_tokens(text))
    # Counter preserves insertion order, i.e. first occurrence
    return TermAnalysis(terms=list(counts), counts=dict(counts))


def clean_text(text: str) -> str:
    """
    Clean and normalize extracted text.

    Normalizes line endings, replaces tabs, collapses repeated spaces and
    limits runs of blank lines to a single paragraph break.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = text.replace("\t", " ")
    text = re.sub(r"[ ]{2,}", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def split_sentences(text: str) -> List[str]:
    """Split text on sentence terminators, dropping empty fragments."""
    sentences = (s.strip() for s in _SENTENCE_SPLIT_RE.split(text))
    return [s for s in sentences if s]


def extract_key_sentences(text: str, query_terms: Sequence[str], limit: int = 3) -> List[str]:
    """
    Extract the sentences of a chunk most likely to contain the answer.

    Each sentence scores the number of occurrences of every query term times
    the term length, so longer terms weigh more. Sentences containing more
    than one distinct query term get a bonus of 50 per distinct term.

    Args:
        text: Chunk text
        query_terms: Normalized query terms
        limit: Maximum number of sentences to return

    Returns:
        Sentences with a positive score, highest score first
    """
    terms = [term.lower() for term in query_terms if term]
    if not terms:
        return []

    scored = []
    for sentence in split_sentences(text):
        sentence_lower = sentence.lower()
        score = sum(sentence_lower.count(term) * len(term) for term in terms)

        unique_found = sum(1 for term in terms if term in sentence_lower)
        if unique_found > 1:
            score += unique_found * MULTI_TERM_BONUS

        if score > 0:
            scored.append((score, sentence))

    # sorted() is stable, equal scores keep document order
    scored = sorted(scored, key=lambda item: item[0], reverse=True)
    return [sentence for _, sentence in scored[:limit]]
