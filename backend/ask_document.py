"""
Command-line question answering over a single PDF.

This script:
1. Extracts text and page breaks from the PDF
2. Chunks the text along paragraph and sentence boundaries
3. Builds the TF-IDF index
4. Answers a question, or starts an interactive session

Usage:
    python ask_document.py paper.pdf "What is the main result?"
    python ask_document.py paper.pdf --top-terms 15
    python ask_document.py paper.pdf --no-llm
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from config import GROQ_API_KEY, LLM_ENABLED, LOG_LEVEL
from logger import setup_logging
from services.answer_composer import Answer, AnswerComposer
from services.chunking_engine import ChunkingEngine
from services.document_loader import DocumentLoader, DocumentLoadError
from services.llm_client import LLMClient
from services.retrieval_engine import RetrievalEngine
from services.vector_store import VectorStore

logger = logging.getLogger(__name__)

QUIT_COMMANDS = ("quit", "exit", "q")


def parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ask questions about a PDF document.")
    parser.add_argument("pdf", help="Path to the PDF file")
    parser.add_argument("question", nargs="?", help="Question to answer; interactive when omitted")
    parser.add_argument("--top-terms", type=int, default=0, metavar="N",
                        help="Print the N most important terms of the document")
    parser.add_argument("--no-llm", action="store_true",
                        help="Answer with extracted sentences only")
    return parser.parse_args(argv)


def build_composer(pdf_path: str, use_llm: bool) -> AnswerComposer:
    """Load, chunk and index the PDF and wire up the answer composer."""
    logger.info("[1/3] Extracting text...")
    extracted = DocumentLoader().load(pdf_path)
    logger.info(f"  {extracted.page_count} pages, {extracted.word_count} words")

    logger.info("[2/3] Chunking...")
    chunks = ChunkingEngine().chunk_text(extracted.text, extracted.page_breaks)

    logger.info("[3/3] Building TF-IDF index...")
    vector_store = VectorStore.from_chunks(chunks)
    stats = vector_store.get_stats()
    logger.info(
        f"  {stats['chunk_count']} chunks, {stats['vocabulary_size']} terms, "
        f"avg {stats['average_chunk_length']} chars/chunk"
    )

    llm_client: Optional[LLMClient] = None
    if use_llm and LLM_ENABLED and GROQ_API_KEY:
        llm_client = LLMClient()

    return AnswerComposer(RetrievalEngine(vector_store), llm_client=llm_client)


def print_answer(answer: Answer) -> None:
    mode = "LLM" if answer.is_llm_generated else "extracted"
    print(f"\n{answer.text}\n")
    for result in answer.sources:
        print(f"  [page {result.chunk.page_number}] {result.chunk.id} "
              f"similarity={result.similarity:.3f}")
    print(f"  ({mode}, {answer.processing_time_ms}ms)")


def print_top_terms(vector_store: VectorStore, limit: int) -> None:
    print(f"\nTop {limit} terms:")
    for term, score in vector_store.get_top_terms(limit):
        print(f"  {term:<24} {score:.4f}")


async def interactive(composer: AnswerComposer) -> None:
    print("Ask questions about the document. Type 'quit' to stop.")
    while True:
        try:
            question = input("\n> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye!")
            break

        if not question:
            continue
        if question.lower() in QUIT_COMMANDS:
            print("Bye!")
            break

        print_answer(await composer.compose(question))


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI process."""
    args = parse_args(sys.argv[1:] if argv is None else argv)
    setup_logging(LOG_LEVEL, "text")

    try:
        composer = build_composer(args.pdf, use_llm=not args.no_llm)
    except DocumentLoadError as e:
        logger.error(f"Could not load {args.pdf}: {e}")
        return 1

    if args.top_terms > 0:
        print_top_terms(composer.retrieval_engine.vector_store, args.top_terms)

    if args.question:
        print_answer(asyncio.run(composer.compose(args.question)))
    else:
        asyncio.run(interactive(composer))
    return 0


if __name__ == "__main__":
    sys.exit(main())
