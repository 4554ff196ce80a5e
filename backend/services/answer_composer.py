"""Answer composition from retrieved chunks, optionally rephrased by an LLM."""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional

from models.chunk import SearchResult
from services.retrieval_engine import RetrievalEngine, ANSWERED, NO_MATCH
from services.llm_client import LLMClient, LLMClientError
from config import ADDITIONAL_CONTEXT_THRESHOLD, PROMPT_CONTEXT_CHUNKS, MAX_PROMPT_TOKENS

logger = logging.getLogger(__name__)

NO_MATCH_MESSAGE = (
    "I couldn't find information about that topic in the document. Please try "
    "rephrasing your question or ask about something else that might be covered in the PDF."
)
NOT_RELEVANT_MESSAGE = (
    "I found some potentially related content, but it doesn't seem directly relevant "
    "to your question. Could you try asking more specifically about topics covered in the document?"
)


@dataclass
class Answer:
    """Composed answer with the results it was drawn from."""
    text: str
    status: str
    is_llm_generated: bool = False
    sources: List[SearchResult] = field(default_factory=list)
    processing_time_ms: int = 0


class AnswerComposer:
    """Turn retrieval results into an answer, using the LLM when one is available."""

    def __init__(
        self,
        retrieval_engine: RetrievalEngine,
        llm_client: Optional[LLMClient] = None,
        additional_context_threshold: float = ADDITIONAL_CONTEXT_THRESHOLD,
        context_chunks: int = PROMPT_CONTEXT_CHUNKS,
        token_encoder: Any = None,
        max_prompt_tokens: int = MAX_PROMPT_TOKENS
    ):
        """
        Initialize the composer.

        Args:
            retrieval_engine: Engine applying relevance thresholds
            llm_client: Optional generative client; extractive answers when None
            additional_context_threshold: Similarity above which the second
                result is appended to extractive answers
            context_chunks: Number of top chunks placed in the prompt
            token_encoder: Optional tiktoken encoding used to keep prompts in budget
            max_prompt_tokens: Prompt token budget when an encoder is given
        """
        self.retrieval_engine = retrieval_engine
        self.llm_client = llm_client
        self.additional_context_threshold = additional_context_threshold
        self.context_chunks = context_chunks
        self.token_encoder = token_encoder
        self.max_prompt_tokens = max_prompt_tokens

    async def compose(self, question: str) -> Answer:
        """
        Answer a question about the loaded document.

        Retrieval always runs first and does not depend on the LLM. When the
        LLM fails the extracted sentences are returned instead.

        Raises:
            NotInitializedError: If no document has been indexed
        """
        start_time = time.time()
        outcome = self.retrieval_engine.retrieve(question)

        if outcome.status != ANSWERED:
            return Answer(
                text=self._status_message(outcome.status),
                status=outcome.status,
                processing_time_ms=int((time.time() - start_time) * 1000),
            )

        results = outcome.results
        is_llm_generated = False

        if self.llm_client is not None:
            try:
                response = await self.llm_client.generate(self.build_prompt(question, results))
                text = response.text
                is_llm_generated = True
            except LLMClientError as e:
                logger.warning(f"LLM generation failed, falling back to retrieval: {e.error.message}")
                text = self.extractive_answer(results, include_additional_context=False)
        else:
            text = self.extractive_answer(results)

        processing_time_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Answer composed in {processing_time_ms}ms",
            extra={"llm_generated": is_llm_generated, "sources": len(results)},
        )
        return Answer(
            text=text,
            status=outcome.status,
            is_llm_generated=is_llm_generated,
            sources=results,
            processing_time_ms=processing_time_ms,
        )

    async def stream(self, question: str) -> AsyncIterator[Dict[str, Any]]:
        """
        Stream an answer as events.

        Yields {"type": "token"} events, an optional {"type": "error"} event
        when generation breaks off midway, then a final {"type": "metadata"}
        event whose "sources" are SearchResult objects.
        """
        start_time = time.time()
        outcome = self.retrieval_engine.retrieve(question)
        is_llm_generated = False

        if outcome.status != ANSWERED:
            yield {"type": "token", "content": self._status_message(outcome.status)}
        elif self.llm_client is None:
            yield {"type": "token", "content": self.extractive_answer(outcome.results)}
        else:
            emitted = False
            try:
                prompt = self.build_prompt(question, outcome.results)
                async for event in self.llm_client.generate_stream(prompt):
                    if event["type"] == "token":
                        emitted = True
                        yield event
                is_llm_generated = True
            except LLMClientError as e:
                if emitted:
                    logger.error(f"LLM stream interrupted: {e.error.message}")
                    yield {
                        "type": "error",
                        "error": {"code": e.error.code, "message": e.error.message},
                    }
                    is_llm_generated = True
                else:
                    logger.warning(
                        f"LLM generation failed, falling back to retrieval: {e.error.message}"
                    )
                    yield {
                        "type": "token",
                        "content": self.extractive_answer(
                            outcome.results, include_additional_context=False
                        ),
                    }

        yield {
            "type": "metadata",
            "data": {
                "status": outcome.status,
                "is_llm_generated": is_llm_generated,
                "processing_time_ms": int((time.time() - start_time) * 1000),
                "sources": outcome.results,
            },
        }

    def extractive_answer(
        self,
        results: List[SearchResult],
        include_additional_context: bool = True
    ) -> str:
        """
        Build an answer from extracted sentences of the best result.

        Falls back to the full chunk text when no sentence was highlighted.
        The second result is appended as additional context when it is
        similar enough.
        """
        top_result = results[0]
        if top_result.relevant_sentences:
            text = " ".join(top_result.relevant_sentences)
        else:
            text = top_result.chunk.text

        if (
            include_additional_context
            and len(results) > 1
            and results[1].similarity > self.additional_context_threshold
        ):
            text += "\n\nAdditional context:\n" + results[1].chunk.text

        return text

    def build_prompt(self, question: str, results: List[SearchResult]) -> str:
        """
        Build the LLM prompt from the top results.

        With a token encoder the prompt is kept within max_prompt_tokens by
        dropping lower-ranked chunks first, then truncating the best one.
        """
        context = [r.chunk.text for r in results[:self.context_chunks]]
        prompt = LLMClient.build_prompt(question, context)
        if self.token_encoder is None:
            return prompt

        while len(context) > 1 and self._count_tokens(prompt) > self.max_prompt_tokens:
            context.pop()
            prompt = LLMClient.build_prompt(question, context)

        overflow = self._count_tokens(prompt) - self.max_prompt_tokens
        if overflow > 0 and context:
            tokens = self.token_encoder.encode(context[0])
            context[0] = self.token_encoder.decode(tokens[:max(len(tokens) - overflow, 0)])
            prompt = LLMClient.build_prompt(question, context)
            logger.debug(f"Truncated prompt context by {overflow} tokens")

        return prompt

    def _count_tokens(self, text: str) -> int:
        return len(self.token_encoder.encode(text))

    @staticmethod
    def _status_message(status: str) -> str:
        return NO_MATCH_MESSAGE if status == NO_MATCH else NOT_RELEVANT_MESSAGE
