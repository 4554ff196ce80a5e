"""Async LLM client for Groq API integration."""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional

from groq import AsyncGroq
from groq import RateLimitError, AuthenticationError, APIError, APITimeoutError

from config import GROQ_API_KEY, LLM_MODEL, LLM_MAX_TOKENS, LLM_TEMPERATURE, LLM_TOP_P

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Response from LLM generation."""
    text: str
    tokens_input: int
    tokens_output: int
    latency_ms: int
    model_used: str


@dataclass
class LLMError:
    """Structured error response from LLM operations."""
    code: str
    message: str
    details: Dict[str, Any]


class LLMClientError(Exception):
    """Custom exception for LLM client errors with structured error information."""

    def __init__(self, error: LLMError):
        self.error = error
        super().__init__(error.message)


def _elapsed_ms(start_time: float) -> int:
    return int((time.time() - start_time) * 1000)


class LLMClient:
    """Client for generating answers from retrieved context with the Groq API."""

    def __init__(self, api_key: Optional[str] = None, model: str = LLM_MODEL):
        """
        Initialize LLM client with Groq API key.

        Args:
            api_key: Groq API key (defaults to GROQ_API_KEY from environment)
            model: Chat model used for generation
        """
        self.api_key = api_key or GROQ_API_KEY
        if not self.api_key:
            raise ValueError("GROQ_API_KEY must be provided or set in environment")

        self.model = model
        self.client = AsyncGroq(api_key=self.api_key)
        # One generation at a time
        self._lock = asyncio.Lock()
        logger.info(f"LLMClient initialized with model: {model}")

    @property
    def is_generating(self) -> bool:
        return self._lock.locked()

    async def generate(
        self,
        prompt: str,
        max_tokens: int = LLM_MAX_TOKENS,
        temperature: float = LLM_TEMPERATURE,
        top_p: float = LLM_TOP_P
    ) -> LLMResponse:
        """
        Generate a response for a prompt.

        Args:
            prompt: Complete prompt with context and question
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature
            top_p: Nucleus sampling parameter

        Returns:
            LLMResponse with text, token counts, and latency

        Raises:
            LLMClientError: Structured error with code, message, and details
        """
        self._ensure_idle()
        start_time = time.time()

        async with self._lock:
            try:
                logger.debug(f"Generating response with model: {self.model}")

                response = await self.client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": prompt}],
                    max_tokens=max_tokens,
                    temperature=temperature,
                    top_p=top_p,
                )

                latency_ms = _elapsed_ms(start_time)
                text = response.choices[0].message.content if response.choices else None
                if not text:
                    raise LLMClientError(LLMError(
                        code="EMPTY_RESPONSE",
                        message="No response generated from LLM",
                        details={"model": self.model, "latency_ms": latency_ms},
                    ))

                tokens_input = response.usage.prompt_tokens
                tokens_output = response.usage.completion_tokens

                logger.info(
                    f"Generated response: model={self.model}, "
                    f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
                    f"latency={latency_ms}ms"
                )

                return LLMResponse(
                    text=text,
                    tokens_input=tokens_input,
                    tokens_output=tokens_output,
                    latency_ms=latency_ms,
                    model_used=self.model,
                )

            except LLMClientError:
                raise
            except Exception as e:
                raise self._to_client_error(e, start_time) from e

    async def generate_stream(
        self,
        prompt: str,
        max_tokens: int = LLM_MAX_TOKENS,
        temperature: float = LLM_TEMPERATURE,
        top_p: float = LLM_TOP_P
    ) -> AsyncIterator[Dict[str, Any]]:
        """
        Stream a response token by token.

        Yields:
            {"type": "token", "content": str} for each delta, then
            {"type": "metadata", "data": {...}} with token usage and latency

        Raises:
            LLMClientError: Structured error with code, message, and details
        """
        self._ensure_idle()
        start_time = time.time()

        async with self._lock:
            try:
                stream = await self.client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": prompt}],
                    max_tokens=max_tokens,
                    temperature=temperature,
                    top_p=top_p,
                    stream=True,
                )

                tokens_input = 0
                tokens_output = 0
                async for chunk in stream:
                    if chunk.choices:
                        content = chunk.choices[0].delta.content
                        if content:
                            yield {"type": "token", "content": content}

                    # Groq reports usage on the final chunk
                    usage = getattr(getattr(chunk, "x_groq", None), "usage", None)
                    if usage is not None:
                        tokens_input = usage.prompt_tokens
                        tokens_output = usage.completion_tokens

                latency_ms = _elapsed_ms(start_time)
                logger.info(
                    f"Streamed response: model={self.model}, "
                    f"output_tokens={tokens_output}, latency={latency_ms}ms"
                )
                yield {
                    "type": "metadata",
                    "data": {
                        "tokens_input": tokens_input,
                        "tokens_output": tokens_output,
                        "latency_ms": latency_ms,
                        "model_used": self.model,
                    },
                }

            except Exception as e:
                raise self._to_client_error(e, start_time) from e

    def _ensure_idle(self) -> None:
        if self._lock.locked():
            raise LLMClientError(LLMError(
                code="BUSY",
                message="Already generating a response. Please wait.",
                details={"model": self.model},
            ))

    def _to_client_error(self, e: Exception, start_time: float) -> LLMClientError:
        """Map a Groq or unexpected exception to a structured LLMClientError."""
        details = {
            "model": self.model,
            "latency_ms": _elapsed_ms(start_time),
            "original_error": str(e),
        }

        if isinstance(e, RateLimitError):
            error = LLMError(
                code="RATE_LIMIT_ERROR",
                message="Rate limit exceeded. Please try again in a few moments.",
                details={**details, "retry_after": 60},
            )
        elif isinstance(e, AuthenticationError):
            error = LLMError(
                code="AUTHENTICATION_ERROR",
                message="Authentication failed. Please check your API key.",
                details=details,
            )
        elif isinstance(e, APITimeoutError):
            error = LLMError(
                code="TIMEOUT_ERROR",
                message="Request timed out. Please try again.",
                details=details,
            )
        elif isinstance(e, APIError):
            error = LLMError(
                code="API_ERROR",
                message=f"Groq API error: {str(e)}",
                details=details,
            )
        else:
            error = LLMError(
                code="UNKNOWN_ERROR",
                message=f"Unexpected error during generation: {str(e)}",
                details={**details, "error_type": type(e).__name__},
            )

        logger.error(
            f"{error.code}: model={self.model}, latency={details['latency_ms']}ms, error={e}",
            exc_info=True,
            extra={"error_code": error.code},
        )
        return LLMClientError(error)

    @staticmethod
    def build_prompt(question: str, context_chunks: Optional[List[str]] = None) -> str:
        """
        Build a prompt that restricts the model to the retrieved context.

        Args:
            question: User question
            context_chunks: Retrieved chunk texts, most relevant first

        Returns:
            Complete prompt string
        """
        context = "\n\n".join(context_chunks) if context_chunks else ""

        return f"""Based on the following context from a document, please answer the user's question. Only use information that is explicitly stated in the context. If the context doesn't contain enough information to answer the question, say so.

Context:
{context}

Question: {question}

Answer:"""
