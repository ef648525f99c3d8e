"""
LLM Client Infrastructure
==========================

Wrapper for the Gemini LLM provider providing a clean interface for LLM operations.

Gemini is reached through its OpenAI-compatible endpoint, so the OpenAI SDK
is used for both chat completions and embeddings.

This module abstracts the LLM client implementation following the
Dependency Inversion Principle - the domain layer depends on abstractions,
not concrete implementations.
"""

import asyncio
import hashlib
import random
import time
from typing import List, Optional
from abc import ABC, abstractmethod

from openai import AsyncOpenAI, APITimeoutError

from eduticket.config import settings
from eduticket.core import LLMException, EmbeddingException, ConfigurationException
from eduticket.shared.infrastructure.grafana import get_grafana_exporter
from eduticket.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

TIMEOUT_MESSAGE = "Request timeout - AI service took too long to respond"


class EmbeddingResult:
    """Result of an embedding generation."""

    def __init__(self, embedding: List[float], model: str):
        self.embedding = embedding
        self.model = model
        self.dimension = len(embedding)


class ChatCompletionResult:
    """Result of a chat completion."""

    def __init__(
        self,
        content: str,
        model: str,
        prompt_tokens: int,
        completion_tokens: int,
        latency_ms: int
    ):
        self.content = content
        self.model = model
        self.prompt_tokens = prompt_tokens
        self.completion_tokens = completion_tokens
        self.total_tokens = prompt_tokens + completion_tokens
        self.latency_ms = latency_ms


class ILLMClient(ABC):
    """
    Interface for LLM client operations.

    Following Interface Segregation Principle - only methods
    actually needed by the application are defined.
    """

    @abstractmethod
    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """Generate embedding for text."""

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 1000,
        operation: str = "chat_completion",
        top_p: Optional[float] = None
    ) -> ChatCompletionResult:
        """Generate chat completion."""


class GeminiLLMClient(ILLMClient):
    """
    Gemini client implementation over the OpenAI-compatible API.

    Provides async wrapper around OpenAI SDK operations.
    """

    def __init__(self, api_key: Optional[str] = None):
        self._api_key = api_key or settings.google_ai_api_key
        if not self._api_key:
            raise ConfigurationException("GOOGLE_AI_API_KEY not configured")

        self._client = AsyncOpenAI(
            api_key=self._api_key,
            base_url=settings.gemini_base_url,
            timeout=settings.llm_timeout_seconds,
            max_retries=0
        )
        self._model = settings.llm_model
        self._embedding_model = settings.embedding_model

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """
        Generate embedding for text using the Gemini embedding model.

        Args:
            text: Text to embed

        Returns:
            EmbeddingResult with embedding vector

        Raises:
            EmbeddingException: If text is empty or generation fails
        """
        if not text or not text.strip():
            raise EmbeddingException("Text cannot be empty")

        try:
            response = await self._client.embeddings.create(
                model=self._embedding_model,
                input=text
            )
            return EmbeddingResult(
                embedding=response.data[0].embedding,
                model=self._embedding_model
            )
        except APITimeoutError:
            raise EmbeddingException(TIMEOUT_MESSAGE)
        except Exception as e:
            raise EmbeddingException(f"Failed to generate embedding: {str(e)}")

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 1000,
        operation: str = "chat_completion",
        top_p: Optional[float] = None
    ) -> ChatCompletionResult:
        """
        Generate chat completion using Gemini.

        Args:
            messages: List of message dicts with 'role' and 'content'
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum tokens to generate
            operation: Operation type for metrics (triage, rag, answer_synthesis)
            top_p: Optional nucleus sampling value

        Returns:
            ChatCompletionResult with generated text

        Raises:
            LLMException: If completion fails or times out
        """
        start_time = time.perf_counter()

        request = {
            "model": self._model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if top_p is not None:
            request["top_p"] = top_p

        try:
            response = await self._client.chat.completions.create(**request)
        except APITimeoutError:
            raise LLMException(TIMEOUT_MESSAGE)
        except Exception as e:
            raise LLMException(f"Chat completion failed: {str(e)}")

        if not response.choices or response.choices[0].message is None:
            raise LLMException("Invalid response format from Gemini AI API")

        latency_ms = int((time.perf_counter() - start_time) * 1000)

        content = response.choices[0].message.content or ""
        usage = response.usage
        prompt_tokens = usage.prompt_tokens if usage else len(str(messages))
        completion_tokens = usage.completion_tokens if usage else len(content)

        result = ChatCompletionResult(
            content=content,
            model=self._model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            latency_ms=latency_ms
        )

        # Export metrics to Grafana
        exporter = get_grafana_exporter()
        if exporter and exporter.is_enabled():
            await exporter.export_llm_metrics(
                model=self._model,
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                latency_ms=latency_ms,
                operation=operation
            )

        return result


class MockLLMClient(ILLMClient):
    """
    Mock LLM client for testing.

    Returns predictable responses without calling external APIs.
    """

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """Return a deterministic pseudo-embedding derived from the text hash."""
        if not text or not text.strip():
            raise EmbeddingException("Text cannot be empty")

        seed = int(hashlib.sha256(text.encode()).hexdigest()[:8], 16)
        rng = random.Random(seed)
        embedding = [rng.uniform(-1, 1) for _ in range(settings.embedding_dimension)]
        return EmbeddingResult(embedding=embedding, model="mock-embedding")

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 1000,
        operation: str = "chat_completion",
        top_p: Optional[float] = None
    ) -> ChatCompletionResult:
        """Return mock response based on operation type."""
        if operation == "triage":
            content = "question medium"
        elif operation == "rag":
            content = (
                "Based on the course documents, submissions are uploaded through the "
                "assignment page before the deadline [Course Handbook]."
            )
        elif operation == "answer_synthesis":
            content = (
                "According to the saved material, you should re-run the setup script "
                "and then restart the development environment before submitting."
            )
        else:
            content = "This is a mock LLM response for testing purposes."

        return ChatCompletionResult(
            content=content,
            model="mock-model",
            prompt_tokens=100,
            completion_tokens=len(content.split()),
            latency_ms=100
        )


def get_llm_client() -> ILLMClient:
    """
    Build the configured LLM client.

    Raises:
        ConfigurationException: If neither mock mode nor an API key is set
    """
    if settings.mock_llm:
        return MockLLMClient()
    return GeminiLLMClient(settings.google_ai_api_key)


async def generate_batch_embeddings(
    client: ILLMClient,
    texts: List[str],
    batch_size: Optional[int] = None,
    delay_seconds: Optional[float] = None
) -> List[List[float]]:
    """
    Embed many texts, a batch at a time, pausing between batches.

    Args:
        client: LLM client used for embeddings
        texts: Texts to embed (order preserved)
        batch_size: Texts embedded concurrently
        delay_seconds: Pause between batches

    Returns:
        One embedding per input text
    """
    if not texts:
        return []

    batch_size = batch_size or settings.embedding_batch_size
    if delay_seconds is None:
        delay_seconds = settings.embedding_batch_delay_seconds

    embeddings: List[List[float]] = []
    for start in range(0, len(texts), batch_size):
        batch = texts[start:start + batch_size]
        results = await asyncio.gather(*(client.generate_embedding(t) for t in batch))
        embeddings.extend(r.embedding for r in results)

        if start + batch_size < len(texts) and delay_seconds > 0:
            await asyncio.sleep(delay_seconds)

    logger.debug("Batch embeddings generated", extra={"count": len(embeddings)})
    return embeddings


def validate_embedding(embedding: List[float], dimension: Optional[int] = None) -> bool:
    """Check that an embedding is a list of the configured dimension."""
    expected = dimension or settings.embedding_dimension
    return isinstance(embedding, list) and len(embedding) == expected
