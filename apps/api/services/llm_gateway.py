"""
LLM Gateway

Thin adapters over the OpenAI and Anthropic SDKs exposing the two
capabilities the voice pipeline consumes:

- embed(text) -> List[float]          (OpenAI embeddings)
- complete(system_prompt, user_message, max_tokens, temperature) -> str
                                      (OpenAI chat or Anthropic messages)

All SDK failures are re-raised as LLMServiceError so callers only deal
with one exception type.
"""
import logging
from typing import List, Optional, Protocol

from openai import OpenAI
from anthropic import Anthropic

from core.config import settings

logger = logging.getLogger(__name__)


class LLMServiceError(Exception):
    """An embedding or completion call failed or returned nothing usable."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class EmbeddingClient(Protocol):
    def embed(self, text: str) -> List[float]: ...


class CompletionClient(Protocol):
    def complete(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: int,
        temperature: float,
    ) -> str: ...


class OpenAIEmbeddingClient:
    """OpenAI embeddings with input truncation and a dimension check."""

    def __init__(
        self,
        client: Optional[OpenAI] = None,
        model: str = settings.EMBEDDING_MODEL,
        dimensions: int = settings.EMBEDDING_DIMENSIONS,
        max_input_chars: int = settings.EMBEDDING_MAX_INPUT_CHARS,
    ):
        self._client = client
        self.model = model
        self.dimensions = dimensions
        self.max_input_chars = max_input_chars

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not settings.OPENAI_API_KEY:
                raise LLMServiceError("openai", "OPENAI_API_KEY is not configured")
            self._client = OpenAI(api_key=settings.OPENAI_API_KEY, timeout=settings.EXTERNAL_API_TIMEOUT)
        return self._client

    def embed(self, text: str) -> List[float]:
        try:
            response = self.client.embeddings.create(
                model=self.model,
                input=text[: self.max_input_chars],
            )
        except LLMServiceError:
            raise
        except Exception as e:
            logger.error(f"OpenAI embedding error: {e}")
            raise LLMServiceError("openai", f"embedding request failed: {e}") from e

        if not response.data:
            raise LLMServiceError("openai", "embedding response contained no data")
        vector = list(response.data[0].embedding)
        if len(vector) != self.dimensions:
            raise LLMServiceError(
                "openai",
                f"expected {self.dimensions}-dimensional embedding, got {len(vector)}",
            )
        return vector


class OpenAICompletionClient:

    def __init__(self, client: Optional[OpenAI] = None, model: str = settings.COACH_OPENAI_MODEL):
        self._client = client
        self.model = model

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not settings.OPENAI_API_KEY:
                raise LLMServiceError("openai", "OPENAI_API_KEY is not configured")
            self._client = OpenAI(api_key=settings.OPENAI_API_KEY, timeout=settings.EXTERNAL_API_TIMEOUT)
        return self._client

    def complete(self, system_prompt: str, user_message: str, max_tokens: int, temperature: float) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_message},
                ],
                max_tokens=max_tokens,
                temperature=temperature,
                presence_penalty=0.1,
                frequency_penalty=0.1,
            )
        except LLMServiceError:
            raise
        except Exception as e:
            logger.error(f"OpenAI API error: {e}")
            raise LLMServiceError("openai", f"completion request failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise LLMServiceError("openai", "completion returned empty content")
        return content.strip()


class AnthropicCompletionClient:

    def __init__(self, client: Optional[Anthropic] = None, model: str = settings.COACH_ANTHROPIC_MODEL):
        self._client = client
        self.model = model

    @property
    def client(self) -> Anthropic:
        if self._client is None:
            if not settings.ANTHROPIC_API_KEY:
                raise LLMServiceError("anthropic", "ANTHROPIC_API_KEY is not configured")
            self._client = Anthropic(api_key=settings.ANTHROPIC_API_KEY, timeout=settings.EXTERNAL_API_TIMEOUT)
        return self._client

    def complete(self, system_prompt: str, user_message: str, max_tokens: int, temperature: float) -> str:
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": user_message}],
            )
        except LLMServiceError:
            raise
        except Exception as e:
            logger.error(f"Claude API error: {e}")
            raise LLMServiceError("anthropic", f"completion request failed: {e}") from e

        text = "".join(
            getattr(block, "text", "") for block in (response.content or [])
        ).strip()
        if not text:
            raise LLMServiceError("anthropic", "completion returned empty content")
        return text


def get_embedding_client() -> EmbeddingClient:
    return OpenAIEmbeddingClient()


def get_completion_client(provider: Optional[str] = None) -> CompletionClient:
    """Completion client for the configured provider ("openai" or "anthropic")."""
    provider = (provider or settings.COACH_COMPLETION_PROVIDER).lower()
    if provider == "anthropic":
        return AnthropicCompletionClient()
    if provider == "openai":
        return OpenAICompletionClient()
    raise ValueError(f"Unknown completion provider: {provider}")
