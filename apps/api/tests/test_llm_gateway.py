"""
Tests for the OpenAI / Anthropic adapters with mocked SDK clients.
"""

import pytest
from types import SimpleNamespace
from unittest.mock import MagicMock

from core.config import settings
from services.llm_gateway import (
    AnthropicCompletionClient,
    LLMServiceError,
    OpenAICompletionClient,
    OpenAIEmbeddingClient,
    get_completion_client,
)


def openai_embedding_response(vector):
    return SimpleNamespace(data=[SimpleNamespace(embedding=vector)])


def openai_chat_response(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class TestOpenAIEmbeddingClient:

    def test_embed_truncates_input(self):
        sdk = MagicMock()
        sdk.embeddings.create.return_value = openai_embedding_response([0.5, 0.25])
        client = OpenAIEmbeddingClient(client=sdk, model="embed-test", dimensions=2, max_input_chars=5)

        assert client.embed("abcdefghij") == [0.5, 0.25]
        sdk.embeddings.create.assert_called_once_with(model="embed-test", input="abcde")

    def test_dimension_mismatch(self):
        sdk = MagicMock()
        sdk.embeddings.create.return_value = openai_embedding_response([0.1, 0.2, 0.3])
        client = OpenAIEmbeddingClient(client=sdk, dimensions=2)
        with pytest.raises(LLMServiceError, match="expected 2-dimensional"):
            client.embed("hello")

    def test_sdk_error_wrapped(self):
        sdk = MagicMock()
        sdk.embeddings.create.side_effect = RuntimeError("429 rate limit")
        with pytest.raises(LLMServiceError) as exc_info:
            OpenAIEmbeddingClient(client=sdk).embed("hello")
        assert exc_info.value.provider == "openai"
        assert "429" in str(exc_info.value)

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.setattr(settings, "OPENAI_API_KEY", None)
        with pytest.raises(LLMServiceError, match="OPENAI_API_KEY"):
            OpenAIEmbeddingClient().embed("hello")


class TestOpenAICompletionClient:

    def test_complete(self):
        sdk = MagicMock()
        sdk.chat.completions.create.return_value = openai_chat_response("  Get after it!  ")
        client = OpenAICompletionClient(client=sdk, model="chat-test")

        assert client.complete("system", "user", 150, 0.8) == "Get after it!"
        kwargs = sdk.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "chat-test"
        assert kwargs["messages"] == [
            {"role": "system", "content": "system"},
            {"role": "user", "content": "user"},
        ]
        assert kwargs["max_tokens"] == 150
        assert kwargs["temperature"] == 0.8

    def test_empty_content(self):
        sdk = MagicMock()
        sdk.chat.completions.create.return_value = openai_chat_response("   ")
        with pytest.raises(LLMServiceError, match="empty content"):
            OpenAICompletionClient(client=sdk).complete("s", "u", 10, 0.5)


class TestAnthropicCompletionClient:

    def test_complete_joins_text_blocks(self):
        sdk = MagicMock()
        sdk.messages.create.return_value = SimpleNamespace(content=[
            SimpleNamespace(type="text", text="One more "),
            SimpleNamespace(type="text", text="rep."),
        ])
        client = AnthropicCompletionClient(client=sdk, model="messages-test")

        assert client.complete("persona", "hi", 150, 0.8) == "One more rep."
        kwargs = sdk.messages.create.call_args.kwargs
        assert kwargs["system"] == "persona"
        assert kwargs["messages"] == [{"role": "user", "content": "hi"}]

    def test_sdk_error_wrapped(self):
        sdk = MagicMock()
        sdk.messages.create.side_effect = RuntimeError("overloaded")
        with pytest.raises(LLMServiceError) as exc_info:
            AnthropicCompletionClient(client=sdk).complete("s", "u", 10, 0.5)
        assert exc_info.value.provider == "anthropic"


class TestProviderSelection:

    def test_explicit_provider(self):
        assert isinstance(get_completion_client("anthropic"), AnthropicCompletionClient)
        assert isinstance(get_completion_client("OpenAI"), OpenAICompletionClient)

    def test_configured_provider(self, monkeypatch):
        monkeypatch.setattr(settings, "COACH_COMPLETION_PROVIDER", "anthropic")
        assert isinstance(get_completion_client(), AnthropicCompletionClient)

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            get_completion_client("cohere")
