"""Wire-contract tests for the embedding providers, using httpx.MockTransport."""

import json

import httpx
import pytest

from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.embed.gemini.EmbedClientGemini import EmbedClientGemini
from shared.clients.embed.ollama.EmbedClientOllama import EmbedClientOllama
from shared.clients.embed.openai.EmbedClientOpenai import EmbedClientOpenai
from shared.exceptions import ConfigurationError, ProviderError, ProviderUnavailable


async def _booted(client, handler):
    await client.boot(transport=httpx.MockTransport(handler))
    return client


@pytest.mark.asyncio
async def test_gemini_request_and_response(make_config):
    """Test Gemini endpoint, auth header, body and vector path."""
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["key"] = request.headers.get("x-goog-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"embedding": {"values": [0.1, 0.2, 0.3]}})

    client = await _booted(EmbedClientGemini(make_config(embed_gemini_api_key="secret")), handler)
    result = await client.do_embed("hello world")
    await client.close()

    assert seen["path"] == "/v1beta/models/text-embedding-004:embedContent"
    assert seen["key"] == "secret"
    assert seen["body"] == {"content": {"parts": [{"text": "hello world"}]}}
    assert result.vector == [0.1, 0.2, 0.3]
    assert result.model == "text-embedding-004"


@pytest.mark.asyncio
async def test_openai_request_and_response(make_config):
    """Test OpenAI endpoint, bearer auth, body and the reported model."""
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": [{"embedding": [1, 2], "index": 0}], "model": "text-embedding-3-small-v2"})

    client = await _booted(EmbedClientOpenai(make_config(embed_openai_api_key="sk-test")), handler)
    result = await client.do_embed("  untouched text  ")
    await client.close()

    assert seen["path"] == "/v1/embeddings"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"] == {"model": "text-embedding-3-small", "input": "  untouched text  "}
    assert result.vector == [1.0, 2.0]
    assert result.model == "text-embedding-3-small-v2"


@pytest.mark.asyncio
async def test_ollama_needs_no_api_key(make_config):
    """Test Ollama endpoint and body without any credential."""
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"model": "nomic-embed-text", "embeddings": [[0.5, 0.5]]})

    client = await _booted(EmbedClientOllama(make_config(embed_ollama_base_url="http://ollama.test")), handler)
    result = await client.do_embed("text")
    await client.close()

    assert seen["url"] == "http://ollama.test/api/embed"
    assert seen["auth"] is None
    assert seen["body"] == {"model": "nomic-embed-text", "input": ["text"]}
    assert result.vector == [0.5, 0.5]


@pytest.mark.asyncio
async def test_missing_api_key_fails_before_request(make_config):
    """Test that a hosted provider without key raises ProviderUnavailable and sends nothing."""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    client = await _booted(EmbedClientGemini(make_config()), handler)
    with pytest.raises(ProviderUnavailable):
        await client.do_embed("hello")
    await client.close()

    assert calls == []
    assert issubclass(ProviderUnavailable, ConfigurationError)


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {"embedding": {}},
    {"embedding": {"values": "not-a-list"}},
    {"embedding": {"values": []}},
    {"embedding": {"values": [0.1, "x"]}},
    {"embedding": {"values": [True, False]}},
    {"unexpected": 1},
])
async def test_malformed_payload_raises_provider_error(make_config, payload):
    """Test that a missing or non-numeric vector field is a ProviderError."""
    client = await _booted(
        EmbedClientGemini(make_config(embed_gemini_api_key="k")),
        lambda request: httpx.Response(200, json=payload),
    )
    with pytest.raises(ProviderError):
        await client.do_embed("hello")
    await client.close()


@pytest.mark.asyncio
async def test_http_error_raises_provider_error(make_config):
    """Test that a 5xx response is a transient ProviderError carrying the status."""
    client = await _booted(
        EmbedClientOpenai(make_config(embed_openai_api_key="k")),
        lambda request: httpx.Response(503, text="overloaded"),
    )
    with pytest.raises(ProviderError) as exc_info:
        await client.do_embed("hello")
    await client.close()

    assert exc_info.value.status_code == 503
    assert exc_info.value.transient is True


@pytest.mark.asyncio
async def test_client_error_is_not_transient(make_config):
    """Test that a 4xx response (other than 429) is not retried."""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(400, json={"error": "bad request"})

    client = await _booted(EmbedClientOpenai(make_config(embed_openai_api_key="k", embed_max_retries=3)), handler)
    with pytest.raises(ProviderError) as exc_info:
        await client.do_embed("hello")
    await client.close()

    assert exc_info.value.transient is False
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_transport_error_raises_provider_error(make_config):
    """Test that a connection failure is wrapped in a ProviderError."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = await _booted(EmbedClientOllama(make_config(embed_ollama_base_url="http://ollama.test")), handler)
    with pytest.raises(ProviderError) as exc_info:
        await client.do_embed("hello")
    await client.close()

    assert exc_info.value.transient is True


@pytest.mark.asyncio
async def test_transient_failure_is_retried(make_config):
    """Test that a 503 followed by a success returns the vector when retries are enabled."""
    responses = [
        httpx.Response(503, text="busy"),
        httpx.Response(200, json={"embeddings": [[0.25, 0.75]]}),
    ]
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return responses[len(calls) - 1]

    client = await _booted(
        EmbedClientOllama(make_config(embed_ollama_base_url="http://ollama.test", embed_max_retries=1)),
        handler,
    )
    result = await client.do_embed("hello")
    await client.close()

    assert len(calls) == 2
    assert result.vector == [0.25, 0.75]


def test_manager_selects_engine(make_config):
    """Test that EMBED_ENGINE picks the provider class."""
    client = EmbedClientManager(make_config(embed_engine="OpenAI", embed_openai_api_key="k")).get_client()
    assert isinstance(client, EmbedClientOpenai)
    assert client.get_engine_name() == "openai"


def test_manager_rejects_unknown_engine(make_config):
    """Test that an unsupported engine is a ConfigurationError."""
    with pytest.raises(ConfigurationError):
        EmbedClientManager(make_config(embed_engine="nonexistent"))


def test_ollama_requires_base_url(make_config):
    """Test that a missing required key fails at construction."""
    with pytest.raises(ConfigurationError):
        EmbedClientOllama(make_config())
