"""Tests for the local Ollama provider."""

import httpx
import pytest

from pe2.llm.config import ProviderConfig
from pe2.llm.errors import NetworkError, NotFoundError, ParseError
from pe2.llm.providers.ollama import OllamaProvider


def ok_response(request):
    return httpx.Response(
        200,
        json={
            "model": "llama3.2",
            "message": {"role": "assistant", "content": "Local reply"},
            "done": True,
            "done_reason": "stop",
        },
    )


@pytest.mark.asyncio
async def test_no_api_key_needed(chat_request, make_client):
    client, recorder = make_client(ok_response)
    provider = OllamaProvider(ProviderConfig(provider_id="ollama"), http_client=client)

    response = await provider.complete(chat_request)

    assert response.text == "Local reply"
    assert response.usage.total_tokens == 0
    assert response.provider == "ollama"
    assert str(recorder.requests[0].url) == "http://localhost:11434/api/chat"

    body = recorder.last_json()
    assert body["stream"] is False
    assert body["options"] == {"num_predict": 2048}
    assert [m["role"] for m in body["messages"]] == ["system", "user"]


@pytest.mark.asyncio
async def test_base_url_from_credential_slot(chat_request, make_client):
    client, recorder = make_client(ok_response)
    config = ProviderConfig(provider_id="ollama", api_key="http://gpu-box:11434/")

    await OllamaProvider(config, http_client=client).complete(chat_request)

    assert str(recorder.requests[0].url) == "http://gpu-box:11434/api/chat"


@pytest.mark.asyncio
async def test_base_url_field_wins(chat_request, make_client):
    client, recorder = make_client(ok_response)
    config = ProviderConfig(
        provider_id="ollama", api_key="http://ignored:1", base_url="http://chosen:11434"
    )

    await OllamaProvider(config, http_client=client).complete(chat_request)

    assert recorder.requests[0].url.host == "chosen"


@pytest.mark.asyncio
async def test_max_tokens_forwarded(chat_request, make_client):
    client, recorder = make_client(ok_response)
    chat_request.max_tokens = 256

    await OllamaProvider(ProviderConfig(provider_id="ollama"), http_client=client).complete(
        chat_request
    )

    assert recorder.last_json()["options"]["num_predict"] == 256


@pytest.mark.asyncio
async def test_missing_message(chat_request, make_client):
    client, _ = make_client(lambda request: httpx.Response(200, json={"done": True}))

    with pytest.raises(ParseError):
        await OllamaProvider(ProviderConfig(provider_id="ollama"), http_client=client).complete(
            chat_request
        )


@pytest.mark.asyncio
async def test_model_not_found(chat_request, make_client):
    client, _ = make_client(
        lambda request: httpx.Response(404, json={"error": "model 'llama9' not found"})
    )

    with pytest.raises(NotFoundError, match="ollama pull"):
        await OllamaProvider(ProviderConfig(provider_id="ollama"), http_client=client).complete(
            chat_request
        )


@pytest.mark.asyncio
async def test_server_not_running(chat_request, make_client):
    def handler(request):
        raise httpx.ConnectError("Connection refused", request=request)

    client, _ = make_client(handler)

    with pytest.raises(NetworkError):
        await OllamaProvider(ProviderConfig(provider_id="ollama"), http_client=client).complete(
            chat_request
        )
