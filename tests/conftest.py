"""Pytest configuration for PE2 tests."""
import json
import sys
from pathlib import Path

import httpx
import pytest

# Add project root to path so 'pe2' package can be imported
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from pe2.llm.config import ProviderConfig  # noqa: E402
from pe2.llm.types import Choice, CompletionRequest, CompletionResponse, Message, Usage  # noqa: E402


class RecordingTransport:
    """httpx transport that answers from a handler and records every request."""

    def __init__(self, handler):
        self.handler = handler
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def make_client():
    """Build an AsyncClient backed by a recording mock transport."""

    def _make(handler):
        recorder = RecordingTransport(handler)
        client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
        return client, recorder

    return _make


@pytest.fixture
def chat_request():
    """System + user request, the shape the orchestrator sends."""
    return CompletionRequest(
        model="test-model",
        messages=[
            Message(role="system", content="You are helpful."),
            Message(role="user", content="Say hello"),
        ],
    )


class FakeProvider:
    """Scripted provider: each call pops the next reply (text or exception)."""

    id = "fake"

    def __init__(self, replies, model="fake-model"):
        self.config = ProviderConfig(provider_id="fake", api_key="test-key", model=model)
        self.replies = list(replies)
        self.requests = []

    def validate_config(self, cfg):
        pass

    async def complete(self, request):
        self.requests.append(request)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return CompletionResponse(
            choices=[Choice(message=Message(role="assistant", content=reply))],
            model=request.model,
            usage=Usage(prompt_tokens=10, completion_tokens=5, total_tokens=15),
            provider=self.id,
        )


@pytest.fixture
def fake_provider():
    """Factory for scripted providers."""
    return FakeProvider


def pe2_json(**overrides) -> str:
    data = {
        "context": "A web service team needs documentation.",
        "role": "Senior technical writer",
        "task": "Write an API reference",
        "constraints": "Use plain language",
        "output": "Markdown document",
    }
    data.update(overrides)
    return json.dumps(data)


@pytest.fixture
def valid_reply():
    """Factory for a well-formed PE2 JSON reply."""
    return pe2_json
