"""Shared fixtures: isolated settings, fresh in-memory state, fake OpenAI client."""
import json
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

import llm
import main
from config import Settings, get_settings
from storage import CallbackLog, EnrichmentStore


class DummyResponse:
    """Minimal stand-in for httpx.Response."""

    def __init__(self, status_code: int, payload=None, content_type: str = "application/json"):
        self.status_code = status_code
        self._payload = payload
        self.headers = {"content-type": content_type} if content_type else {}

    def json(self):
        if self._payload is None:
            raise ValueError("no body")
        return self._payload


class FakeCompletions:
    """Records calls to chat.completions.create and returns canned content."""

    def __init__(self, content=None, error: Exception = None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        content = self.content if isinstance(self.content, str) or self.content is None else json.dumps(self.content)
        message = SimpleNamespace(content=content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        enrichment_webhook_url=None,
        enrichment_api_key=None,
        callback_base_url="https://app.example.com",
        callback_secret=None,
        openai_api_key=None,
    )


@pytest.fixture
def store() -> EnrichmentStore:
    return EnrichmentStore(retention_minutes=30)


@pytest.fixture
def callback_log() -> CallbackLog:
    return CallbackLog(capacity=20)


@pytest.fixture
def fake_llm(monkeypatch):
    """Install a fake OpenAI client; call with the content the model should return."""

    def install(content=None, error: Exception = None) -> FakeCompletions:
        completions = FakeCompletions(content=content, error=error)
        client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
        monkeypatch.setattr(llm, "get_client", lambda settings: client)
        return completions

    return install


@pytest.fixture
def client(settings, store, callback_log):
    main.app.dependency_overrides[get_settings] = lambda: settings
    main.app.state.store = store
    main.app.state.callback_log = callback_log
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()
