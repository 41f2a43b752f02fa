"""
Test configuration and fixtures for pytest.

This module provides shared fixtures used across all tests:
- Test database (SQLite in-memory for speed)
- Upstream stub (httpx.MockTransport, no network)
- Test client (FastAPI TestClient) wired to both
- Provider config factories
"""

import os

# The app engine is created at import time; keep it off the filesystem
os.environ.setdefault("DATABASE_URL", "sqlite://")

import json
from typing import Any, Callable, Dict, Generator, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from assistant_gateway.core.config import settings
from assistant_gateway.db.base import Base
from assistant_gateway.db.session import get_db
from assistant_gateway.deps import get_http_client
from assistant_gateway.main import app
from assistant_gateway.models.provider_config import AIProviderConfig


# ---------------------------------------------------------------------------
# TEST DATABASE SETUP
# ---------------------------------------------------------------------------
# StaticPool keeps the same in-memory connection across all operations

SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# ---------------------------------------------------------------------------
# UPSTREAM HELPERS
# ---------------------------------------------------------------------------

def sse_body(*payloads: Any, done: bool = True) -> bytes:
    """Frame payloads as an SSE body, optionally terminated by [DONE]."""
    frames = [f"data: {json.dumps(payload)}\n\n" for payload in payloads]
    if done:
        frames.append("data: [DONE]\n\n")
    return "".join(frames).encode("utf-8")


def chat_chunk(text: str) -> Dict[str, Any]:
    return {"choices": [{"delta": {"content": text}}]}


def chat_message(text: str, **message_fields: Any) -> Dict[str, Any]:
    return {"choices": [{"message": {"role": "assistant", "content": text, **message_fields}}]}


def request_json(request: httpx.Request) -> Dict[str, Any]:
    return json.loads(request.content or b"{}")


def stream_text(body: str) -> str:
    """Concatenate the delta contents of an OpenAI-style event stream."""
    texts: List[str] = []
    for line in body.splitlines():
        if not line.startswith("data:"):
            continue
        data = line[len("data:"):].strip()
        if data == "[DONE]":
            continue
        chunk = json.loads(data)
        texts.append(chunk["choices"][0]["delta"].get("content") or "")
    return "".join(texts)


def default_upstream(request: httpx.Request) -> httpx.Response:
    """Answers every call successfully: a streamed "Hi" or a buffered "test"."""
    body = request_json(request)
    if body.get("stream"):
        return httpx.Response(
            200,
            content=sse_body(chat_chunk("Hi")),
            headers={"content-type": "text/event-stream"},
        )
    return httpx.Response(200, json=chat_message("test"))


class UpstreamStub:
    """
    Callable MockTransport handler that records every request.

    Swap `handler` inside a test to script upstream behavior.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = default_upstream

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def hosts(self) -> List[str]:
        return [request.url.host for request in self.requests]

    def bodies(self) -> List[Dict[str, Any]]:
        return [request_json(request) for request in self.requests]


# ---------------------------------------------------------------------------
# FIXTURES
# ---------------------------------------------------------------------------

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Create a fresh database for each test function.

    - Creates all tables
    - Yields a session for the test
    - Drops all tables after test (clean slate)
    """
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def upstream() -> UpstreamStub:
    return UpstreamStub()


@pytest.fixture
def builtin_key(monkeypatch) -> str:
    """Give the built-in default provider a credential."""
    monkeypatch.setattr(settings, "DEFAULT_AI_API_KEY", "builtin-test-key")
    return "builtin-test-key"


@pytest.fixture(scope="function")
def client(
    db: Session,
    upstream: UpstreamStub,
    builtin_key: str,
    monkeypatch,
) -> Generator[TestClient, None, None]:
    """
    Create a test client with the test database and the upstream stub.

    Overrides get_db and get_http_client; the rate limiter is the real one
    created by the lifespan, fresh for every test. Retry backoff is zeroed.
    """
    monkeypatch.setattr(settings, "RETRY_BACKOFF_BASE_MS", 0)
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(upstream))

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_http_client] = lambda: http_client

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def add_provider(db: Session) -> Callable[..., AIProviderConfig]:
    """
    Factory for stored provider configs.

    Usage:
        add_provider(label="Primary", base_url="https://p1.example.com/v1", priority=0)
    """
    def _add(
        label: str = "Primary",
        provider: str = "openai",
        base_url: str = "https://p1.example.com/v1",
        model: str = "gpt-4o-mini",
        api_key: Optional[str] = "sk-test",
        enabled: bool = True,
        priority: int = 0,
    ) -> AIProviderConfig:
        row = AIProviderConfig(
            label=label,
            provider=provider,
            base_url=base_url,
            model=model,
            api_key=api_key or "",
            enabled=enabled,
            priority=priority,
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    return _add
