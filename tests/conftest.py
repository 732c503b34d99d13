"""
Test Configuration Module
"""

import json
from typing import AsyncGenerator, Callable, Optional

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ollama_gateway.common.time import utc_now
from ollama_gateway.db.models import Base
from ollama_gateway.domain.api_key import ApiKeyModel
from ollama_gateway.providers.ollama_client import OllamaClient
from ollama_gateway.services.log_service import UsageRecorder

# Use in-memory database for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def async_engine():
    """Create async database engine for testing"""
    # StaticPool: every session shares the single in-memory database
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(async_engine):
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing"""
    async with session_factory() as session:
        yield session


@pytest.fixture
def usage_recorder(session_factory) -> UsageRecorder:
    return UsageRecorder(session_factory=session_factory)


@pytest.fixture
def api_key() -> ApiKeyModel:
    return ApiKeyModel(
        id=1,
        name="test-key",
        key_value="sk-test-0123456789",
        allowed_models=["*"],
        is_active=True,
        created_at=utc_now(),
        last_used_at=None,
    )


def ndjson(*events: dict) -> bytes:
    """Encode events the way Ollama streams them"""
    return b"".join(json.dumps(event).encode("utf-8") + b"\n" for event in events)


def make_ollama_client(
    handler: Callable[[httpx.Request], httpx.Response],
) -> OllamaClient:
    """OllamaClient talking to an in-process handler instead of a server"""
    return OllamaClient(base_url="http://ollama.test", transport=httpx.MockTransport(handler))


class RecordingHandler:
    """MockTransport handler that remembers every request body"""

    def __init__(self, response: Callable[[httpx.Request], httpx.Response]):
        self.response = response
        self.requests: list[httpx.Request] = []

    @property
    def last_json(self) -> Optional[dict]:
        if not self.requests:
            return None
        return json.loads(self.requests[-1].content)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response(request)
