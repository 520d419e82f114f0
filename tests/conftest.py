"""Shared pytest fixtures for the latency service test suite."""
from typing import List, Optional

import httpx
import pytest
import pytest_asyncio

from latency_service.config import ServiceConfig
from latency_service.hops import HopChainClient


class DownstreamStub:
    """Records outbound hop calls and answers them with a canned response."""

    def __init__(self, status_code: int = 200, body: bytes = b"downstream", error: Optional[type] = None):
        self.status_code = status_code
        self.body = body
        self.error = error
        self.calls: List[httpx.Request] = []
        self.clients: List[httpx.AsyncClient] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        if self.error is not None:
            raise self.error("simulated transport error", request=request)
        return httpx.Response(self.status_code, content=self.body)

    def hop_client(self) -> HopChainClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self))
        self.clients.append(client)
        return HopChainClient(client)

    async def aclose(self):
        for client in self.clients:
            await client.aclose()


@pytest.fixture
def make_config():
    """ServiceConfig factory; defaults to a very fast, seeded service."""
    def _make(**overrides) -> ServiceConfig:
        values = {"speed": 10_000.0, "seed": 1234}
        values.update(overrides)
        return ServiceConfig(**values)
    return _make


@pytest_asyncio.fixture
async def make_downstream():
    """DownstreamStub factory; every client a stub hands out is closed afterwards."""
    stubs: List[DownstreamStub] = []

    def _make(**kwargs) -> DownstreamStub:
        stub = DownstreamStub(**kwargs)
        stubs.append(stub)
        return stub

    yield _make

    for stub in stubs:
        await stub.aclose()


@pytest.fixture
def downstream(make_downstream) -> DownstreamStub:
    return make_downstream()
