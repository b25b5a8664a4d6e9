"""Shared fixtures: mirror configuration and mock transports."""

from typing import Callable, Dict, List

import httpx
import pytest

from webreach.config import MirrorConfig, get_config

from tests.helpers import MIRROR_A, MIRROR_B, PROXY


@pytest.fixture
def mirror_config() -> MirrorConfig:
    return MirrorConfig(
        mirrors=(MIRROR_A, MIRROR_B),
        proxies=(PROXY,),
        user_agents=("webreach-tests/1.0",),
        timeout=5.0,
    )


@pytest.fixture
def make_transport() -> Callable[..., httpx.MockTransport]:
    """Build a MockTransport from a handler; requests are recorded on ``.calls``."""

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.MockTransport:
        calls: List[str] = []

        def recording(request: httpx.Request) -> httpx.Response:
            calls.append(str(request.url))
            return handler(request)

        transport = httpx.MockTransport(recording)
        transport.calls = calls
        return transport

    return factory


@pytest.fixture
def html_response() -> Callable[[str], httpx.Response]:
    def build(body: str, status: int = 200, headers: Dict[str, str] = None) -> httpx.Response:
        return httpx.Response(status, html=body, headers=headers)

    return build


@pytest.fixture(autouse=True)
def clear_config_cache():
    get_config.cache_clear()
    yield
    get_config.cache_clear()
