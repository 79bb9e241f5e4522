"""Integration test fixtures (full layer over an httpx mock transport).

The remote API is simulated with httpx.MockTransport, so no external
service is needed.
"""

import httpx
import pytest

from resilience_layer.container import build_resilience_layer


class FakeApi:
    """
    Scripted remote API.

    Each path maps to a list of (status, json_body) responses consumed in
    order; the last one repeats.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], list[tuple[int, object]]] = {}
        self.calls: list[tuple[str, str]] = []

    def script(self, method: str, path: str, *responses: tuple[int, object]) -> None:
        self.routes[(method.upper(), path)] = list(responses)

    def count(self, method: str, path: str) -> int:
        return self.calls.count((method.upper(), path))

    def handler(self, request: httpx.Request) -> httpx.Response:
        key = (request.method, request.url.path)
        self.calls.append(key)
        responses = self.routes.get(key)
        if not responses:
            return httpx.Response(404, json={"message": "No route"})
        status, body = responses.pop(0) if len(responses) > 1 else responses[0]
        if isinstance(body, Exception):
            raise body
        return httpx.Response(status, json=body)


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def http_client(fake_api):
    """AsyncClient routed to the fake API (closed by the test via aclose)."""
    return httpx.AsyncClient(
        base_url="http://api.test",
        transport=httpx.MockTransport(fake_api.handler),
    )


@pytest.fixture
def layer(test_settings, fake_clock, recording_sleep, seeded_rng):
    """Full resilience layer on fake time."""
    return build_resilience_layer(
        test_settings,
        clock=fake_clock,
        sleep_func=recording_sleep,
        rng=seeded_rng,
    )
