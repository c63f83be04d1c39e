from __future__ import annotations

import io
from typing import Callable, List, Optional, Union

import pytest
import requests

from retryable.domain.config import ClientPolicy


def make_response(
    status_code: int,
    body: bytes = b"",
    headers: Optional[dict] = None,
    raw=None,
) -> requests.Response:
    r = requests.Response()
    r.status_code = status_code
    r.url = "http://example.test"
    r.reason = "Test"
    r.raw = raw if raw is not None else io.BytesIO(body)
    for key, value in (headers or {}).items():
        r.headers[key] = value
    return r


Outcome = Union[requests.Response, Exception, None, Callable[[requests.PreparedRequest], requests.Response]]


class FakeSession(requests.Session):
    """Session that returns scripted outcomes instead of touching the network.

    The last outcome is repeated once the script runs out.
    """

    def __init__(self, outcomes: List[Outcome]):
        super().__init__()
        self.trust_env = False
        self.outcomes = list(outcomes)
        self.sent: List[requests.PreparedRequest] = []
        self.bodies: List[object] = []
        self.send_kwargs: List[dict] = []
        self.closed = False

    def send(self, request, **kwargs):
        self.sent.append(request)
        body = request.body
        if body is not None and not isinstance(body, (bytes, str)):
            body = b"".join(body)
        self.bodies.append(body)
        self.send_kwargs.append(kwargs)

        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        if callable(outcome) and not isinstance(outcome, requests.Response):
            return outcome(request)
        if isinstance(outcome, requests.Response):
            # hand out a fresh copy so repeated outcomes have unread bodies
            return make_response(
                outcome.status_code,
                outcome.raw.getvalue(),
                dict(outcome.headers),
            )
        return outcome

    def close(self):
        self.closed = True
        super().close()


def fast_policy(**overrides) -> ClientPolicy:
    """Policy without delays so tests run instantly."""
    values = dict(
        retry_count=3,
        retry_delay=0,
        retry_jitter=0,
        request_delay=0,
        request_jitter=0,
    )
    values.update(overrides)
    return ClientPolicy(**values)


@pytest.fixture
def sleep_calls(monkeypatch):
    """Record sleeps instead of waiting."""
    calls: List[float] = []

    def fake_sleep(context, seconds):
        calls.append(seconds)

    monkeypatch.setattr("retryable.infrastructure.delay.sleep", fake_sleep)
    return calls
