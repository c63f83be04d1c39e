"""Per-call request and attempt records."""

from dataclasses import dataclass
from typing import Any, Callable, Optional

import requests

BodyFactory = Callable[[], Any]


@dataclass
class RequestEnvelope:
    """A prepared request together with its body regeneration capability.

    Attributes:
        request: Prepared request sent on every attempt
        body_factory: Returns a fresh body for each attempt (None when the
            request carries no body)
    """

    request: requests.PreparedRequest
    body_factory: Optional[BodyFactory] = None

    @property
    def has_body(self) -> bool:
        return self.request.body is not None


@dataclass
class Attempt:
    """Result of the most recent send.

    Attributes:
        index: Zero-based attempt number
        response: Response received, if any
        error: Error raised, if any
    """

    index: int
    response: Optional[requests.Response] = None
    error: Optional[Exception] = None

    @property
    def number(self) -> int:
        return self.index + 1
