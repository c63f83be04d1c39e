"""Retryable HTTP client (requests + retry/backoff).

Every request sent through :class:`RetryableClient` is retried on transient
failures according to a :class:`ClientPolicy`: network errors, body read
errors and retryable status codes. Response bodies are read into memory so
they stay readable after the connection is released.
"""

from __future__ import annotations

import logging
import socket
import traceback
from typing import Any, Dict, Mapping, Optional, Union
from urllib.parse import urlencode

import requests

from retryable.domain.config import ClientPolicy
from retryable.domain.models import Attempt, BodyFactory, RequestEnvelope
from retryable.errors import ClientError, ContextError, NonRetryableError, RetryableError
from retryable.infrastructure import delay
from retryable.infrastructure.body import (
    has_body,
    prepare_request_body,
    prepare_response_body,
    reset_request_body,
)
from retryable.infrastructure.context import RequestContext
from retryable.infrastructure.retry import create_retrying

logger = logging.getLogger(__name__)

AnyRequest = Union[requests.Request, requests.PreparedRequest]


class RetryableClient:
    """HTTP client that automatically retries failed requests.

    The client delegates every exchange to a ``requests.Session`` and is safe
    to share between threads: all per-request state lives in the call.
    """

    def __init__(
        self,
        policy: Optional[ClientPolicy] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize client

        Args:
            policy: Retry policy (default: ClientPolicy())
            session: Session performing the exchanges (default: new requests.Session)
        """
        self.policy = policy if policy is not None else ClientPolicy()
        self.session = session if session is not None else requests.Session()

    def close(self) -> None:
        """Close pooled connections of the underlying session."""
        self.session.close()

    def __enter__(self) -> "RetryableClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def get(self, url: str, context: Optional[RequestContext] = None, **kwargs: Any) -> requests.Response:
        """Issue a GET to the specified URL."""
        return self.request("GET", url, context=context, **kwargs)

    def head(self, url: str, context: Optional[RequestContext] = None, **kwargs: Any) -> requests.Response:
        """Issue a HEAD to the specified URL."""
        return self.request("HEAD", url, context=context, **kwargs)

    def post(
        self,
        url: str,
        content_type: str,
        body: Any = None,
        context: Optional[RequestContext] = None,
        **kwargs: Any,
    ) -> requests.Response:
        """Issue a POST to the specified URL with the given body and content type."""
        headers = dict(kwargs.pop("headers", None) or {})
        headers["Content-Type"] = content_type
        return self.request("POST", url, context=context, headers=headers, data=body, **kwargs)

    def post_form(
        self,
        url: str,
        data: Optional[Mapping[str, Any]] = None,
        context: Optional[RequestContext] = None,
    ) -> requests.Response:
        """Issue a POST with ``data`` URL-encoded as the request body."""
        body = urlencode(data, doseq=True) if data is not None else None
        return self.post(url, "application/x-www-form-urlencoded", body, context=context)

    def request(
        self,
        method: str,
        url: str,
        context: Optional[RequestContext] = None,
        headers: Optional[Dict[str, str]] = None,
        data: Any = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> requests.Response:
        """Construct a request and send it with retries.

        Raises:
            NonRetryableError: If the request cannot be constructed
        """
        try:
            prepared = self.session.prepare_request(
                requests.Request(method, url, headers=headers, data=data, params=params)
            )
        except (requests.RequestException, ValueError) as e:
            raise NonRetryableError(f"unable to construct request: {e}") from e
        return self.do(prepared, context=context)

    def do(
        self,
        request: AnyRequest,
        context: Optional[RequestContext] = None,
        body_factory: Optional[BodyFactory] = None,
    ) -> requests.Response:
        """Send a request, retrying transient failures.

        Args:
            request: Request to send. A ``requests.Request`` is prepared with
                the session first; a ``PreparedRequest`` is sent as is.
            context: Caller context; cancelling it aborts the call
            body_factory: Returns a fresh request body for every attempt. When
                omitted, streaming bodies are read into memory once.

        Returns:
            Response with a successful status code; its body is in memory

        Raises:
            RetryableError: Transient failure persisted until retries ran out
            NonRetryableError: Permanent failure, raised without retrying
        """
        try:
            return self._do(request, context, body_factory)
        except ClientError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error while sending request: {e!r}", exc_info=True)
            raise NonRetryableError(f"{e!r}: {traceback.format_exc()}") from e

    def _do(
        self,
        request: AnyRequest,
        context: Optional[RequestContext],
        body_factory: Optional[BodyFactory],
    ) -> requests.Response:
        envelope = RequestEnvelope(self._prepare(request), body_factory)
        prepare_request_body(envelope, self.policy.request_size)

        parent = context if context is not None else RequestContext.background()
        if self.policy.retry_timeout > 0:
            bounded = parent.with_timeout(self.policy.retry_timeout)
        else:
            bounded = parent.with_cancel()

        with bounded:
            return self._send_with_retries(envelope, bounded)

    def _prepare(self, request: AnyRequest) -> requests.PreparedRequest:
        if isinstance(request, requests.PreparedRequest):
            return request
        if isinstance(request, requests.Request):
            try:
                return self.session.prepare_request(request)
            except (requests.RequestException, ValueError) as e:
                raise NonRetryableError(f"unable to construct request: {e}") from e
        raise NonRetryableError("invalid request")

    def _send_with_retries(
        self, envelope: RequestEnvelope, context: RequestContext
    ) -> requests.Response:
        policy = self.policy
        total_attempts = policy.retry_count + 1
        retrying = create_retrying(
            policy,
            sleep=lambda seconds: self._apply_retry_delay(context, seconds),
        )

        for attempt_manager in retrying:
            with attempt_manager:
                attempt = Attempt(index=attempt_manager.retry_state.attempt_number - 1)
                self._apply_request_delay(context)
                reset_request_body(envelope)
                try:
                    attempt.response = self._send(envelope, context)
                except ClientError as e:
                    attempt.response, attempt.error = e.response, e
                    logger.debug(
                        f"{envelope.request.method} {envelope.request.url} "
                        f"attempt {attempt.number}/{total_attempts} failed: {e}"
                    )
                    raise
                logger.debug(
                    f"{envelope.request.method} {envelope.request.url} "
                    f"attempt {attempt.number}/{total_attempts} "
                    f"succeeded with status {attempt.response.status_code}"
                )
                return attempt.response

    def _apply_request_delay(self, context: RequestContext) -> None:
        try:
            delay.sleep_with_jitter(context, self.policy.request_delay, self.policy.request_jitter)
        except ContextError as e:
            raise NonRetryableError(str(e)) from e

    def _apply_retry_delay(self, context: RequestContext, seconds: float) -> None:
        try:
            delay.sleep(context, seconds)
        except ContextError as e:
            raise NonRetryableError(str(e)) from e

    def _send(self, envelope: RequestEnvelope, context: RequestContext) -> requests.Response:
        """Perform one exchange and validate the response."""
        err = context.error()
        if err is not None:
            raise NonRetryableError(str(err)) from err

        request = envelope.request
        if self.policy.request_timeout > 0:
            attempt_context = context.with_timeout(self.policy.request_timeout)
        else:
            attempt_context = context.with_cancel()

        with attempt_context:
            settings = self.session.merge_environment_settings(request.url, {}, True, None, None)
            try:
                response = self.session.send(request, timeout=attempt_context.remaining(), **settings)
            except requests.RequestException as e:
                # a send failing after the call-wide budget ended is never retried
                err = context.error()
                if err is not None:
                    raise NonRetryableError(f"{err}: {e}") from err
                raise RetryableError(f"unable to send request: {e}") from e

            if not has_body(response):
                raise RetryableError("invalid response", response=response)

            # the socket timeout bounds single reads only; abort the exchange
            # once either context ends
            stop = attempt_context.after_func(lambda: _abort_response(response))
            try:
                prepare_response_body(
                    response,
                    self.policy.retry_status,
                    self.policy.response_size,
                    attempt_context,
                )
            except ContextError as e:
                err = context.error()
                if err is not None:
                    raise NonRetryableError(str(err), response=response) from err
                raise RetryableError(
                    f"unable to read response body: {e}", response=response
                ) from e
            finally:
                stop()
        return response


def _abort_response(response: requests.Response) -> None:
    """Shut down the socket under a streamed response so blocked reads return."""
    connection = getattr(response.raw, "connection", None)
    sock = getattr(connection, "sock", None)
    if sock is None:
        return
    logger.debug(f"Aborting response from {response.url}")
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError as e:
        logger.debug(f"Failed to abort response: {e}")


def new_client(
    policy: Optional[ClientPolicy] = None,
    session: Optional[requests.Session] = None,
) -> RetryableClient:
    """Create an independently configured retryable client."""
    return RetryableClient(policy=policy, session=session)
