"""Request body replay and response body capture.

Request bodies are materialized once so every attempt sends identical bytes.
Response bodies are read fully into memory so the caller can read them after
the connection has been released, including when an error is raised.
"""

import io
import logging
from typing import Any, Iterable, Iterator, Optional

import requests

from retryable.domain.models import RequestEnvelope, RetryDecision
from retryable.errors import NonRetryableError, RetryableError
from retryable.infrastructure.context import RequestContext

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


def _iter_chunks(body: Any) -> Iterator[bytes]:
    """Iterate a file-like object or an iterable of chunks as bytes."""
    if hasattr(body, "read"):
        chunks: Iterable[Any] = iter(lambda: body.read(CHUNK_SIZE), b"")
    else:
        chunks = body
    for chunk in chunks:
        if isinstance(chunk, str):
            if not chunk:
                # text-mode files signal EOF with ""
                return
            chunk = chunk.encode("utf-8")
        if chunk:
            yield chunk


def read_limited(
    chunks: Iterable[bytes],
    limit: int,
    buffer: bytearray,
    context: Optional[RequestContext] = None,
) -> int:
    """Read chunks into ``buffer`` up to ``limit`` bytes, draining the rest.

    The buffer is filled in place so that the bytes read so far survive a
    failing stream.

    Args:
        chunks: Byte chunks to consume
        limit: Maximum bytes kept in memory (0 = unbounded)
        buffer: Destination buffer
        context: Checked after every chunk; reading stops once it ends

    Returns:
        Total bytes observed, including drained ones

    Raises:
        ContextError: If ``context`` ends before the chunks are exhausted
    """
    total = 0
    for chunk in chunks:
        total += len(chunk)
        if limit <= 0:
            buffer.extend(chunk)
        elif len(buffer) < limit:
            buffer.extend(chunk[: limit - len(buffer)])
        if context is not None:
            err = context.error()
            if err is not None:
                raise err
    return total


def _is_replayable(body: Any) -> bool:
    return isinstance(body, (bytes, bytearray, str))


def prepare_request_body(envelope: RequestEnvelope, request_size: int) -> None:
    """Ensure the request body can be resent on every attempt.

    Requests without a body, or with a caller-supplied body factory, are left
    unchanged. Byte and string bodies are replayable as they are. Streaming
    bodies (file-like objects, iterators) are read into memory once, the
    original stream is closed, and a factory returning the captured bytes is
    installed.

    Args:
        envelope: Request envelope to prepare
        request_size: Maximum request body size in bytes (0 = unbounded)

    Raises:
        NonRetryableError: If the request is invalid, the body cannot be read,
            or the body exceeds ``request_size``
    """
    if envelope is None or envelope.request is None:
        raise NonRetryableError("invalid request")

    request = envelope.request
    if not envelope.has_body or envelope.body_factory is not None:
        return

    body = request.body
    if _is_replayable(body):
        envelope.body_factory = lambda: body
        return

    captured = bytearray()
    try:
        size = read_limited(_iter_chunks(body), request_size, captured)
    except (OSError, ValueError) as e:
        raise NonRetryableError(f"unable to read request body: {e}") from e
    finally:
        _close_quietly(body)

    buffer = bytes(captured)
    request.headers.pop("Transfer-Encoding", None)
    request.headers["Content-Length"] = str(len(buffer))
    request.body = buffer
    envelope.body_factory = lambda: buffer
    logger.debug(f"Captured {len(buffer)} bytes of request body for replay")

    if request_size > 0 and size > request_size:
        raise NonRetryableError(f"request size exceeded ({size})")


def reset_request_body(envelope: RequestEnvelope) -> None:
    """Install a fresh body from the envelope's factory before an attempt.

    Raises:
        NonRetryableError: If the body factory fails
    """
    if envelope.body_factory is None:
        return
    try:
        envelope.request.body = envelope.body_factory()
    except Exception as e:
        raise NonRetryableError(f"unable to reset request body: {e}") from e


def _close_quietly(stream: Any) -> None:
    close = getattr(stream, "close", None)
    if close is None:
        return
    try:
        close()
    except OSError as e:
        logger.debug(f"Failed to close request body: {e}")


def classify_response(
    status_code: int,
    retry_status: Iterable[int],
    size: int,
    response_size: int,
) -> RetryDecision:
    """Classify a completed exchange.

    Membership in ``retry_status`` takes precedence over the >= 400 rule, and
    size violations are never retried.
    """
    if status_code in retry_status:
        return RetryDecision.RETRYABLE
    if status_code >= 400:
        return RetryDecision.FATAL
    if response_size > 0 and size > response_size:
        return RetryDecision.FATAL
    return RetryDecision.SUCCESS


def _replace_response_body(response: requests.Response, buffer: bytes) -> None:
    response._content = buffer
    response._content_consumed = True
    response.raw = io.BytesIO(buffer)


def prepare_response_body(
    response: requests.Response,
    retry_status: Iterable[int],
    response_size: int,
    context: Optional[RequestContext] = None,
) -> None:
    """Read the response body into memory and validate the response.

    The original body stream is closed exactly once, and the response body is
    replaced with the captured bytes on every path. A read cut short by the
    end of ``context`` is reported as a context error rather than a response,
    since an aborted stream can look like a complete body.

    Args:
        response: Response received with ``stream=True``
        retry_status: Status codes that are retried
        response_size: Maximum response body size in bytes (0 = unbounded)
        context: Context bounding the read

    Raises:
        ContextError: If ``context`` ends before the response is validated
        RetryableError: If the body cannot be read or the status is retryable
        NonRetryableError: If the status is fatal or the body is too large
    """
    captured = bytearray()
    try:
        size = read_limited(response.iter_content(CHUNK_SIZE), response_size, captured, context)
    except (requests.RequestException, OSError) as e:
        err = context.error() if context is not None else None
        if err is not None:
            raise err from e
        raise RetryableError(f"unable to read response body: {e}", response=response) from e
    finally:
        response.close()
        _replace_response_body(response, bytes(captured))

    if context is not None:
        err = context.error()
        if err is not None:
            raise err

    decision = classify_response(response.status_code, retry_status, size, response_size)
    if decision is RetryDecision.RETRYABLE:
        raise RetryableError(f"invalid status code ({response.status_code})", response=response)
    if decision is RetryDecision.FATAL:
        if response.status_code >= 400:
            raise NonRetryableError(
                f"invalid status code ({response.status_code})", response=response
            )
        raise NonRetryableError(f"response size exceeded ({size})", response=response)


def has_body(response: Optional[requests.Response]) -> bool:
    return response is not None and response.raw is not None
