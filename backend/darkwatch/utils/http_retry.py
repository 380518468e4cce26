"""HTTP retry helper for snapshot fetches.

Retries only transient failures: 429/5xx responses, connection errors and
timeouts.  Client errors (4xx other than 429) are raised immediately since
they indicate a misconfigured feed URL or credentials.

The ingest loop runs every few seconds, so backoff stays short; a fetch that
still fails is handled by the scheduler's demo fallback.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Sequence

import httpx

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504})
_RETRYABLE_EXCEPTIONS = (httpx.ConnectError, httpx.TimeoutException)

DEFAULT_DELAYS: tuple[float, ...] = (0.5, 1.5)


def retry_request(
    request_fn: Callable[..., httpx.Response],
    url: str,
    delays: Sequence[float] | None = None,
    **kwargs: Any,
) -> httpx.Response:
    """Call ``request_fn(url, **kwargs)``, retrying transient failures.

    Raises:
        httpx.HTTPStatusError: non-retryable status, or retryable status after
            the last attempt.
        httpx.ConnectError / httpx.TimeoutException: after the last attempt.
    """
    delays = DEFAULT_DELAYS if delays is None else tuple(delays)
    attempts = len(delays) + 1

    for attempt in range(attempts):
        last_attempt = attempt == attempts - 1
        try:
            resp = request_fn(url, **kwargs)
        except _RETRYABLE_EXCEPTIONS as exc:
            if last_attempt:
                raise
            reason = type(exc).__name__
        else:
            if resp.status_code < 400:
                return resp
            if resp.status_code not in RETRYABLE_STATUS_CODES or last_attempt:
                resp.raise_for_status()
            reason = f"HTTP {resp.status_code}"

        delay = delays[attempt]
        logger.warning(
            "%s from %s, retrying in %.1fs (attempt %d/%d)",
            reason, str(url)[:120], delay, attempt + 1, len(delays),
        )
        time.sleep(delay)

    raise RuntimeError("retry_request exhausted retries without result")
