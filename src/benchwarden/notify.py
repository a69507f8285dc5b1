"""Notification sinks for benchwarden.

This module provides the NotificationSink protocol and a webhook sink
that posts the outcome of every run as JSON.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import httpx

from benchwarden.core.exceptions import NotificationError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from types import TracebackType

    from benchwarden.core.gating import EmitOutcome

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


@runtime_checkable
class NotificationSink(Protocol):
    """Protocol for receivers of run outcomes.

    Example:
        >>> class PrintSink:
        ...     async def notify(self, outcome: EmitOutcome, summary: str) -> None:
        ...         print(outcome.status.value, summary)
    """

    async def notify(self, outcome: EmitOutcome, summary: str) -> None:
        """Deliver an outcome and its Markdown summary.

        Raises:
            NotificationError: If delivery fails.
        """
        ...


class WebhookSink:
    """Posts run outcomes to an HTTP webhook.

    The request body is a JSON object with the outcome fields
    (``status``, ``exit_code``, ``failed``, ``warned``, ``summary``) and
    the Markdown report under ``text``.

    Can be used as a context manager to reuse one connection, or
    standalone (one connection per notification).

    Attributes:
        url: Webhook URL.
        timeout: Request timeout in seconds.

    Example:
        >>> async with WebhookSink("https://hooks.example.com/bench") as sink:
        ...     await sink.notify(outcome, summary)
    """

    def __init__(self, url: str, timeout: float = DEFAULT_TIMEOUT, headers: dict[str, str] | None = None) -> None:
        """Initialize WebhookSink.

        Args:
            url: Webhook URL.
            timeout: Request timeout in seconds. Defaults to 10.0.
            headers: Extra request headers, e.g. an authorization token.
        """
        self.url = url
        self.timeout = timeout
        self.headers = headers or {}
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> WebhookSink:
        """Enter async context manager, creating a reusable HTTP client."""
        self._client = httpx.AsyncClient(timeout=self.timeout, headers=self.headers)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit async context manager, closing the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @asynccontextmanager
    async def _get_client(self) -> AsyncIterator[httpx.AsyncClient]:
        """Yield the managed client, or a temporary one outside a context."""
        if self._client is not None:
            yield self._client
        else:
            async with httpx.AsyncClient(timeout=self.timeout, headers=self.headers) as client:
                yield client

    async def notify(self, outcome: EmitOutcome, summary: str) -> None:
        """Post an outcome to the webhook.

        Args:
            outcome: The CI outcome of the run.
            summary: Markdown rendering of the report.

        Raises:
            NotificationError: If the webhook cannot be reached or rejects the request.
        """
        payload = {**outcome.to_dict(), "text": summary}

        try:
            async with self._get_client() as client:
                response = await client.post(self.url, json=payload)
                response.raise_for_status()
        except httpx.ConnectError as e:
            msg = f"Failed to connect to webhook at {self.url}: {e}"
            raise NotificationError(msg) from e
        except httpx.TimeoutException as e:
            msg = f"Webhook request timed out after {self.timeout}s: {e}"
            raise NotificationError(msg) from e
        except httpx.HTTPStatusError as e:
            msg = f"Webhook error: {e.response.status_code} - {e.response.text}"
            raise NotificationError(msg) from e
        except httpx.HTTPError as e:
            msg = f"Unexpected error calling webhook: {e}"
            raise NotificationError(msg) from e

        logger.debug(f"Webhook {self.url} accepted {outcome.status.value} notification")
