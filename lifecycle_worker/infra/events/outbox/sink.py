"""HTTP sink for signed account events."""

from __future__ import annotations

import logging
import time

import httpx

from lifecycle_worker.core.exceptions import DeliveryFailure
from lifecycle_worker.infra.metrics.prometheus import (
    event_delivery_duration_seconds,
    event_delivery_failures_total,
)

logger = logging.getLogger(__name__)

USER_AGENT = "lifecycle-worker/1.0"


class NotificationSink:
    """Delivers one signed event token per POST.

    The receiver must treat a repeated ``X-Event-Id`` as a no-op: delivery is
    at-least-once.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the sink.

        Args:
            url: Endpoint accepting ``application/jwt`` bodies
            timeout_seconds: Per-request timeout
            client: Shared client (tests inject one with a MockTransport)
        """
        self.url = url
        self.timeout_seconds = timeout_seconds
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._owns_client = client is None

    async def deliver(self, event_id: int, token: str) -> None:
        """POST a token to the sink.

        Raises:
            DeliveryFailure: On transport error, timeout or non-2xx response.
        """
        headers = {
            "Content-Type": "application/jwt",
            "User-Agent": USER_AGENT,
            "X-Event-Id": str(event_id),
        }
        start = time.perf_counter()
        try:
            response = await self._client.post(
                self.url,
                content=token,
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except httpx.TimeoutException as e:
            event_delivery_failures_total.labels(reason="timeout").inc()
            raise DeliveryFailure(
                f"Delivery timed out after {self.timeout_seconds}s",
                event_id=event_id,
            ) from e
        except httpx.HTTPError as e:
            event_delivery_failures_total.labels(reason="transport").inc()
            raise DeliveryFailure(f"Delivery failed: {e}", event_id=event_id) from e
        finally:
            event_delivery_duration_seconds.observe(time.perf_counter() - start)

        if not response.is_success:
            event_delivery_failures_total.labels(reason="status").inc()
            raise DeliveryFailure(
                f"Sink rejected event with HTTP {response.status_code}",
                event_id=event_id,
                status_code=response.status_code,
                extra={"response_body": response.text[:500]},
            )

        logger.debug(
            "Event delivered",
            extra={"event_id": event_id, "status_code": response.status_code},
        )

    async def aclose(self) -> None:
        """Close the HTTP client if the sink created it."""
        if self._owns_client:
            await self._client.aclose()


__all__ = ["NotificationSink"]
