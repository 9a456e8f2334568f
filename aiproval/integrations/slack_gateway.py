"""
Slack incoming-webhook gateway.

Delivers plain-text notifications to a Slack webhook URL. The gateway never
raises for delivery problems: it returns a DeliveryResult and the caller
records it as an IntegrationEvent.

Testability: pass a mock `session` to SlackGateway() in tests instead of
letting it create a real requests.Session internally.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import requests

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 5
_MAX_TEXT_LENGTH = 3000


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of one webhook POST.

    Attributes:
        ok:           True on HTTP 2xx.
        status_code:  HTTP status code (None on network-level failure).
        error:        Human-readable error or None.
        duration_ms:  Round-trip latency in milliseconds.
    """

    ok: bool
    status_code: int | None
    error: str | None
    duration_ms: int


class SlackGateway:
    """Posts messages to Slack incoming webhooks.

    Usage:
        from aiproval.integrations.slack_gateway import slack_gateway
        result = slack_gateway.post_message(url, "Mockup approved")
    """

    def __init__(self, session: requests.Session | None = None) -> None:
        self._session: requests.Session | None = session

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def post_message(self, webhook_url: str, text: str,
                     timeout: int = _DEFAULT_TIMEOUT) -> DeliveryResult:
        t0 = time.perf_counter()
        try:
            resp = self.session.post(
                webhook_url,
                json={"text": text[:_MAX_TEXT_LENGTH]},
                timeout=timeout,
            )
        except requests.Timeout:
            logger.warning("Slack webhook timed out after %ss", timeout)
            return DeliveryResult(False, None, f"Request timed out after {timeout}s", timeout * 1000)
        except requests.RequestException as exc:
            logger.warning("Slack webhook network error: %s", exc)
            return DeliveryResult(False, None, str(exc)[:500], int((time.perf_counter() - t0) * 1000))

        duration_ms = int((time.perf_counter() - t0) * 1000)
        if resp.ok:
            return DeliveryResult(True, resp.status_code, None, duration_ms)

        logger.warning("Slack webhook rejected message: HTTP %d", resp.status_code)
        return DeliveryResult(
            False, resp.status_code, f"HTTP {resp.status_code}: {resp.text[:500]}", duration_ms,
        )


slack_gateway = SlackGateway()
