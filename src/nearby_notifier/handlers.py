"""Notification handlers and fan-out."""

import time
import logging
import requests
from typing import List, Optional, Protocol, runtime_checkable

from .models import Encounter, now_ms

logger = logging.getLogger(__name__)


@runtime_checkable
class Handler(Protocol):
    """Anything that can receive an accepted encounter."""

    def notify(self, encounter: Encounter) -> None:
        ...


class NotificationFanout:
    """
    Deliver encounters to every attached handler, in attachment order.

    Each handler call is isolated: an exception is logged and the next
    handler still runs, and nothing propagates to the walk loop.
    """

    def __init__(self, handlers: Optional[List[Handler]] = None, log: Optional[logging.Logger] = None):
        self.handlers: List[Handler] = list(handlers or [])
        self.log = log or logger

    def attach(self, handler: Handler):
        """Attach a handler after the existing ones."""
        self.handlers.append(handler)

    def notify(self, encounter: Encounter) -> int:
        """
        Send an encounter to all handlers.

        Returns:
            Number of handlers that completed without raising
        """
        delivered = 0
        for handler in self.handlers:
            try:
                handler.notify(encounter)
                delivered += 1
            except Exception:
                self.log.exception(
                    f"Handler {type(handler).__name__} failed for encounter {encounter.identity}"
                )
        return delivered

    def __len__(self) -> int:
        return len(self.handlers)


class LogHandler:
    """Write one log line per encounter."""

    def __init__(self, log: Optional[logging.Logger] = None, level: int = logging.INFO):
        self.log = log or logger
        self.level = level

    def notify(self, encounter: Encounter):
        remaining = encounter.remaining_ms(now_ms()) // 1000
        self.log.log(
            self.level,
            f"{encounter.state} {encounter.name} at {encounter.latitude}, {encounter.longitude} "
            f"({remaining}s left)",
        )


class WebhookHandler:
    """
    POST encounters as JSON to a webhook URL.

    Applies a minimum spacing between requests. HTTP failures are logged and
    reported through the return value, never raised, so a down webhook does
    not stall the walk.
    """

    def __init__(
        self,
        url: str,
        only_new: bool = False,
        timeout: float = 10,
        rate_limit_seconds: float = 1.0,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.only_new = only_new
        self.timeout = timeout
        self.rate_limit_seconds = rate_limit_seconds
        self.session = session or requests.Session()
        self.last_send_time = 0.0

    def notify(self, encounter: Encounter) -> bool:
        """
        Send an encounter to the webhook.

        Returns:
            True if the webhook accepted it, False if filtered out or failed
        """
        if self.only_new and not encounter.is_new:
            return False

        # Rate limiting
        now = time.time()
        time_since_last = now - self.last_send_time
        if time_since_last < self.rate_limit_seconds:
            sleep_time = self.rate_limit_seconds - time_since_last
            logger.debug(f"Webhook rate limiting: sleeping {sleep_time:.1f}s")
            time.sleep(sleep_time)

        try:
            response = self.session.post(
                self.url,
                json=encounter.to_dict(),
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
            )
            self.last_send_time = time.time()

            if 200 <= response.status_code < 300:
                logger.debug(f"Webhook accepted encounter {encounter.identity}")
                return True

            logger.error(f"Webhook error {response.status_code}: {response.text[:100]}")
            return False

        except requests.exceptions.Timeout:
            logger.error("Webhook timeout")
            return False
        except requests.exceptions.ConnectionError:
            logger.error("Webhook connection error")
            return False
