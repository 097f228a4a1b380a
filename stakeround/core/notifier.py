import logging
from typing import Optional, Protocol

import requests

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send_message(self, message: str) -> None: ...


class LogNotifier:
    """Writes notifications to the log."""

    def send_message(self, message: str) -> None:
        logger.info(f"[notify] {message}")


class WebhookNotifier:
    """
    Posts notifications as JSON `{"text": message}` to a webhook.

    Delivery is best effort: failures are logged and dropped.
    """

    def __init__(self, url: str, timeout: float = 5.0, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def send_message(self, message: str) -> None:
        try:
            resp = self.session.post(self.url, json={"text": message}, timeout=self.timeout)
            if resp.status_code >= 400:
                logger.warning(f"Webhook returned {resp.status_code}: {resp.text[:200]}")
        except requests.RequestException as e:
            logger.warning(f"Failed to deliver notification: {e}")


def build_notifier(webhook_url: Optional[str]) -> Notifier:
    if webhook_url:
        return WebhookNotifier(webhook_url)
    return LogNotifier()
