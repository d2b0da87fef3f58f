import logging
import os
from typing import Callable

import httpx

from familybank.core.config import ReadFloatEnv
from familybank.modules.notifications.services import DomainEvent, SubscribeDomainEvents

logger = logging.getLogger("familybank.notifications.webhook")


def BuildWebhookHandler(url: str, timeout_seconds: float = 5.0) -> Callable[[DomainEvent], None]:
    def _Deliver(event: DomainEvent) -> None:
        with httpx.Client(timeout=timeout_seconds) as client:
            response = client.post(url, json=event.AsPayload())
            response.raise_for_status()
        logger.info("webhook delivered kind=%s account_id=%s status=%s", event.Kind, event.AccountId, response.status_code)

    return _Deliver


def RegisterWebhookSubscriber() -> Callable[[], None] | None:
    url = os.getenv("NOTIFY_WEBHOOK_URL", "").strip()
    if not url:
        return None
    timeout_seconds = ReadFloatEnv("NOTIFY_WEBHOOK_TIMEOUT_SECONDS", 5.0)
    logger.info("domain event webhook enabled")
    return SubscribeDomainEvents(BuildWebhookHandler(url, timeout_seconds))
