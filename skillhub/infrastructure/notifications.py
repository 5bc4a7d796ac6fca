"""Welcome notification sent to an external webhook after registration.

Delivery is best-effort: every failure is logged and reported as ``False``,
never raised, so a broken webhook cannot undo a registration.
"""
from datetime import datetime, timezone

import httpx
import structlog

from ..config import settings
from ..domain.entities import User
from .metrics import webhook_deliveries_total

logger = structlog.get_logger()


def build_payload(user: User) -> dict:
    return {
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "registrationNumber": user.registration_number or None,
        "department": user.department or None,
        "registrationDate": datetime.now(timezone.utc).isoformat(),
        "platform": settings.PLATFORM_NAME,
    }


class WebhookNotifier:
    def __init__(self, url: str | None = None, timeout: float | None = None):
        self.url = settings.WEBHOOK_URL if url is None else url
        self.timeout = timeout or settings.WEBHOOK_TIMEOUT_SECONDS

    def send_welcome(self, user: User) -> bool:
        if not self.url:
            logger.info("welcome_webhook_skipped", reason="not_configured", user_id=user.id)
            webhook_deliveries_total.labels(status="skipped").inc()
            return False
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self.url, json=build_payload(user))
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("welcome_webhook_failed", user_id=user.id, error=str(exc))
            webhook_deliveries_total.labels(status="failed").inc()
            return False
        logger.info("welcome_webhook_sent", user_id=user.id, status_code=response.status_code)
        webhook_deliveries_total.labels(status="sent").inc()
        return True
