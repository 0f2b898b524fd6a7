"""Hand-off of notification events to the external delivery collaborator.

The core only decides when an event is due. Publishers never raise: a delivery
problem is logged and the triggering operation carries on.
"""

import logging
import math
from datetime import datetime
from uuid import UUID

import httpx

from craguard.core.config import Settings
from craguard.schemas.notification import NotificationEvent

logger = logging.getLogger(__name__)


class NotificationPublisher:
    """Interface: ``await publish(event)`` returns True if the event was handed off."""

    async def publish(self, event: NotificationEvent) -> bool:
        raise NotImplementedError


class LoggingNotificationPublisher(NotificationPublisher):
    """Default publisher: records the event in the application log."""

    async def publish(self, event: NotificationEvent) -> bool:
        logger.info(
            "Notification event",
            extra={
                "event_type": event.type,
                "user_id": event.user_id,
                "title": event.title,
                "vulnerability_id": str(event.vulnerability_id) if event.vulnerability_id else None,
                "project_id": str(event.project_id) if event.project_id else None,
            },
        )
        return True


class WebhookNotificationPublisher(NotificationPublisher):
    """POSTs the camelCase event body to a webhook, authenticated by X-Service-Token."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        token: str | None,
        timeout: float,
    ) -> None:
        self.client = client
        self.url = url
        self.token = token
        self.timeout = timeout

    async def publish(self, event: NotificationEvent) -> bool:
        headers = {"X-Service-Token": self.token} if self.token else {}
        try:
            resp = await self.client.post(
                self.url,
                json=event.model_dump(mode="json", by_alias=True, exclude_none=True),
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.warning(
                "Notification delivery failed",
                extra={"event_type": event.type, "error": str(e)},
            )
            return False
        if resp.status_code >= 400:
            logger.warning(
                "Notification webhook rejected event",
                extra={"event_type": event.type, "status_code": resp.status_code},
            )
            return False
        return True


def build_publisher(settings: Settings, client: httpx.AsyncClient | None) -> NotificationPublisher:
    """Webhook publisher when a URL is configured and a client is available, else the logging one."""
    if settings.NOTIFICATION_WEBHOOK_URL and client is not None:
        token = settings.NOTIFICATION_SERVICE_TOKEN
        return WebhookNotificationPublisher(
            client,
            settings.NOTIFICATION_WEBHOOK_URL,
            token.get_secret_value() if token else None,
            settings.NOTIFICATION_REQUEST_TIMEOUT_SEC,
        )
    return LoggingNotificationPublisher()


def _hours_left(deadline: datetime, now: datetime) -> int:
    return math.floor((deadline - now).total_seconds() / 3600)


def new_cve_event(
    user_id: int,
    external_id: str,
    severity: str,
    component_name: str,
    component_version: str,
    project_name: str,
    project_id: UUID,
    vulnerability_id: UUID,
    deadline: datetime,
    now: datetime,
) -> NotificationEvent:
    return NotificationEvent(
        user_id=user_id,
        title=f"New {severity} vulnerability discovered",
        message=(
            f'{external_id} affects {component_name}@{component_version} in project "{project_name}". '
            f"CRA Article 14 requires reporting within {_hours_left(deadline, now)} hours "
            f"(deadline: {deadline.isoformat()})."
        ),
        type="new_cve_discovered",
        vulnerability_id=vulnerability_id,
        project_id=project_id,
    )


def assignment_event(
    user_id: int,
    external_id: str,
    vulnerability_id: UUID,
    deadline: datetime,
    now: datetime,
) -> NotificationEvent:
    return NotificationEvent(
        user_id=user_id,
        title="Vulnerability assigned to you",
        message=(
            f"You've been assigned {external_id}. Reporting deadline: {deadline.isoformat()} "
            f"({_hours_left(deadline, now)}h remaining)."
        ),
        type="vulnerability_assigned",
        vulnerability_id=vulnerability_id,
    )
