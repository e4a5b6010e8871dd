# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Notification client - inter-service communication.
Handles HTTP calls to the notification-service with timeout & fault tolerance.
"""

import httpx

from liftout.core.config import settings
from liftout.core.logging import get_logger
from liftout.metrics.prometheus import NOTIFICATIONS_SENT

logger = get_logger(__name__)


class NotificationClient:
    """Fire-and-forget notification sender via notification-service."""

    def send(
        self,
        channel: str,
        recipient: str,
        message: str,
        metadata: dict | None = None,
    ) -> bool:
        """Send a notification. Failures are logged but never raised."""
        if not settings.NOTIFICATIONS_ENABLED:
            logger.info("Notifications disabled, skipping: recipient=%s", recipient)
            return False
        try:
            with httpx.Client(timeout=settings.NOTIFICATION_TIMEOUT) as client:
                resp = client.post(
                    f"{settings.NOTIFICATION_SERVICE_URL}/api/v1/notify",
                    json={
                        "channel": channel,
                        "recipient": recipient,
                        "message": message,
                        "metadata": metadata or {},
                    },
                )
            NOTIFICATIONS_SENT.labels(channel=channel, status="sent").inc()
            logger.info(
                "Notification sent: recipient=%s, channel=%s, status=%d",
                recipient,
                channel,
                resp.status_code,
            )
            return True
        except httpx.HTTPError as exc:
            NOTIFICATIONS_SENT.labels(channel=channel, status="failed").inc()
            logger.warning("Notification failed: %s", exc)
            return False

    def send_invitation(
        self,
        email: str,
        team_name: str,
        token: str,
        expires_at: str,
        resend: bool = False,
    ) -> bool:
        link = f"{settings.APP_BASE_URL}/invites/{token}"
        verb = "Reminder: you have been" if resend else "You have been"
        return self.send(
            channel="email",
            recipient=email,
            message=f"{verb} invited to join '{team_name}' on Liftout. Accept: {link}",
            metadata={"type": "team_invitation", "expires_at": expires_at},
        )
