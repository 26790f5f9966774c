"""
Transactional email integration for order lifecycle notifications.

Posts to an HTTP email API. The engine decides whether a notification goes
out; this module only delivers it.
"""

from typing import Iterable, Optional
import requests
import structlog

from config.settings import settings
from models.notification import NotificationKind, NotificationRequest
from exceptions import MailerError

logger = structlog.get_logger(__name__)


SUBJECTS = {
    NotificationKind.SEVEN_DAY_REMINDER: "Your order {order_number} delivers in one week",
    NotificationKind.READY_TO_SHIP: "Your order {order_number} is ready to ship",
    NotificationKind.SHIPPED: "Your order {order_number} has shipped",
}


def format_message(kind: NotificationKind, payload: dict) -> tuple[str, str]:
    """
    Build subject and plain-text body for a notification.

    Args:
        kind: Notification kind
        payload: Order details from the engine

    Returns:
        (subject, body)
    """
    order_number = payload.get("order_number") or "(pending)"
    subject = SUBJECTS[NotificationKind(kind)].format(order_number=order_number)

    lines = [
        f"Order: {order_number}",
        f"Delivery date: {payload.get('delivery_date', '-')}",
        f"Total: ${payload.get('total', '0.00')}",
    ]
    if payload.get("tracking_number"):
        lines.append(f"Tracking number: {payload['tracking_number']}")

    return subject, "\n".join(lines)


def send(kind: NotificationKind, recipient: str, payload: dict) -> bool:
    """
    Send one notification email.

    Returns:
        True if sent, False if the mailer is not configured

    Raises:
        MailerError: If the API call fails
    """
    if not settings.mailer_configured:
        logger.warning("mailer_not_configured_skipping_send", kind=kind)
        return False

    subject, body = format_message(kind, payload)

    try:
        logger.info("sending_notification_email", kind=kind, recipient=recipient)

        response = requests.post(
            settings.mailer_api_url,
            headers={"Authorization": f"Bearer {settings.mailer_api_key}"},
            json={
                "from": settings.mailer_sender,
                "to": [recipient],
                "subject": subject,
                "text": body,
            },
            timeout=10,
        )
        response.raise_for_status()

        logger.info("notification_email_sent", kind=kind, recipient=recipient)
        return True

    except requests.exceptions.RequestException as e:
        logger.error("notification_email_failed", kind=kind, error=str(e))
        raise MailerError(f"Failed to send notification email: {str(e)}")


def dispatch_requests(
    requests_to_send: Iterable[NotificationRequest],
    recipient: Optional[str]
) -> int:
    """
    Deliver engine notification requests. Fire-and-forget.

    Failures are logged, never raised: the notification flag is already
    committed and the order change must not roll back because of email.

    Returns:
        Number of emails sent
    """
    sent = 0
    for request in requests_to_send:
        if not recipient:
            logger.warning(
                "notification_without_recipient",
                kind=request.kind,
                order_id=request.order_id
            )
            continue
        try:
            if send(request.kind, recipient, request.payload):
                sent += 1
        except MailerError as e:
            logger.error(
                "notification_dispatch_failed",
                kind=request.kind,
                order_id=request.order_id,
                error=e.message
            )
    return sent
