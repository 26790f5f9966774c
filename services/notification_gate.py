"""
At-most-once gate for order lifecycle notifications.

Each order carries three flags (seven-day reminder, ready to ship, shipped).
A flag flips to True when the send decision is made and never flips back
except through reset(), the administrative override.

The gate only decides. Callers own the actual dispatch.
"""

from typing import Any, Optional

from models.client_order import ClientOrder
from models.notification import NotificationFlags, NotificationKind, NotificationRequest


def should_send(flags: NotificationFlags, kind: NotificationKind) -> bool:
    """True if this kind was never decided for the order."""
    return not getattr(flags, NotificationKind(kind).value)


def mark_sent(flags: NotificationFlags, kind: NotificationKind) -> NotificationFlags:
    """Commit the send decision. Marking twice is a no-op."""
    return flags.model_copy(update={NotificationKind(kind).value: True})


def reset(flags: NotificationFlags, kind: NotificationKind) -> NotificationFlags:
    """Administrative override: allow the notification to go out again."""
    return flags.model_copy(update={NotificationKind(kind).value: False})


def claim(
    order: ClientOrder,
    kind: NotificationKind,
    payload: Optional[dict[str, Any]] = None
) -> tuple[ClientOrder, Optional[NotificationRequest]]:
    """
    Check and mark in one step.

    Returns:
        (order with the flag set, request) the first time,
        (order unchanged, None) on every later call
    """
    if not should_send(order.notification_flags, kind):
        return order, None

    updated = order.model_copy(update={
        "notification_flags": mark_sent(order.notification_flags, kind)
    })
    request = NotificationRequest(
        kind=kind,
        order_id=order.id,
        client_id=order.client_id,
        payload=payload or {},
    )
    return updated, request
