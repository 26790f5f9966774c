"""
Client order service: persistence and orchestration around OrderStatusMachine.

Flow for every change:
    load snapshot → machine computes new snapshot + notification requests →
    save snapshot → dispatch notifications through the mailer
"""

from typing import Optional
from datetime import date, datetime, timedelta, timezone
import structlog

from config import get_supabase_client, settings
from models.base import Actor
from models.client_order import (
    ClientOrder,
    ClientOrderCreate,
    ClientOrderUpdate,
    OrderEdit,
    OrderItem,
    OrderItemCreate,
    OrderStatus,
    OrderCancel,
    StatusAdvance,
)
from models.notification import NotificationKind
from services.order_status_service import OrderStatusMachine
from services.label_service import get_label_service
from services import notification_gate
from integrations import mailer
from exceptions import (
    AppError,
    ValidationError,
    ClientOrderNotFoundError,
    LabelNotFoundError,
    DatabaseError,
)

logger = structlog.get_logger(__name__)


class ClientOrderService:
    """
    Client order business logic.

    Orders are never deleted; cancel() is the soft-terminal end.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "client_orders"
        self.clients_table = "private_label_clients"
        self.machine = OrderStatusMachine(
            production_lead_days=settings.production_lead_days,
            reminder_window_days=settings.reminder_window_days,
        )
        self.labels = get_label_service()

    # ===================
    # READ OPERATIONS
    # ===================

    def get_all(
        self,
        client_id: Optional[str] = None,
        status: Optional[OrderStatus] = None,
        page: int = 1,
        page_size: int = 20
    ) -> tuple[list[ClientOrder], int]:
        """
        Get client orders with optional filters.

        Returns:
            Tuple of (orders list, total count)
        """
        logger.info("getting_client_orders", client_id=client_id, status=status, page=page)

        try:
            query = self.db.table(self.table).select("*", count="exact")

            if client_id:
                query = query.eq("client_id", client_id)
            if status:
                query = query.eq("status", OrderStatus(status).value)

            offset = (page - 1) * page_size
            query = query.range(offset, offset + page_size - 1)
            query = query.order("delivery_date", desc=False)

            result = query.execute()

            orders = [ClientOrder.model_validate(row) for row in result.data]
            total = result.count or 0

            logger.info("client_orders_retrieved", count=len(orders), total=total)

            return orders, total

        except Exception as e:
            logger.error("get_client_orders_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def get_by_id(self, order_id: str) -> ClientOrder:
        """
        Get a single order by ID.

        Raises:
            ClientOrderNotFoundError: If order doesn't exist
        """
        logger.debug("getting_client_order", order_id=order_id)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", order_id)
                .single()
                .execute()
            )

            if not result.data:
                raise ClientOrderNotFoundError(order_id)

            return ClientOrder.model_validate(result.data)

        except ClientOrderNotFoundError:
            raise
        except Exception as e:
            logger.error("get_client_order_failed", order_id=order_id, error=str(e))
            raise DatabaseError("select", str(e))

    def get_for_client(self, client_id: str) -> list[ClientOrder]:
        """Full order history of a client (used by the recurring scheduler)."""
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("client_id", client_id)
                .execute()
            )
            return [
                ClientOrder.model_validate(row)
                for row in result.data
                if row.get("client_id") == client_id
            ]
        except Exception as e:
            logger.error("get_client_history_failed", client_id=client_id, error=str(e))
            raise DatabaseError("select", str(e))

    def get_reminder_candidates(self, today: date) -> list[ClientOrder]:
        """Orders delivering within the reminder window with the reminder unsent."""
        window_end = today + timedelta(days=settings.reminder_window_days)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .gte("delivery_date", today.isoformat())
                .lte("delivery_date", window_end.isoformat())
                .eq("notification_flags->>seven_day_reminder", "false")
                .execute()
            )
            return [ClientOrder.model_validate(row) for row in result.data]
        except Exception as e:
            logger.error("get_reminder_candidates_failed", error=str(e))
            raise DatabaseError("select", str(e))

    # ===================
    # CREATE / EDIT
    # ===================

    def _generate_order_number(self, day: date) -> str:
        """CO-YYYYMMDD-NNN, sequence per creation day."""
        try:
            result = (
                self.db.table(self.table)
                .select("id", count="exact")
                .gte("created_at", f"{day.isoformat()}T00:00:00+00:00")
                .lt("created_at", f"{(day + timedelta(days=1)).isoformat()}T00:00:00+00:00")
                .execute()
            )
            sequence = (result.count or 0) + 1
        except Exception as e:
            logger.error("count_orders_for_day_failed", day=day.isoformat(), error=str(e))
            raise DatabaseError("count", str(e))

        return f"CO-{day.strftime('%Y%m%d')}-{sequence:03d}"

    def _build_items(self, requested: list[OrderItemCreate]) -> list[OrderItem]:
        """
        Resolve label references into priced order items.

        Raises:
            LabelNotFoundError: Unknown label id
            ValidationError: Label has no unit price
        """
        labels = self.labels.get_many(item.label_id for item in requested)

        items = []
        for entry in requested:
            label = labels.get(entry.label_id)
            if label is None:
                raise LabelNotFoundError(entry.label_id)
            if label.unit_price is None:
                raise ValidationError(
                    f"Label {label.flavor_name} has no unit price",
                    code="MISSING_PRICE",
                    details={"label_id": entry.label_id}
                )
            items.append(OrderItem(
                label_id=entry.label_id,
                flavor_name=label.flavor_name,
                product_type=label.product_type,
                quantity=entry.quantity,
                unit_price=label.unit_price,
            ))
        return items

    def _ensure_labels_ready(self, order: ClientOrder) -> None:
        labels = self.labels.get_many(item.label_id for item in order.items)
        self.machine.ensure_shippable(order, labels)

    def create(self, data: ClientOrderCreate) -> ClientOrder:
        """
        Create a waiting order from label references.

        Raises:
            LabelNotFoundError, LabelNotReadyError: Bad label references
            InvalidQuantityError, InvalidDiscountRangeError: From pricing
        """
        logger.info("creating_client_order", client_id=data.client_id, items=len(data.items))

        order = self.machine.create_order(
            client_id=data.client_id,
            items=self._build_items(data.items),
            delivery_date=data.delivery_date,
            actor=data.actor,
            discount=data.discount,
            note=data.note,
            ship_asap=data.ship_asap,
        )
        self._ensure_labels_ready(order)

        return self.insert(order)

    def insert(self, order: ClientOrder) -> ClientOrder:
        """Persist a new order (explicit create or recurring draft)."""
        created_day = (order.created_at or datetime.now(timezone.utc)).date()
        order = order.model_copy(update={
            "order_number": order.order_number or self._generate_order_number(created_day)
        })

        try:
            row = order.model_dump(mode="json", exclude_none=True, exclude={"id"})
            result = self.db.table(self.table).insert(row).execute()
            created = ClientOrder.model_validate(result.data[0])

            logger.info(
                "client_order_created",
                order_id=created.id,
                order_number=created.order_number,
                is_recurring=created.is_recurring,
                total=str(created.total)
            )
            return created

        except Exception as e:
            logger.error("create_client_order_failed", error=str(e))
            raise DatabaseError("insert", str(e))

    def update(self, order_id: str, data: ClientOrderUpdate) -> ClientOrder:
        """
        Edit a waiting order. Only provided fields change.

        Raises:
            ClientOrderNotFoundError: If order doesn't exist
            OrderLockedError: Order already in production
        """
        existing = self.get_by_id(order_id)
        changes = data.model_dump(exclude_unset=True)

        edit_fields = {key: getattr(data, key) for key in changes if key != "items"}
        if data.items is not None:
            self.machine.ensure_editable(existing, ["items"])
            edit_fields["items"] = self._build_items(data.items)

        updated = self.machine.apply_edit(existing, OrderEdit(**edit_fields))
        if data.items is not None:
            self._ensure_labels_ready(updated)

        self._save(updated)
        logger.info("client_order_updated", order_id=order_id, fields=list(changes.keys()))
        return updated

    def set_ship_asap(self, order_id: str, enabled: bool) -> ClientOrder:
        """Toggle ship ASAP on a non-terminal order."""
        existing = self.get_by_id(order_id)
        updated = self.machine.set_ship_asap(existing, enabled)
        self._save(updated)
        logger.info("client_order_ship_asap_set", order_id=order_id, ship_asap=enabled)
        return updated

    # ===================
    # STATUS TRANSITIONS
    # ===================

    def advance(self, order_id: str, data: StatusAdvance) -> ClientOrder:
        """
        Move an order one status forward and send any lifecycle email.

        Raises:
            TerminalStateError: Order shipped or cancelled
            LabelNotReadyError: Entering ready_to_ship with unapproved labels
        """
        existing = self.get_by_id(order_id)

        if existing.status == OrderStatus.STAGE_4:
            self._ensure_labels_ready(existing)

        result = self.machine.advance(existing, data.actor, tracking_number=data.tracking_number)
        self._save(result.order)

        logger.info(
            "client_order_advanced",
            order_id=order_id,
            from_status=existing.status.value,
            to_status=result.order.status.value,
            notifications=len(result.notification_requests)
        )

        if result.notification_requests:
            mailer.dispatch_requests(
                result.notification_requests,
                self._recipient(result.order.client_id)
            )
        return result.order

    def cancel(self, order_id: str, data: OrderCancel) -> ClientOrder:
        """Cancel an order. Already-cancelled orders come back unchanged."""
        existing = self.get_by_id(order_id)
        result = self.machine.cancel(existing, data.actor, data.reason)

        if result.order is existing:
            logger.info("client_order_already_cancelled", order_id=order_id)
            return existing

        self._save(result.order)
        logger.info(
            "client_order_cancelled",
            order_id=order_id,
            from_status=existing.status.value,
            reason=data.reason
        )
        return result.order

    def reset_notification(self, order_id: str, kind: NotificationKind, actor: Actor) -> ClientOrder:
        """Administrative override: let a lifecycle email go out again."""
        existing = self.get_by_id(order_id)
        updated = existing.model_copy(update={
            "notification_flags": notification_gate.reset(existing.notification_flags, kind)
        })
        self._save(updated)
        logger.warning(
            "client_order_notification_reset",
            order_id=order_id,
            kind=NotificationKind(kind).value,
            actor_id=actor.id
        )
        return updated

    def run_reminder_sweep(self, today: Optional[date] = None) -> int:
        """
        Daily sweep: flag and email orders delivering within a week.

        Safe to run more than once a day; flagged orders are skipped.

        Returns:
            Number of orders flagged
        """
        today = today or datetime.now(timezone.utc).date()
        candidates = self.get_reminder_candidates(today)
        results = self.machine.sweep_reminders(candidates, today)

        for result in results:
            self._save(result.order)
            mailer.dispatch_requests(
                result.notification_requests,
                self._recipient(result.order.client_id)
            )

        logger.info(
            "reminder_sweep_complete",
            today=today.isoformat(),
            candidates=len(candidates),
            flagged=len(results)
        )
        return len(results)

    # ===================
    # HELPERS
    # ===================

    def _save(self, order: ClientOrder) -> None:
        try:
            row = order.model_dump(mode="json", exclude={"id", "created_at", "created_by"})
            self.db.table(self.table).update(row).eq("id", order.id).execute()
        except AppError:
            raise
        except Exception as e:
            logger.error("update_client_order_failed", order_id=order.id, error=str(e))
            raise DatabaseError("update", str(e))

    def _recipient(self, client_id: str) -> Optional[str]:
        try:
            result = (
                self.db.table(self.clients_table)
                .select("contact_email")
                .eq("id", client_id)
                .single()
                .execute()
            )
            return result.data.get("contact_email") if result.data else None
        except Exception as e:
            logger.error("get_client_email_failed", client_id=client_id, error=str(e))
            return None


# Singleton instance
_client_order_service: Optional[ClientOrderService] = None


def get_client_order_service() -> ClientOrderService:
    """Get or create ClientOrderService instance."""
    global _client_order_service
    if _client_order_service is None:
        _client_order_service = ClientOrderService()
    return _client_order_service
