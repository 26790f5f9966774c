"""
Private label client service: clients, recurring schedules, recurring runs.
"""

from typing import Optional
from datetime import datetime, timezone
import structlog

from config import get_supabase_client, settings
from models.client import (
    ClientStatus,
    PrivateLabelClient,
    RecurringSchedule,
    ScheduleUpdate,
)
from models.client_order import ClientOrder
from services.order_status_service import OrderStatusMachine
from services.recurring_service import (
    RecurringScheduler,
    SKIP_ALREADY_GENERATED,
    SKIP_NO_TEMPLATE,
    SKIP_NOT_DUE,
)
from services.client_order_service import get_client_order_service
from exceptions import (
    AppError,
    ClientNotFoundError,
    DatabaseError,
)

logger = structlog.get_logger(__name__)


class PrivateLabelClientService:
    """Client reads, schedule updates and the recurring generator run."""

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "private_label_clients"
        self.orders = get_client_order_service()
        self.scheduler = RecurringScheduler(
            order_machine=OrderStatusMachine(
                production_lead_days=settings.production_lead_days,
                reminder_window_days=settings.reminder_window_days,
            ),
            lead_days=settings.recurring_lead_days,
        )

    # ===================
    # READ OPERATIONS
    # ===================

    def get_all(
        self,
        status: Optional[ClientStatus] = None,
        page: int = 1,
        page_size: int = 20
    ) -> tuple[list[PrivateLabelClient], int]:
        """
        Get clients with optional status filter.

        Returns:
            Tuple of (clients list, total count)
        """
        logger.info("getting_clients", status=status, page=page)

        try:
            query = self.db.table(self.table).select("*", count="exact")

            if status:
                query = query.eq("status", ClientStatus(status).value)

            offset = (page - 1) * page_size
            query = query.range(offset, offset + page_size - 1)
            query = query.order("store_name")

            result = query.execute()

            clients = [PrivateLabelClient.model_validate(row) for row in result.data]
            return clients, result.count or 0

        except Exception as e:
            logger.error("get_clients_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def get_by_id(self, client_id: str) -> PrivateLabelClient:
        """
        Get a single client by ID.

        Raises:
            ClientNotFoundError: If client doesn't exist
        """
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", client_id)
                .single()
                .execute()
            )

            if not result.data:
                raise ClientNotFoundError(client_id)

            return PrivateLabelClient.model_validate(result.data)

        except ClientNotFoundError:
            raise
        except Exception as e:
            logger.error("get_client_failed", client_id=client_id, error=str(e))
            raise DatabaseError("select", str(e))

    def get_with_schedule_enabled(self) -> list[PrivateLabelClient]:
        """Clients whose recurring schedule is on."""
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("recurring_schedule->>enabled", "true")
                .execute()
            )
            clients = [PrivateLabelClient.model_validate(row) for row in result.data]
            return [client for client in clients if client.recurring_schedule.enabled]
        except Exception as e:
            logger.error("get_scheduled_clients_failed", error=str(e))
            raise DatabaseError("select", str(e))

    # ===================
    # SCHEDULE
    # ===================

    def update_schedule(
        self,
        client_id: str,
        data: ScheduleUpdate,
        now: Optional[datetime] = None
    ) -> PrivateLabelClient:
        """
        Enable, disable or change a client's recurring schedule.

        Turning a schedule on restarts its cadence from now. Changing the
        interval of a running schedule keeps its anchor.
        """
        client = self.get_by_id(client_id)
        current = client.recurring_schedule
        now = now or datetime.now(timezone.utc)

        if data.enabled and not current.enabled:
            schedule = RecurringSchedule(
                enabled=True,
                interval=data.interval,
                started_at=now,
            )
        elif data.enabled:
            schedule = current.model_copy(update={"interval": data.interval})
        else:
            schedule = current.model_copy(update={"enabled": False})

        self._save_schedule(client_id, schedule)

        logger.info(
            "client_schedule_updated",
            client_id=client_id,
            enabled=schedule.enabled,
            interval=schedule.interval.value if schedule.interval else None
        )
        return client.model_copy(update={"recurring_schedule": schedule})

    # ===================
    # RECURRING RUN
    # ===================

    def run_recurring(self, now: Optional[datetime] = None) -> list[ClientOrder]:
        """
        Tick every enabled client once.

        The draft is saved before the schedule. If the run dies in between,
        the next run finds the draft, creates nothing and moves
        last_generated_at up to that period. Drafts are priced from the
        labels' current unit prices. A failing client is logged and skipped.

        Returns:
            Drafts created in this run
        """
        now = now or datetime.now(timezone.utc)
        created = []

        for client in self.get_with_schedule_enabled():
            try:
                draft = self._run_for_client(client, now)
            except Exception as e:
                logger.error("recurring_order_failed", client_id=client.id, error=str(e))
                continue
            if draft is not None:
                created.append(draft)

        logger.info("recurring_run_complete", created=len(created))
        return created

    def _run_for_client(self, client: PrivateLabelClient, now: datetime) -> Optional[ClientOrder]:
        history = self.orders.get_for_client(client.id)
        prices = {
            label.id: label.unit_price
            for label in self.orders.labels.get_for_client(client.id)
            if label.unit_price is not None
        }
        result = self.scheduler.tick(client, now, history, prices)
        schedule = result.updated_schedule
        draft = None

        if result.new_order_draft is not None:
            draft = self.orders.insert(result.new_order_draft)
            logger.info(
                "recurring_order_generated",
                client_id=client.id,
                order_id=draft.id,
                parent_order=draft.parent_order,
                generation_date=draft.generation_date.isoformat()
            )
        elif result.skipped_reason == SKIP_ALREADY_GENERATED:
            # Draft saved by an earlier run whose schedule update was lost
            period = self.scheduler.next_generation_date(schedule)
            schedule = schedule.model_copy(update={"last_generated_at": period})
            logger.warning("recurring_schedule_repaired", client_id=client.id, period=period.isoformat())
        elif result.skipped_reason == SKIP_NO_TEMPLATE:
            logger.warning("recurring_order_skipped", client_id=client.id, reason=result.skipped_reason)
        elif result.skipped_reason != SKIP_NOT_DUE:
            logger.info("recurring_order_skipped", client_id=client.id, reason=result.skipped_reason)

        if schedule != client.recurring_schedule:
            self._save_schedule(client.id, schedule)
        return draft

    def _save_schedule(self, client_id: str, schedule: RecurringSchedule) -> None:
        try:
            self.db.table(self.table).update({
                "recurring_schedule": schedule.model_dump(mode="json"),
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }).eq("id", client_id).execute()
        except AppError:
            raise
        except Exception as e:
            logger.error("update_client_schedule_failed", client_id=client_id, error=str(e))
            raise DatabaseError("update", str(e))


# Singleton instance
_client_service: Optional[PrivateLabelClientService] = None


def get_client_service() -> PrivateLabelClientService:
    """Get or create PrivateLabelClientService instance."""
    global _client_service
    if _client_service is None:
        _client_service = PrivateLabelClientService()
    return _client_service
