"""
Label service: loads labels, runs them through the stage machine, saves them.
"""

from typing import Iterable, Optional
from datetime import datetime, timezone
import structlog

from config import get_supabase_client
from models.base import Actor
from models.label import (
    Label,
    LabelCreate,
    LabelStage,
    StageHistoryEntry,
)
from services.label_stage_service import get_label_stage_machine
from exceptions import (
    AppError,
    LabelNotFoundError,
    DatabaseError,
)

logger = structlog.get_logger(__name__)


class LabelService:
    """
    Label business logic.

    Stage changes always go through LabelStageMachine; this class only
    persists the result.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "labels"
        self.machine = get_label_stage_machine()

    # ===================
    # READ OPERATIONS
    # ===================

    def get_all(
        self,
        client_id: Optional[str] = None,
        stage: Optional[LabelStage] = None,
        page: int = 1,
        page_size: int = 20
    ) -> tuple[list[Label], int]:
        """
        Get labels with optional filters.

        Returns:
            Tuple of (labels list, total count)
        """
        logger.info("getting_labels", client_id=client_id, stage=stage, page=page)

        try:
            query = self.db.table(self.table).select("*", count="exact")

            if client_id:
                query = query.eq("client_id", client_id)
            if stage:
                query = query.eq("current_stage", LabelStage(stage).value)

            offset = (page - 1) * page_size
            query = query.range(offset, offset + page_size - 1)
            query = query.order("created_at", desc=True)

            result = query.execute()

            labels = [Label.model_validate(row) for row in result.data]
            total = result.count or 0

            logger.info("labels_retrieved", count=len(labels), total=total)

            return labels, total

        except Exception as e:
            logger.error("get_labels_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def get_by_id(self, label_id: str) -> Label:
        """
        Get a single label by ID.

        Raises:
            LabelNotFoundError: If label doesn't exist
        """
        logger.debug("getting_label", label_id=label_id)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", label_id)
                .single()
                .execute()
            )

            if not result.data:
                raise LabelNotFoundError(label_id)

            return Label.model_validate(result.data)

        except LabelNotFoundError:
            raise
        except Exception as e:
            logger.error("get_label_failed", label_id=label_id, error=str(e))
            raise DatabaseError("select", str(e))

    def get_many(self, label_ids: Iterable[str]) -> dict[str, Label]:
        """Labels keyed by id. Unknown ids are simply absent."""
        ids = list(dict.fromkeys(label_ids))
        if not ids:
            return {}

        try:
            result = self.db.table(self.table).select("*").in_("id", ids).execute()
            return {
                row["id"]: Label.model_validate(row)
                for row in result.data
                if row["id"] in ids
            }
        except Exception as e:
            logger.error("get_labels_by_ids_failed", count=len(ids), error=str(e))
            raise DatabaseError("select", str(e))

    def get_for_client(self, client_id: str) -> list[Label]:
        """All labels of a client."""
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("client_id", client_id)
                .execute()
            )
            return [
                Label.model_validate(row)
                for row in result.data
                if row.get("client_id") == client_id
            ]
        except Exception as e:
            logger.error("get_client_labels_failed", client_id=client_id, error=str(e))
            raise DatabaseError("select", str(e))

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create(self, data: LabelCreate) -> Label:
        """Create a label at design_in_progress with its first history entry."""
        logger.info("creating_label", client_id=data.client_id, flavor=data.flavor_name)

        now = datetime.now(timezone.utc)
        label = Label(
            client_id=data.client_id,
            flavor_name=data.flavor_name,
            product_type=data.product_type,
            unit_price=data.unit_price,
            label_images=data.label_images,
            current_stage=LabelStage.DESIGN_IN_PROGRESS,
            stage_history=[StageHistoryEntry(
                stage=LabelStage.DESIGN_IN_PROGRESS,
                changed_by=data.actor,
                changed_at=now,
            )],
        )

        try:
            row = label.model_dump(mode="json", exclude_none=True, exclude={"id"})
            result = self.db.table(self.table).insert(row).execute()
            created = Label.model_validate(result.data[0])

            logger.info("label_created", label_id=created.id)
            return created

        except Exception as e:
            logger.error("create_label_failed", error=str(e))
            raise DatabaseError("insert", str(e))

    def advance(self, label_id: str, actor: Actor, notes: Optional[str] = None) -> Label:
        """Move a label one stage forward."""
        label = self.get_by_id(label_id)
        return self._save_stage(label, self.machine.advance(label, actor, notes))

    def revert(self, label_id: str, actor: Actor, notes: Optional[str] = None) -> Label:
        """Move a label one stage back."""
        label = self.get_by_id(label_id)
        return self._save_stage(label, self.machine.revert(label, actor, notes))

    def set_stage(
        self,
        label_id: str,
        stage: LabelStage,
        actor: Actor,
        notes: Optional[str] = None
    ) -> Label:
        """Administrative jump to any stage."""
        label = self.get_by_id(label_id)
        return self._save_stage(label, self.machine.set_stage(label, stage, actor, notes))

    def approve_by_store(self, label_id: str, actor: Actor) -> Label:
        """Store approval from the public approval page. Repeat approvals are no-ops."""
        label = self.get_by_id(label_id)
        updated = self.machine.approve_by_store(label, actor, notes="Approved by store")
        if updated is label:
            logger.info("label_already_approved", label_id=label_id)
            return label
        return self._save_stage(label, updated)

    def bulk_set_stage(
        self,
        client_id: str,
        stage: LabelStage,
        actor: Actor,
        notes: Optional[str] = None
    ) -> list[Label]:
        """Move every label of a client to one stage."""
        labels = self.get_for_client(client_id)
        updated = self.machine.bulk_set_stage(labels, stage, actor, notes)

        saved = [self._save_stage(before, after) for before, after in zip(labels, updated)]

        logger.info(
            "labels_bulk_stage_updated",
            client_id=client_id,
            stage=LabelStage(stage).value,
            count=len(saved)
        )
        return saved

    def _save_stage(self, before: Label, after: Label) -> Label:
        try:
            self.db.table(self.table).update({
                "current_stage": after.current_stage.value,
                "stage_history": [
                    entry.model_dump(mode="json") for entry in after.stage_history
                ],
                "updated_at": after.updated_at.isoformat() if after.updated_at else None,
            }).eq("id", after.id).execute()

            logger.info(
                "label_stage_changed",
                label_id=after.id,
                from_stage=before.current_stage.value,
                to_stage=after.current_stage.value,
                non_sequential=after.stage_history[-1].non_sequential
            )
            return after

        except AppError:
            raise
        except Exception as e:
            logger.error("update_label_stage_failed", label_id=after.id, error=str(e))
            raise DatabaseError("update", str(e))


# Singleton instance
_label_service: Optional[LabelService] = None


def get_label_service() -> LabelService:
    """Get or create LabelService instance."""
    global _label_service
    if _label_service is None:
        _label_service = LabelService()
    return _label_service
