"""
Label approval state machine.

Stages (in order):
    design_in_progress → awaiting_store_approval → store_approved →
    submitted_to_olcc → olcc_approved → print_order_submitted →
    ready_for_production (terminal)

Rules:
- advance / revert move exactly one step
- set_stage may jump anywhere, but the entry is flagged non_sequential
- stage_history is append-only

Pure transformations: each call returns a new Label, the input is untouched.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

from models.base import Actor
from models.label import Label, LabelStage, LABEL_STAGES, StageHistoryEntry
from exceptions import InvalidTransitionError

TERMINAL_STAGE = LABEL_STAGES[-1]


# ===================
# READS
# ===================

def next_stage(stage: LabelStage) -> Optional[LabelStage]:
    """Next stage in the pipeline, or None at the end."""
    index = LABEL_STAGES.index(LabelStage(stage))
    if index == len(LABEL_STAGES) - 1:
        return None
    return LABEL_STAGES[index + 1]


def previous_stage(stage: LabelStage) -> Optional[LabelStage]:
    """Previous stage in the pipeline, or None at the start."""
    index = LABEL_STAGES.index(LabelStage(stage))
    if index == 0:
        return None
    return LABEL_STAGES[index - 1]


def is_terminal(stage: LabelStage) -> bool:
    return LabelStage(stage) == TERMINAL_STAGE


def is_ready_for_production(label: Label) -> bool:
    """Only labels at the terminal stage may back shippable order items."""
    return is_terminal(label.current_stage)


class LabelStageMachine:
    """Moves labels through the approval pipeline."""

    def advance(
        self,
        label: Label,
        actor: Actor,
        notes: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Label:
        """
        Move one stage forward.

        Raises:
            InvalidTransitionError: Label already ready_for_production
        """
        target = next_stage(label.current_stage)
        if target is None:
            raise InvalidTransitionError(
                current=label.current_stage.value,
                requested="advance",
                reason=f"{TERMINAL_STAGE.value} is the final stage"
            )
        return self._move(label, target, actor, notes, now, non_sequential=False)

    def revert(
        self,
        label: Label,
        actor: Actor,
        notes: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Label:
        """
        Move one stage back.

        Raises:
            InvalidTransitionError: Label already at the first stage
        """
        target = previous_stage(label.current_stage)
        if target is None:
            raise InvalidTransitionError(
                current=label.current_stage.value,
                requested="revert",
                reason=f"{LABEL_STAGES[0].value} is the first stage"
            )
        return self._move(label, target, actor, notes, now, non_sequential=False)

    def set_stage(
        self,
        label: Label,
        target: LabelStage,
        actor: Actor,
        notes: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Label:
        """Administrative jump. Always allowed, always recorded as non-sequential."""
        return self._move(label, LabelStage(target), actor, notes, now, non_sequential=True)

    def bulk_set_stage(
        self,
        labels: Iterable[Label],
        target: LabelStage,
        actor: Actor,
        notes: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> list[Label]:
        """Move a client's labels to one stage as a group."""
        now = now or datetime.now(timezone.utc)
        return [self.set_stage(label, target, actor, notes, now) for label in labels]

    def approve_by_store(
        self,
        label: Label,
        actor: Actor,
        notes: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Label:
        """
        Store-side approval from the emailed approval link.

        awaiting_store_approval → store_approved. A label already at or
        past store_approved is returned unchanged.

        Raises:
            InvalidTransitionError: Label has not been sent for approval yet
        """
        current = LABEL_STAGES.index(label.current_stage)
        approved = LABEL_STAGES.index(LabelStage.STORE_APPROVED)

        if current >= approved:
            return label
        if label.current_stage != LabelStage.AWAITING_STORE_APPROVAL:
            raise InvalidTransitionError(
                current=label.current_stage.value,
                requested="approve",
                reason="Label is not awaiting store approval"
            )
        return self.advance(label, actor, notes, now)

    def _move(
        self,
        label: Label,
        target: LabelStage,
        actor: Actor,
        notes: Optional[str],
        now: Optional[datetime],
        non_sequential: bool
    ) -> Label:
        changed_at = now or datetime.now(timezone.utc)
        entry = StageHistoryEntry(
            stage=target,
            changed_by=actor,
            changed_at=changed_at,
            notes=notes,
            non_sequential=non_sequential,
        )
        return label.model_copy(update={
            "current_stage": target,
            "stage_history": [*label.stage_history, entry],
            "updated_at": changed_at,
        })


# Singleton instance
_label_stage_machine: Optional[LabelStageMachine] = None


def get_label_stage_machine() -> LabelStageMachine:
    """Get or create LabelStageMachine instance."""
    global _label_stage_machine
    if _label_stage_machine is None:
        _label_stage_machine = LabelStageMachine()
    return _label_stage_machine
