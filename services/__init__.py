"""
Business logic services.

The engines below are pure (no database access). Database-backed services
live in their own modules:
    services.label_service
    services.client_order_service
    services.client_service
"""

from services.pricing_service import PricingEngine, get_pricing_engine, money
from services.label_stage_service import (
    LabelStageMachine,
    get_label_stage_machine,
    next_stage,
    previous_stage,
    is_terminal,
    is_ready_for_production,
)
from services.order_status_service import (
    OrderStatusMachine,
    get_order_status_machine,
    is_in_production,
)
from services.recurring_service import RecurringScheduler, get_recurring_scheduler

__all__ = [
    "PricingEngine",
    "get_pricing_engine",
    "money",
    "LabelStageMachine",
    "get_label_stage_machine",
    "next_stage",
    "previous_stage",
    "is_terminal",
    "is_ready_for_production",
    "OrderStatusMachine",
    "get_order_status_machine",
    "is_in_production",
    "RecurringScheduler",
    "get_recurring_scheduler",
]
