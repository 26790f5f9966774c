"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    Actor,
    SYSTEM_ACTOR,
    ListResponse,
)
from models.pricing import (
    PricingType,
    DiscountType,
    PricePoint,
    VariantPrice,
    PricingStructure,
    Discount,
    OrderTotals,
    ItemQuoteRequest,
    ItemQuoteResponse,
)
from models.notification import (
    NotificationKind,
    NotificationFlags,
    NotificationRequest,
)
from models.label import (
    LabelStage,
    LABEL_STAGES,
    STAGE_DISPLAY_NAMES,
    StageHistoryEntry,
    Label,
    LabelCreate,
    LabelStageAction,
    LabelStageUpdate,
    BulkStageUpdate,
    LabelListResponse,
)
from models.client_order import (
    OrderStatus,
    ORDER_FLOW,
    TERMINAL_STATUSES,
    PRODUCTION_STATUSES,
    OrderItem,
    OrderItemCreate,
    StatusHistoryEntry,
    ClientOrder,
    ClientOrderCreate,
    ClientOrderUpdate,
    OrderEdit,
    StatusAdvance,
    OrderCancel,
    ShipAsapUpdate,
    TransitionResult,
    ClientOrderListResponse,
    OrderQuoteRequest,
)
from models.client import (
    RecurringInterval,
    INTERVAL_MONTHS,
    ClientStatus,
    RecurringSchedule,
    PrivateLabelClient,
    ScheduleUpdate,
    TickResult,
    ClientListResponse,
)
