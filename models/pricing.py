"""
Pricing schemas: product price shapes, order discounts and totals.
"""

from pydantic import Field, field_validator
from typing import Optional
from enum import Enum
from decimal import Decimal

from models.base import BaseSchema


class PricingType(str, Enum):
    """Product pricing shapes."""
    SIMPLE = "simple"          # One price for the product
    MULTI_TYPE = "multi_type"  # hybrid / indica / sativa breakdown
    VARIANTS = "variants"      # size or flavor variants


class DiscountType(str, Enum):
    """Order-level discount models."""
    FLAT = "flat"
    PERCENTAGE = "percentage"

    @classmethod
    def _missing_(cls, value):
        # Regular orders historically stored "percent"
        if isinstance(value, str) and value.strip().lower() == "percent":
            return cls.PERCENTAGE
        return None


class PricePoint(BaseSchema):
    """List price with optional discounted price."""

    price: Decimal = Field(..., ge=0, description="List price per unit")
    discount_price: Optional[Decimal] = Field(
        None,
        ge=0,
        description="Discounted price per unit"
    )


class VariantPrice(PricePoint):
    """Price for one named variant (e.g., 100mg, Mango)."""

    label: str = Field(..., min_length=1, description="Variant label")


class PricingStructure(BaseSchema):
    """
    Price data for a product.

    pricing_type selects which field is read:
        simple     -> price
        multi_type -> prices (sub-type -> PricePoint)
        variants   -> variants
    """

    pricing_type: str = Field(
        ...,
        description="simple, multi_type, or variants"
    )
    price: Optional[PricePoint] = Field(None, description="Single price (simple)")
    prices: dict[str, PricePoint] = Field(
        default_factory=dict,
        description="Sub-type prices (multi_type)"
    )
    variants: list[VariantPrice] = Field(
        default_factory=list,
        description="Variant prices (variants)"
    )

    @field_validator("pricing_type")
    @classmethod
    def normalize_pricing_type(cls, v: str) -> str:
        """Accept 'multi-type' as written by the product editor."""
        return v.strip().lower().replace("-", "_")


class Discount(BaseSchema):
    """Order-level discount."""

    type: DiscountType = Field(default=DiscountType.FLAT, description="flat or percentage")
    value: Decimal = Field(default=Decimal("0"), description="Amount or percent")


class OrderTotals(BaseSchema):
    """Monetary snapshot of an order."""

    subtotal: Decimal = Field(..., description="Sum of line totals")
    discount_amount: Decimal = Field(..., description="Discount applied")
    total: Decimal = Field(..., description="subtotal - discount_amount, never negative")


class ItemQuoteRequest(BaseSchema):
    """Price one product across its sub-types or variants."""

    structure: PricingStructure
    quantities: dict[str, int] = Field(
        ...,
        description="Selector -> quantity; simple products use any single key"
    )
    apply_discount: bool = True


class ItemQuoteResponse(BaseSchema):
    """Priced product."""

    item_total: Decimal
