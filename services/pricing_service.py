"""
Pricing engine for product price shapes and order totals.

Pure calculations: no database access, no logging. Every arithmetic step
is rounded half-up to cents so repeated computation never drifts.

Formulas:
    line_total      = quantity × resolved unit price
    subtotal        = Σ line_total
    discount_amount = min(subtotal, flat value | subtotal × value / 100)
    total           = max(0, subtotal − discount_amount)
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Mapping, Optional, Union

from models.pricing import (
    PricingType,
    PricingStructure,
    PricePoint,
    Discount,
    DiscountType,
    OrderTotals,
)
from models.client_order import OrderItem
from exceptions import (
    ValidationError,
    InvalidQuantityError,
    UnknownPricingStructureError,
    UnknownPriceSelectorError,
    InvalidDiscountRangeError,
)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

Number = Union[Decimal, int, float, str]


def money(value: Number) -> Decimal:
    """Round to cents, half-up. Floats go through str() to avoid binary noise."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _norm(selector: Optional[str]) -> str:
    return (selector or "").strip().lower()


def _check_quantity(quantity: int, selector: Optional[str] = None) -> None:
    if quantity is None or quantity < 0:
        raise InvalidQuantityError(quantity, selector)


class PricingEngine:
    """
    Resolves unit prices and computes order totals.

    Pricing shapes:
        simple     - discount_price if set and > 0, else price
        multi_type - per sub-type, discount_price ?? price
        variants   - per variant label, discount_price ?? price
    """

    # ===================
    # UNIT PRICES
    # ===================

    def pricing_type(self, structure: PricingStructure) -> PricingType:
        try:
            return PricingType(structure.pricing_type)
        except ValueError:
            raise UnknownPricingStructureError(structure.pricing_type)

    def resolve_unit_price(
        self,
        structure: PricingStructure,
        selector: Optional[str] = None,
        apply_discount: bool = True
    ) -> Decimal:
        """
        Resolve the per-unit price for a selector.

        Args:
            structure: Product pricing data
            selector: Sub-type or variant label (ignored for simple)
            apply_discount: False ignores discount prices entirely

        Returns:
            Unit price rounded to cents

        Raises:
            UnknownPricingStructureError: Unrecognized pricing_type
            UnknownPriceSelectorError: Selector not priced in the structure
        """
        pricing_type = self.pricing_type(structure)

        if pricing_type == PricingType.SIMPLE:
            point = structure.price
            if point is None:
                raise ValidationError(
                    "Simple pricing requires a price",
                    code="MISSING_PRICE",
                )
            if apply_discount and point.discount_price is not None and point.discount_price > 0:
                return money(point.discount_price)
            return money(point.price)

        if pricing_type == PricingType.MULTI_TYPE:
            points = {_norm(key): point for key, point in structure.prices.items()}
            available = list(structure.prices.keys())
        else:
            points = {_norm(v.label): v for v in structure.variants}
            available = [v.label for v in structure.variants]

        point = points.get(_norm(selector))
        if point is None:
            raise UnknownPriceSelectorError(selector, available)

        return self._discount_or_list(point, apply_discount)

    def _discount_or_list(self, point: PricePoint, apply_discount: bool) -> Decimal:
        if apply_discount and point.discount_price is not None:
            return money(point.discount_price)
        return money(point.price)

    # ===================
    # LINE / ITEM TOTALS
    # ===================

    def compute_line_total(
        self,
        structure: PricingStructure,
        selector: Optional[str],
        quantity: int,
        apply_discount: bool = True
    ) -> Decimal:
        """quantity × resolved unit price for one selector."""
        _check_quantity(quantity, selector)
        unit_price = self.resolve_unit_price(structure, selector, apply_discount)
        return money(unit_price * quantity)

    def compute_item_total(
        self,
        structure: PricingStructure,
        quantities: Mapping[Optional[str], int],
        apply_discount: bool = True
    ) -> Decimal:
        """
        Sum line totals over per-selector quantities.

        multi_type and variants products take one quantity per sub-type or
        variant; simple products use a single entry keyed by None.
        Zero quantities are skipped without resolving their price.
        """
        total = ZERO
        for selector, quantity in quantities.items():
            _check_quantity(quantity, selector)
            if quantity == 0:
                continue
            line = self.compute_line_total(structure, selector, quantity, apply_discount)
            total = money(total + line)
        return total

    def price_items(self, items: Iterable[OrderItem]) -> list[OrderItem]:
        """Return copies of items with line_total recomputed."""
        priced = []
        for item in items:
            _check_quantity(item.quantity, item.label_id)
            priced.append(item.model_copy(update={
                "unit_price": money(item.unit_price),
                "line_total": money(money(item.unit_price) * item.quantity),
            }))
        return priced

    # ===================
    # ORDER TOTALS
    # ===================

    def validate_discount(self, discount: Discount) -> None:
        """
        Raises:
            InvalidDiscountRangeError: percentage outside [0, 100] or negative flat
        """
        discount_type = DiscountType(discount.type)
        value = Decimal(str(discount.value))
        if discount_type == DiscountType.PERCENTAGE:
            if value < 0 or value > HUNDRED:
                raise InvalidDiscountRangeError(discount_type.value, value)
        elif value < 0:
            raise InvalidDiscountRangeError(discount_type.value, value)

    def compute_discount_amount(self, subtotal: Decimal, discount: Discount) -> Decimal:
        """Discount in money, capped at the subtotal."""
        self.validate_discount(discount)
        value = Decimal(str(discount.value))

        if DiscountType(discount.type) == DiscountType.PERCENTAGE:
            computed = money(subtotal * value / HUNDRED)
        else:
            computed = money(value)

        return min(subtotal, computed)

    def compute_order_totals(
        self,
        items: Iterable[OrderItem],
        discount: Optional[Discount] = None
    ) -> OrderTotals:
        """
        Compute subtotal, discount amount and total for an order.

        Deterministic: identical input always gives identical output.

        Args:
            items: Line items with quantity and resolved unit_price
            discount: Order discount (none if omitted)

        Returns:
            OrderTotals

        Raises:
            InvalidQuantityError: Any item quantity below zero
            InvalidDiscountRangeError: Discount out of range
        """
        subtotal = ZERO
        for item in items:
            _check_quantity(item.quantity, item.label_id)
            line = money(money(item.unit_price) * item.quantity)
            subtotal = money(subtotal + line)

        discount_amount = self.compute_discount_amount(subtotal, discount or Discount())
        total = money(max(ZERO, subtotal - discount_amount))

        return OrderTotals(
            subtotal=subtotal,
            discount_amount=discount_amount,
            total=total,
        )


# Singleton instance
_pricing_engine: Optional[PricingEngine] = None


def get_pricing_engine() -> PricingEngine:
    """Get or create PricingEngine instance."""
    global _pricing_engine
    if _pricing_engine is None:
        _pricing_engine = PricingEngine()
    return _pricing_engine
