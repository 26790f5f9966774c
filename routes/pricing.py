"""
Pricing API routes: quote a product or a whole order without saving.
"""

from fastapi import APIRouter

from models.pricing import ItemQuoteRequest, ItemQuoteResponse, OrderTotals
from models.client_order import OrderQuoteRequest
from services.pricing_service import get_pricing_engine
from routes.errors import handle_error

router = APIRouter(prefix="/api/pricing", tags=["Pricing"])


@router.post("/item", response_model=ItemQuoteResponse)
async def quote_item(data: ItemQuoteRequest):
    """
    Price one product across its sub-types or variants.

    Raises:
        422: Unknown pricing structure, unknown selector, negative quantity
    """
    try:
        engine = get_pricing_engine()
        return ItemQuoteResponse(
            item_total=engine.compute_item_total(
                data.structure, data.quantities, data.apply_discount
            )
        )
    except Exception as e:
        return handle_error(e)


@router.post("/order", response_model=OrderTotals)
async def quote_order(data: OrderQuoteRequest):
    """
    Subtotal, discount amount and total for a set of items.

    Raises:
        422: Negative quantity or discount out of range
    """
    try:
        return get_pricing_engine().compute_order_totals(data.items, data.discount)
    except Exception as e:
        return handle_error(e)
