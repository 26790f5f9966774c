"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.labels import router as labels_router
from routes.client_orders import router as client_orders_router
from routes.clients import router as clients_router
from routes.pricing import router as pricing_router

__all__ = [
    "labels_router",
    "client_orders_router",
    "clients_router",
    "pricing_router",
]
