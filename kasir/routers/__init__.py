"""
Routers for Kasir POS
"""

from .categories import router as categories_router
from .dashboard import router as dashboard_router
from .inventory import router as inventory_router
from .orders import router as orders_router
from .payments import router as payments_router
from .procurement import router as procurement_router
from .products import router as products_router
from .reports import router as reports_router
from .shifts import router as shifts_router
from .stock_opname import router as stock_opname_router
from .suppliers import router as suppliers_router
from .units import router as units_router
from .users import router as users_router

__all__ = [
    "categories_router", "dashboard_router", "inventory_router", "orders_router",
    "payments_router", "procurement_router", "products_router", "reports_router",
    "shifts_router", "stock_opname_router", "suppliers_router", "units_router",
    "users_router",
]
