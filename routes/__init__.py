from routes.jobs import router as jobs_router
from routes.customers import router as customers_router
from routes.products import router as products_router
from routes.health import router as health_router

__all__ = ["jobs_router", "customers_router", "products_router", "health_router"]
