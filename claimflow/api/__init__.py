# API module - FastAPI routers
from .admin import reports_router, users_router
from .auth import router as auth_router
from .endpoints import review_router
from .endpoints import router as claims_router

__all__ = ["auth_router", "claims_router", "review_router", "users_router", "reports_router"]
