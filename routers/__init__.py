# routers/__init__.py
from .mandates import router as mandates_router
from .sessions import router as sessions_router
from .customers import router as customers_router

__all__ = [
     "mandates_router",
     "sessions_router",
     "customers_router",
]
