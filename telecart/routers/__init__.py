"""
FastAPI Routers Package

All routers are included in api/index.py.
"""

from telecart.routers.cart import router as cart_router

__all__ = [
    "cart_router",
]
