"""
Telecom Cart Core Module

This package contains the cart session components:
- cart: cart entity, store, context mirror, expiry scheduler, service
- config: environment-driven settings
- errors: typed error kinds shared by every layer
- logging: centralized logger configuration
- routers: FastAPI endpoints consumed by api/index.py
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
