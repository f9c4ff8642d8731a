"""
Telecom Cart API - Main FastAPI Application

Single entry point for the cart HTTP surface. ``create_app`` wires a
CartService onto ``app.state``; the module-level ``app`` uses the process
singleton configured from the environment.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from telecart import __version__
from telecart.cart import CartService, get_cart_service
from telecart.config import Settings, get_settings
from telecart.errors import ERROR_MISSING_ITEM_FIELDS, ERROR_MISSING_ITEM_ID, CartError
from telecart.logging import configure_logging, get_logger
from telecart.routers import cart_router

logger = get_logger(__name__)


# ==================== BACKGROUND SWEEP ====================

async def _sweep_forever(service: CartService, interval_ms: int) -> None:
    """Reap expired carts periodically, independent of per-cart timers."""
    while True:
        await asyncio.sleep(interval_ms / 1000)
        try:
            await service.sweep_expired()
        except Exception as e:
            logger.error(f"Expiry sweep failed: {e}", exc_info=True)


# ==================== ERROR HANDLERS ====================

async def cart_error_handler(request: Request, exc: CartError) -> JSONResponse:
    """Map each cart error kind to its status code."""
    return JSONResponse(status_code=exc.http_status, content={"error": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are client errors (400), not 422."""
    errors = exc.errors()
    if any(err.get("type") == "missing" for err in errors):
        message = ERROR_MISSING_ITEM_ID if request.method == "DELETE" else ERROR_MISSING_ITEM_FIELDS
    else:
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid field {location}: {first.get('msg', 'invalid value')}"
    return JSONResponse(status_code=400, content={"error": message})


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    content = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


# ==================== FASTAPI APP ====================

def create_app(service: Optional[CartService] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    Args:
        service: CartService to serve; defaults to the process singleton
        settings: settings for logging and the sweep interval; defaults to the environment
    """
    if settings is None:
        settings = get_settings()
    configure_logging(settings)
    if service is None:
        service = get_cart_service()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler"""
        sweeper = None
        if settings.sweep_interval_ms > 0:
            sweeper = asyncio.create_task(_sweep_forever(service, settings.sweep_interval_ms))
        logger.info(f"Cart API started (expiry {service.ttl_ms}ms, env {settings.app_env})")
        yield
        if sweeper is not None:
            sweeper.cancel()
            try:
                await sweeper
            except asyncio.CancelledError:
                pass
        service.shutdown()

    app = FastAPI(
        title="Telecom Cart API",
        description="Short-lived cart sessions mirrored to the customer context",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.cart_service = service

    app.add_exception_handler(CartError, cart_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)

    app.include_router(cart_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "ok"}

    return app


app = create_app()


def main() -> None:
    """Run the development server."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "api.index:app",
        host="0.0.0.0",
        port=settings.port,
        reload=not settings.is_production,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
