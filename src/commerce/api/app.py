"""Application factory for the commerce HTTP service."""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from commerce.api.errors import register_error_handlers
from commerce.api.routes import cart_router, order_router, payment_router
from commerce.domain import commerce
from commerce.payment.initiation import PaymentMethodCatalog
from commerce.settings import get_settings
from commerce.utils.cache import TTLCache
from commerce.utils.logging import bind_request_context, clear_request_context


def create_app(domain=commerce) -> FastAPI:
    """Build the app. ``domain`` must already be initialized."""
    app = FastAPI(
        title="Marketplace Commerce API",
        description="Cart pricing, checkout, payment reconciliation and stock for the flowers and laptops storefronts",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the commerce domain context and tag log lines with the caller."""
        bind_request_context(path=request.url.path, buyer_id=request.headers.get("x-buyer-id"))
        try:
            with domain.domain_context():
                return await call_next(request)
        finally:
            clear_request_context()

    app.state.payment_methods = PaymentMethodCatalog(TTLCache(get_settings().payment_methods_cache_ttl))

    register_error_handlers(app)
    app.include_router(cart_router)
    app.include_router(order_router)
    app.include_router(payment_router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app
