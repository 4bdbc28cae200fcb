"""
PayPal Checkout - Main Application Entry Point

This module initializes the FastAPI application that hosts the PayPal adapter.
It wires the settings and gateway container, the cookie session that carries
pending payment ids across the PayPal redirect, and the versioned API routes.
"""

import os
from contextlib import asynccontextmanager

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from api import routes
from api.middleware import log_api_entry
from core.dependencies import clear_settings, get_settings, init_settings
from core.logging import configure_logging, configure_sdk_logging
from core.metrics import init_metrics
from core.settings import Settings

log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI application startup and shutdown events."""
    # Startup
    init_settings()
    settings = get_settings()
    configure_sdk_logging(
        settings.PAYPAL_LOG_ENABLED,
        level=settings.PAYPAL_LOG_LEVEL,
        filename=settings.PAYPAL_LOG_FILE,
    )
    log.info(
        "app.startup",
        app_name=settings.APP_NAME,
        paypal_mode=settings.PAYPAL_MODE,
        currency=settings.PAYPAL_CURRENCY,
    )

    yield
    # Shutdown
    clear_settings()


app = FastAPI(
    title="PayPal Checkout",
    description="""
    ## PayPal REST adapter

    Cart aggregation and redirect-based checkout on top of PayPal's classic REST API.

    ### Key Features:
    - **Checkout**: Build a cart, create a PayPal payment, capture it on the approval callback
    - **Payments**: Look up a payment or page through payment history
    - **Billing Plans**: Create, list, activate and delete plans
    - **Billing Agreements**: Subscribe to a plan, then suspend, reactivate or cancel
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Initialize Prometheus metrics
init_metrics(app)

# Add logging middleware first
app.middleware("http")(log_api_entry)

# Cookie session holding pending PayPal payment ids between create and callback
app.add_middleware(
    SessionMiddleware,
    secret_key=os.getenv("SESSION_SECRET_KEY", "change-me"),
    same_site="lax",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    return JSONResponse(
        status_code=500,
        content={"detail": str(exc)},
    )


@app.get("/health")
async def health_check(settings: Settings = Depends(get_settings)):
    """Health check endpoint to verify API status."""
    return {
        "status": "ok",
        "app_name": settings.APP_NAME,
        "paypal_mode": settings.PAYPAL_MODE,
        "environment": settings.ENVIRONMENT,
    }


# Include routers under a single versioned prefix
API_PREFIX = "/api/v1"

app.include_router(routes.router, prefix=API_PREFIX)


def main():
    configure_logging()
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
