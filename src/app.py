"""Skidline FastAPI application.

Scanner-facing web server that processes commands synchronously via HTTP.
Every request runs inside the scanning domain's context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay (memory stores for "test",
# PostgreSQL for "production").
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from scanning.api.errors import register_carrier_error_handler
from scanning.domain import scanning
from scanning.utils.logging import add_context, clear_context

scanning.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Skidline API",
    description="Warehouse scan sessions — Skid Build, Shipment Load and Pre-Shipment",
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
    """Push the scanning domain context for each request."""
    clear_context()
    add_context(method=request.method, path=request.url.path)
    with scanning.domain_context():
        response = await call_next(request)
    return response


register_exception_handlers(app)
register_carrier_error_handler(app)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from scanning.api.routes import (  # noqa: E402
    dock_monitor_router,
    exception_router,
    order_router,
    session_router,
)

app.include_router(session_router)
app.include_router(exception_router)
app.include_router(order_router)
app.include_router(dock_monitor_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {"scanning": {"name": scanning.name}},
        }
    )
