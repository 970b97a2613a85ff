import logging

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from workshop_ledger.core.config import settings
from workshop_ledger.core.observability import (
    http_exception_handler,
    log_event,
    logger,
    request_logging_middleware,
    setup_observability,
    unhandled_exception_handler,
    validation_exception_handler,
)
from workshop_ledger.db.session import engine
from workshop_ledger.routers import (
    audit,
    auth,
    cashflows,
    dashboard,
    product_stock,
    products,
    stock_audit,
    stock_movements,
    users,
    workshop_orders,
)
from workshop_ledger.routers import settings as settings_routes

app = FastAPI(
    title=settings.app_name,
    version="1.0.0",
    description=(
        "Inventory, cashflow and workshop-order API for a small woodwork business.\n\n"
        "Swagger quick test flow:\n"
        "1. Call `POST /auth/register` or `POST /auth/login` (sets the `auth_token` cookie).\n"
        "2. Or click **Authorize** and use your username/email + password "
        "(OAuth token URL: `/auth/token`).\n"
        "3. Test protected endpoints (`/products`, `/stock-movements`, `/product-stock`, "
        "`/cashflows`, `/dashboard/stats`)."
    ),
    swagger_ui_parameters={
        "persistAuthorization": True,
        "displayRequestDuration": True,
        "defaultModelsExpandDepth": 1,
    },
    openapi_tags=[
        {"name": "health", "description": "Service status and quick links."},
        {"name": "auth", "description": "Registration, login and the auth cookie."},
        {"name": "users", "description": "User directory and own-profile updates."},
        {"name": "products", "description": "Product catalogue with aggregate stock."},
        {"name": "stock", "description": "Stock movements, location stock and stock reconciliation."},
        {"name": "cashflows", "description": "Income and expense records."},
        {"name": "settings", "description": "Key/value settings such as initial capital."},
        {"name": "workshop orders", "description": "Production orders with cost and profit breakdown."},
        {"name": "dashboard", "description": "Stock and cash summary metrics."},
        {"name": "audit", "description": "Audit trail of every change."},
    ],
)

setup_observability()
app.middleware("http")(request_logging_middleware)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

cors_origins = settings.cors_origins or ["http://localhost:5173"]
allow_all_origins = "*" in cors_origins
env_value = settings.env.lower().strip()
allow_origin_regex = settings.cors_origin_regex

if not allow_origin_regex and env_value in {"dev", "development"}:
    # Vite and friends pick a free localhost port.
    allow_origin_regex = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all_origins else cors_origins,
    allow_origin_regex=allow_origin_regex,
    allow_credentials=not allow_all_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(products.router)
app.include_router(stock_movements.router)
app.include_router(product_stock.router)
app.include_router(stock_audit.router)
app.include_router(cashflows.router)
app.include_router(settings_routes.router)
app.include_router(workshop_orders.router)
app.include_router(dashboard.router)
app.include_router(audit.router)


@app.get("/", tags=["health"])
def root():
    return {
        "app": settings.app_name,
        "docs": "/docs",
        "redoc": "/redoc",
        "health": "/health",
        "ready": "/ready",
    }


@app.get("/health", tags=["health"])
def health():
    return {"ok": True}


@app.get("/ready", tags=["health"])
def ready():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        log_event(logger, logging.ERROR, "readiness.failed", error=str(exc))
        return JSONResponse(status_code=503, content={"ok": False})
    return {"ok": True}
