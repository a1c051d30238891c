import logging
import os
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.api.deps import get_settings
from src.core.ports.email import EmailConfigError
from src.rules.loader import load_rules

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules and validate on startup (fail-fast)
    try:
        load_rules(settings.rules_path)
        logger.info("Rules loaded from %s", settings.rules_path)
    except (FileNotFoundError, ValueError) as e:
        logger.critical("Rules load failed: %s", e)
        sys.exit(1)

    applied = SQLiteMigrator(settings.db_path).run_migrations()
    if applied:
        logger.info("Applied migrations: %s", ", ".join(applied))

    yield


app = FastAPI(
    title="Portfolio Newsletter API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


@app.exception_handler(EmailConfigError)
async def email_config_error_handler(request: Request, exc: EmailConfigError) -> JSONResponse:
    logger.error("Mail transport misconfigured: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"message": "Email is not configured", "code": "EMAIL_CONFIG"},
    )


# --- Routers ---
from src.api.routes import (  # noqa: E402
    admin_email_settings,
    admin_newsletter,
    analytics,
    auth,
    public_newsletter,
)

app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(public_newsletter.router, prefix="/api/newsletter", tags=["Newsletter"])
app.include_router(
    admin_newsletter.router, prefix="/api/admin/newsletter", tags=["Admin Newsletter"]
)
app.include_router(
    admin_email_settings.router, prefix="/api/admin/settings/email", tags=["Admin Email"]
)
app.include_router(analytics.router, prefix="/api/analytics", tags=["Analytics"])
app.include_router(analytics.admin_router, prefix="/api/admin/analytics", tags=["Admin Analytics"])


# CORS (Allow Frontend)
origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "api"}
