import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pharmalink.api.routes import (
    favorites,
    invoices,
    matches,
    missions,
    notifications,
    subscription,
    swipes,
    system,
    usage,
)
from pharmalink.core import config
from pharmalink.core.errors import (
    NotFoundError,
    PharmalinkError,
    QuotaExceededError,
    StorageError,
    ValidationError,
)
from pharmalink.core.logging_config import sanitize_log_data, setup_logging

setup_logging(config.LOG_LEVEL, config.LOG_DIR)
logger = logging.getLogger(__name__)


# ============================================
# FASTAPI APP INIT
# ============================================

app = FastAPI(title="Pharmalink Matching API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type"],
)


# ============================================
# DOMAIN ERRORS -> HTTP
# ============================================

ERROR_STATUS = {
    ValidationError: 400,
    NotFoundError: 404,
    QuotaExceededError: 402,
    StorageError: 503,
}


@app.exception_handler(PharmalinkError)
def handle_domain_error(request: Request, exc: PharmalinkError):
    status_code = ERROR_STATUS.get(type(exc), 400)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} {sanitize_log_data(exc.details)}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.code}): {exc.message}")
    return JSONResponse(status_code=status_code, content={"detail": exc.to_detail()})


# ============================================
# REGISTER ALL ROUTERS
# ============================================

app.include_router(swipes.router)
app.include_router(matches.router)
app.include_router(usage.router)
app.include_router(subscription.router)
app.include_router(missions.router)
app.include_router(favorites.router)
app.include_router(invoices.router)
app.include_router(notifications.router)
app.include_router(system.router)


@app.on_event("startup")
def prepare_database():
    if config.RUN_MIGRATIONS:
        from pharmalink.db.migrate import run_migrations
        run_migrations()
    elif config.AUTO_CREATE_TABLES:
        from pharmalink.db.init_db import init_db
        init_db()


@app.get("/")
def root():
    return {"status": "Pharmalink API running"}
