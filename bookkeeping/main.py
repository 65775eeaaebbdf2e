"""
Bookkeeping Journal Service: FastAPI application.

This is the entry point for the application.
Logging is configured and all routers are registered here.
"""

import logging

from fastapi import FastAPI

from bookkeeping.config import get_settings
from bookkeeping.logging_config import configure_logging
from bookkeeping.api.health import router as health_router
from bookkeeping.api.journal import router as journal_router
from bookkeeping.api.ledger import router as ledger_router
from bookkeeping.api.users import router as users_router

settings = get_settings()
configure_logging()

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Double-entry journal entries with an approval workflow",
)

# Register routers
app.include_router(health_router)
app.include_router(ledger_router)
app.include_router(users_router)
app.include_router(journal_router)

logger.info(
    "%s %s started (%s)",
    settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT,
)
