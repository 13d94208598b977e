"""FastAPI application bootstrap for PharmaTrace."""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from .config import LEDGER_BACKEND
from .infra.db import init_db
from .routers import consent

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if LEDGER_BACKEND == "local":
        init_db()
    logger.info("PharmaTrace API started with %s ledger", LEDGER_BACKEND)
    yield


def create_app() -> FastAPI:
    app = FastAPI(title="PharmaTrace Consent API", version="0.1.0", lifespan=lifespan)

    app.include_router(consent.router, prefix="/consent", tags=["consent"])

    return app


app = create_app()
