"""
AlloBricolage - FastAPI application entry point.

Run with `uvicorn allobricolage.main:app` from the backend directory.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from allobricolage import __version__
from allobricolage.api.rate_limit import build_rate_limit_store
from allobricolage.api.v1.router import api_router
from allobricolage.config import get_settings
from allobricolage.database import close_db, get_db, init_db
from allobricolage.engine.taxonomy import SERVICE_LABELS

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("allobricolage")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s %s", settings.APP_NAME, __version__)
    await init_db()
    app.state.rate_limit_store = build_rate_limit_store()
    logger.info("Database ready, rate limiting via %s", type(app.state.rate_limit_store).__name__)

    yield

    await close_db()
    logger.info("%s stopped", settings.APP_NAME)


app = FastAPI(
    title=settings.APP_NAME,
    description="Marketplace connecting Moroccan clients with home-repair technicians",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report every invalid field as a flat {field, message, type} entry."""
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Validation error", "errors": errors},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {"detail": "Internal server error"}
    if settings.DEBUG:
        content = {"detail": str(exc), "type": type(exc).__name__}
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Liveness probe; also checks the database answers."""
    await db.execute(text("SELECT 1"))
    return {"status": "healthy", "service": settings.APP_NAME, "database": "ok"}


@app.get("/")
async def root():
    return {
        "service": settings.APP_NAME,
        "version": __version__,
        "services": list(SERVICE_LABELS.values()),
        "docs": "/docs",
    }
