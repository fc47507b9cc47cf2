from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from tenacity import retry, retry_if_result, stop_after_attempt, wait_exponential

from .core.config import get_settings
from .core.db import SessionLocal
from .core.logging import configure_logging
from .api.routes_companies import router as companies_router
from .services.companies import CompanyService
from .services.results import ErrorKind, Result

configure_logging()
settings = get_settings()
logger = logging.getLogger(__name__)


@retry(
    wait=wait_exponential(multiplier=1, min=1, max=10),
    stop=stop_after_attempt(3),
    retry=retry_if_result(lambda r: r.error == ErrorKind.STORE_UNAVAILABLE),
    retry_error_callback=lambda state: state.outcome.result(),
)
def seed_reference_companies() -> Result[int]:
    """
    Apply the built-in company list. The database may still be starting up
    when the API boots, so store-unavailable results are retried.
    """
    db = SessionLocal()
    try:
        return CompanyService(db).ensure_seed_companies()
    finally:
        db.close()


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.SEED_COMPANIES_ON_STARTUP:
        result = seed_reference_companies()
        if result.ok:
            logger.info("Reference companies seeded", extra={"step": "startup_seed", "companies_created": result.value})
        else:
            # Startup continues; resolution still creates companies lazily
            logger.error(
                "Reference company seeding failed: %s",
                result.detail or result.error.value,
                extra={"step": "startup_seed"},
            )
    yield


app = FastAPI(title="Company Membership API", lifespan=lifespan)

# CORS:
# - In prod, FRONTEND_ORIGIN is required and we never fall back to "*".
# - In non-prod, wide-open CORS is only enabled if CORS_ALLOW_ALL_ORIGINS=True.
if settings.ENV.lower() == "prod":
    if not settings.FRONTEND_ORIGIN:
        raise RuntimeError(
            "FRONTEND_ORIGIN must be set in production – refusing to start with wide-open CORS."
        )
    origins = [
        o.strip()
        for o in settings.FRONTEND_ORIGIN.split(",")
        if o.strip()
    ]
else:
    if settings.CORS_ALLOW_ALL_ORIGINS:
        origins = ["*"]
    elif settings.FRONTEND_ORIGIN:
        origins = [
            o.strip()
            for o in settings.FRONTEND_ORIGIN.split(",")
            if o.strip()
        ]
    else:
        origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    allow_credentials=False,
)

app.include_router(companies_router, prefix=settings.API_PREFIX)
