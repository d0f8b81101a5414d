import logging
import os
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

# Load env before settings are imported
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

from skillboard.core.config import settings, validate_config
from skillboard.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from skillboard.core.logging import configure_logging
from skillboard.core.middleware.request_id import RequestIdMiddleware
from skillboard.core.validation import validate_env
from skillboard.api import health, leaderboard, stats, users
from skillboard.features.leaderboard.service import shutdown_background_dispatch

configure_logging(settings.ENV)
validate_env()
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("skillboard")
    logger.info("Starting Skillboard backend...")
    app.state.startup_time = time.time()
    try:
        yield
    finally:
        logging.getLogger("skillboard").info("Stopping Skillboard backend...")
        shutdown_background_dispatch(wait=True)


app = FastAPI(title="Skillboard - Scoring & Leaderboard API", lifespan=lifespan)

app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.include_router(leaderboard.router)
app.include_router(stats.router)
app.include_router(users.router)
app.include_router(health.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("skillboard.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
