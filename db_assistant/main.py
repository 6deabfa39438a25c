import asyncio
import logging
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
import alembic.config
import alembic.command
from db_assistant.core.config import settings
from db_assistant.core.database import engine
from db_assistant.core.logging import setup_logging
from db_assistant.core.query_gate.errors import AuthorizationDenied, ValidationInputError
from db_assistant.api.router import api_router
from db_assistant.api import error_handlers

setup_logging()
logger = logging.getLogger(__name__)


def run_migrations():
    """Sync function to run migrations"""
    alembic_cfg = alembic.config.Config("alembic.ini")
    alembic_cfg.attributes["configure_logger"] = False
    alembic.command.upgrade(alembic_cfg, "head")


# Close the engine once everything is done and close all the sessions
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Apply any pending migrations automatically when the app starts
    try:
        await asyncio.to_thread(run_migrations)
        logger.info("Migrations applied successfully (or already up-to-date)")
    except Exception as e:
        logger.error(f"Migration error during startup: {e}")

    yield
    await engine.dispose()


app = FastAPI(title="AI Database Assistant API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "%s %s -> %s in %.1fms",
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - started) * 1000,
    )
    return response


app.add_exception_handler(AuthorizationDenied, error_handlers.authorization_denied_exception)
app.add_exception_handler(ValidationInputError, error_handlers.validation_input_exception)

# Include the master router containing all our endpoints
app.include_router(api_router)


@app.get("/health", response_class=PlainTextResponse)
async def health():
    return "OK"
