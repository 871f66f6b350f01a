"""FastAPI application entry point."""
import os

# Force UTC before any module caches timezone information
os.environ['TZ'] = 'UTC'

import time
import sys

if hasattr(time, "tzset"):
    time.tzset()

# Persian microcopy must survive consoles that default to a legacy encoding
for stream in (sys.stdout, sys.stderr):
    if hasattr(stream, "reconfigure"):
        stream.reconfigure(encoding="utf-8", errors="backslashreplace")

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from contextlib import asynccontextmanager

from karbarg.config import get_settings
from karbarg.version import APP_VERSION
from karbarg.routers import admin, career_paths, cron, health, microcopy, qa
from karbarg.services.career_content import get_career_content
from karbarg.utils.exceptions import KarbargError

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOGS_DIR = Path("logs")
LOGS_DIR.mkdir(exist_ok=True)


def _file_handler(filename: str, max_mb: int, backups: int, fmt: str = LOG_FORMAT) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        LOGS_DIR / filename,
        maxBytes=max_mb * 1024 * 1024,
        backupCount=backups,
        encoding='utf-8',
    )
    handler.setFormatter(logging.Formatter(fmt))
    return handler


class SQLTransactionFilter(logging.Filter):
    """Drop transaction chatter from the SQL log and flatten statements to one line."""

    NOISE = ('BEGIN', 'COMMIT', 'ROLLBACK', 'generated in')
    STATEMENTS = ('SELECT', 'INSERT', 'UPDATE', 'DELETE')

    def filter(self, record):
        if record.levelno != logging.INFO:
            return True
        message = record.getMessage()
        if any(token in message for token in self.NOISE):
            return False
        if any(token in message for token in self.STATEMENTS):
            record.msg = ' '.join(message.split())
            record.args = ()
        return True


def _dedicated_logger(name: str, handler: logging.Handler) -> logging.Logger:
    """A logger that writes only to ``handler`` and never reaches the root log."""
    dedicated = logging.getLogger(name)
    dedicated.handlers.clear()
    dedicated.addHandler(handler)
    dedicated.setLevel(logging.INFO)
    dedicated.propagate = False
    return dedicated


app_log_handler = _file_handler("karbarg.log", max_mb=1, backups=5)

# force=True overrides uvicorn's configuration
logging.basicConfig(
    level=logging.INFO,
    format=LOG_FORMAT,
    handlers=[logging.StreamHandler(), app_log_handler],
    force=True,
)

logger = logging.getLogger(__name__)

api_logger = _dedicated_logger(
    "karbarg.api",
    _file_handler("karbarg_api.log", max_mb=2, backups=15, fmt='%(asctime)s - %(levelname)s - %(message)s'),
)
sql_logger = _dedicated_logger("sqlalchemy.engine.Engine", _file_handler("karbarg_sql.log", max_mb=1, backups=5))
sql_logger.addFilter(SQLTransactionFilter())

uvicorn_access_logger = logging.getLogger("uvicorn.access")
uvicorn_access_logger.setLevel(logging.INFO)
if app_log_handler not in uvicorn_access_logger.handlers:
    uvicorn_access_logger.addHandler(app_log_handler)

settings = get_settings()


@asynccontextmanager
async def lifespan(app_instance: FastAPI):
    """Validate static content at startup so a broken content file fails fast."""
    logger.info("=" * 60)
    logger.info("Karbarg Q&A API Starting")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Database: {settings.database_url.split('@')[-1] if '@' in settings.database_url else 'SQLite'}")
    logger.info("=" * 60)

    content = get_career_content()
    logger.info(f"Career content ready: {len(content.levels)} levels")

    yield

    logger.info("Karbarg Q&A API Shutting Down... Goodbye!")


app = FastAPI(
    title="Karbarg Q&A API",
    description="Answer quality, reputation, microcopy funnel and career paths",
    version=APP_VERSION,
    lifespan=lifespan,
)


@app.exception_handler(KarbargError)
async def karbarg_exception_handler(request: Request, exc: KarbargError):
    """Translate domain errors into their HTTP status with a ``detail`` message."""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def _field_path(loc) -> str:
    # The first element is the source (body, query, path)
    return " -> ".join(str(part) for part in loc[1:]) or "unknown field"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Flatten pydantic errors into ``{field, message, type}`` entries."""
    problems = exc.errors()
    logger.warning(f"Validation error on {request.url.path}: {problems}")
    errors = [
        {
            "field": _field_path(problem.get("loc", ())),
            "message": problem.get("msg", "Validation error"),
            "type": problem.get("type", "unknown"),
        }
        for problem in problems
    ]
    return JSONResponse(status_code=422, content={"detail": "Request validation failed", "errors": errors})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Write START/COMPLETE/EXCEPTION lines with timing to the API log."""
    started = time.perf_counter()
    client_ip = request.client.host if request.client else "unknown"
    route = f"{request.method} {request.url.path}"
    request_id = f"{request.method}:{request.url.path}:{int(time.time() * 1000) % 100000}"

    agent = request.headers.get("user-agent", "unknown")[:50]
    api_logger.info(f">> {request_id} | START | {route} | IP: {client_ip} | UA: {agent}")
    if request.query_params:
        api_logger.info(f">> {request_id} | QUERY | {request.query_params}")

    try:
        response = await call_next(request)
    except Exception as exc:
        elapsed = time.perf_counter() - started
        api_logger.error(
            f"<< {request_id} | EXCEPTION | {route} | Error: {str(exc)[:100]} | Time: {elapsed:.3f}s",
            exc_info=True,
        )
        raise

    elapsed = time.perf_counter() - started
    level = logging.WARNING if response.status_code >= 400 else logging.INFO
    api_logger.log(
        level,
        f"<< {request_id} | COMPLETE | {route} | Status: {response.status_code} | Time: {elapsed:.3f}s",
    )
    return response


LOCAL_DEV_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]


def _cors_origins() -> list[str]:
    """``ALLOWED_ORIGINS`` (comma separated) when set, else the frontend plus local dev servers."""
    configured = [origin.strip() for origin in os.getenv("ALLOWED_ORIGINS", "").split(",") if origin.strip()]
    return configured or [settings.frontend_url, *LOCAL_DEV_ORIGINS]


app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(qa.router)
app.include_router(microcopy.router)
app.include_router(career_paths.router)
app.include_router(admin.router)
app.include_router(cron.router)
app.include_router(health.router)
