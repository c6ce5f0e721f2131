import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from app.api.router import api_router
from app.config import settings
from app.core.database import init_db


def setup_logging() -> None:
    """Configure application logging."""
    # Format: timestamp - level - logger name - message
    log_format = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
    date_format = "%H:%M:%S"

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=log_format,
        datefmt=date_format,
        stream=sys.stdout,
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

    # Request logging happens in log_requests below
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    from app.services.github import close_github_client
    from app.services.scheduler import scheduler

    # Startup
    setup_logging()
    logger.info("GitPulse API starting up")
    if settings.debug:
        await init_db()
    scheduler.start()
    yield
    # Shutdown
    scheduler.stop()
    await close_github_client()
    logger.info("GitPulse API shutting down")


app = FastAPI(
    title="GitPulse API",
    description="GitHub activity sync and developer analytics API",
    version="0.1.0",
    lifespan=lifespan,
)

# Trust X-Forwarded-Proto from the reverse proxy
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log failed requests and every sync or refresh call."""
    if request.method == "OPTIONS" or request.url.path == "/health":
        return await call_next(request)

    response = await call_next(request)

    path = request.url.path
    if response.status_code >= 400 or any(keyword in path for keyword in ["sync", "refresh"]):
        logger.info(f"{request.method} {path} -> {response.status_code}")

    return response


app.include_router(api_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
