"""
kpower referral service - Main Application Entry Point
"""
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional
import logging
import re

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from kpower.api import auth, events, users
from kpower.api.errors import register_error_handlers
from kpower.config import Settings, settings as default_settings
from kpower.db.connection import Database
from kpower.services.event_bus import EventBus
from kpower.services.invite_code_service import InviteCodeGenerator
from kpower.services.token_service import TokenService
from kpower.version import __version__

JWT_PATTERN = re.compile(r'eyJ[A-Za-z0-9_-]*\.eyJ[A-Za-z0-9_-]*\.[A-Za-z0-9_-]*')


# Custom logging filter to redact sensitive data
class SensitiveDataFilter(logging.Filter):
    """Filter to redact bearer tokens from logs"""

    def filter(self, record):
        if hasattr(record, 'msg'):
            msg = str(record.msg)
            if 'eyJ' in msg:
                record.msg = JWT_PATTERN.sub('[JWT_REDACTED]', msg)
        return True


def configure_logging(log_level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Add filter to all root handlers
    for handler in logging.root.handlers:
        if not any(isinstance(f, SensitiveDataFilter) for f in handler.filters):
            handler.addFilter(SensitiveDataFilter())


configure_logging(default_settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - builds and tears down process-wide singletons"""
    config: Settings = app.state.settings

    # Startup
    logger.info("🚀 Starting kpower referral service")
    logger.info(f"📦 Version: {__version__}")
    logger.info(f"📝 Environment: {config.environment}")

    database = Database(
        config.database_url,
        pool_size=config.db_pool_size,
        max_overflow=config.db_max_overflow,
        pool_timeout=config.db_pool_timeout,
    )
    await database.init()

    event_bus = EventBus(capacity=config.event_buffer_size)

    app.state.database = database
    app.state.event_bus = event_bus
    app.state.token_service = TokenService(
        secret=config.jwt_secret,
        issuer=config.jwt_issuer,
        ttl=timedelta(seconds=config.jwt_expiration_seconds),
        algorithm=config.jwt_algorithm,
    )
    app.state.invite_codes = InviteCodeGenerator(max_attempts=config.invite_code_attempt_limit)

    logger.info("✅ Configuration loaded successfully")

    yield

    # Shutdown
    logger.info("Shutting down...")
    event_bus.close()
    await database.close()


def create_app(config: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application for the given settings"""
    config = config or default_settings

    application = FastAPI(
        title="kpower referral service",
        description="Username login/registration with invite-code referrals and a live event stream",
        version=__version__,
        lifespan=lifespan,
    )
    application.state.settings = config

    allowed_origins = config.allowed_origins or ["*"]
    application.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials="*" not in allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    logger.info(f"✅ CORS configured for origins: {allowed_origins}")

    register_error_handlers(application)

    application.include_router(auth.router, tags=["auth"])
    application.include_router(users.router, tags=["users"])
    application.include_router(events.router, tags=["events"])

    @application.get("/")
    async def root():
        """Root endpoint"""
        return {
            "app": "kpower",
            "version": __version__,
            "status": "running",
            "environment": config.environment,
        }

    @application.get("/health")
    async def health_check():
        """Liveness probe, no authentication"""
        return {"message": "API up!"}

    return application


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=default_settings.host, port=default_settings.port)


if __name__ == "__main__":
    run()
