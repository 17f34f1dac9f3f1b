"""Configuration management using environment variables"""
import logging
import os
import secrets
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


class Settings:
    """Application settings - only what the service actually reads"""

    def __init__(self):
        # Environment
        self.environment = os.getenv("ENVIRONMENT", "development")

        # Logging
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()

        # Server configuration
        self.host = os.getenv("HOST", "0.0.0.0")
        self.port = int(os.getenv("PORT", "8000"))

        # Database configuration
        self.database_url = os.getenv(
            "DATABASE_URL",
            "sqlite+aiosqlite:///./kpower.db"
        )
        self.db_pool_size = int(os.getenv("DB_POOL_SIZE", "10"))
        self.db_max_overflow = int(os.getenv("DB_MAX_OVERFLOW", "20"))
        # Seconds to wait for a pooled connection before failing the request
        self.db_pool_timeout = float(os.getenv("DB_POOL_TIMEOUT", "2"))

        # JWT configuration
        if self.environment == "production":
            self.jwt_secret = self._get_required("JWT_SECRET")
        else:
            jwt_secret_env = os.getenv("JWT_SECRET", "")
            if jwt_secret_env:
                self.jwt_secret = jwt_secret_env
            else:
                # Development: random secret, tokens do not survive restarts
                self.jwt_secret = secrets.token_urlsafe(32)
                logger.warning(
                    "⚠️  No JWT_SECRET provided - generated random secret for this process. "
                    "Tokens will not survive restarts. Set JWT_SECRET in .env for persistent tokens."
                )

        self.jwt_algorithm = os.getenv("JWT_ALGORITHM", "HS256")
        self.jwt_issuer = os.getenv("JWT_ISSUER", "killpowa")
        self.jwt_expiration_seconds = int(os.getenv("JWT_EXPIRATION_SECONDS", "864000"))  # 10 days

        # Live event stream
        self.event_buffer_size = int(os.getenv("EVENT_BUFFER_SIZE", "100"))
        self.stream_keepalive_seconds = float(os.getenv("STREAM_KEEPALIVE_SECONDS", "15"))

        # Invite codes (0 = retry until a free code is found)
        self.invite_code_max_attempts = int(os.getenv("INVITE_CODE_MAX_ATTEMPTS", "0"))

        # CORS origins (comma-separated list, "*" allows any origin)
        self.cors_origins = os.getenv("CORS_ORIGINS", "*")

    @property
    def invite_code_attempt_limit(self) -> Optional[int]:
        """Attempt guard for invite code generation, None when unbounded."""
        return self.invite_code_max_attempts if self.invite_code_max_attempts > 0 else None

    @property
    def allowed_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def _get_required(self, key: str) -> str:
        """Get required environment variable or raise error."""
        value = os.getenv(key, "").strip()
        if not value:
            raise ValueError(
                f"Missing required environment variable: {key}. "
                f"Required in production mode."
            )
        return value


# Global settings instance
settings = Settings()
