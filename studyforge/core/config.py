import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Text generation (Groq)
    GROQ_API_KEY: Optional[str] = None
    GENERATION_MODEL: str = "llama-3.1-8b-instant"

    # Clerk Auth
    CLERK_SECRET_KEY: Optional[str] = None
    CLERK_ISSUER: Optional[str] = None  # e.g. https://your-instance.clerk.accounts.dev
    CLERK_AUDIENCE: Optional[str] = None
    CLERK_JWKS_URL: Optional[str] = None  # e.g. https://your-instance.clerk.accounts.dev/.well-known/jwks.json
    JWKS_FETCH_TIMEOUT_SECONDS: float = 5.0

    # Database
    DATABASE_URL: Optional[str] = None
    TEST_DATABASE_URL: Optional[str] = None

    # Degraded-mode deadlines (seconds). The probe must stay well below the
    # generation deadline so a dead store is detected before generation starts.
    STORE_PROBE_TIMEOUT_SECONDS: float = 2.0
    STORE_OPERATION_TIMEOUT_SECONDS: float = 5.0
    GENERATION_TIMEOUT_SECONDS: float = 5.0

    # HTTP
    CORS_ALLOW_ORIGINS: str = "http://localhost:3000"  # comma-separated

    # Observability / Tracing
    OTEL_ENABLED: bool = False
    OTEL_EXPORTER: str = "console"  # console | memory

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ALLOW_ORIGINS.split(",") if origin.strip()]


settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate required configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Missing keys are not fatal by default: the service runs in demo mode
    without a database and with fallback content without a Groq key.
    Secrets are not logged, only missing keys.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("studyforge")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    required_keys = [
        "DATABASE_URL",
        "GROQ_API_KEY",
    ]

    missing = [key for key in required_keys if not getattr(cfg, key, None)]
    if not any(getattr(cfg, key, None) for key in ("CLERK_SECRET_KEY", "CLERK_ISSUER", "CLERK_JWKS_URL")):
        missing.append("CLERK_SECRET_KEY|CLERK_ISSUER|CLERK_JWKS_URL")
    if missing:
        message = f"Missing required configuration: {', '.join(missing)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True
