import os
import logging
from pydantic import BaseModel, Field
from typing import List
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "true") -> bool:
    return os.getenv(name, default).lower() == "true"


class ScoringSettings(BaseModel):
    min_score: int = int(os.getenv("SCORE_MIN", "1"))
    max_score: int = int(os.getenv("SCORE_MAX", "5"))
    # Allowed drift between the active category weights and 100
    weight_tolerance: float = 0.01


class SchedulerSettings(BaseModel):
    enabled: bool = Field(default_factory=lambda: _env_flag("SCHEDULER_ENABLED"))
    notification_interval_seconds: int = int(os.getenv("NOTIFICATION_SWEEP_INTERVAL", "3600"))
    cleanup_hour: int = int(os.getenv("CLEANUP_HOUR", "2"))
    due_soon_days: int = 3
    notification_retention_days: int = int(os.getenv("NOTIFICATION_RETENTION_DAYS", "30"))
    temp_dir: str = os.getenv("TEMP_UPLOAD_DIR", "uploads/temp")
    temp_file_max_age_hours: int = 24


class Config(BaseModel):
    app_name: str = "Performance Evaluation API"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./performance.db")

    # Auth
    secret_key: str = os.getenv("SECRET_KEY", "dev-only-insecure-key-DO-NOT-USE-IN-PROD")
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 8)))
    refresh_token_expire_days: int = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))

    version: str = "1.0.0"
    request_id_header: str = "X-Request-ID"

    # CORS: comma-separated origins loaded from env.
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://localhost:5173,"
                "http://127.0.0.1:3000,http://127.0.0.1:5173",
            ).split(",")
            if o.strip()
        ]
    )

    rate_limit_per_minute: int = int(os.getenv("RATE_LIMIT_PER_MINUTE", "60"))
    login_rate_limit: str = os.getenv("LOGIN_RATE_LIMIT", "10/minute")

    # Bootstrap admin, created on first start when no user exists
    bootstrap_admin_email: str = os.getenv("BOOTSTRAP_ADMIN_EMAIL", "admin@company.com")
    bootstrap_admin_password: str = os.getenv("BOOTSTRAP_ADMIN_PASSWORD", "ChangeMe123!")

    scoring: ScoringSettings = ScoringSettings()
    scheduler: SchedulerSettings = SchedulerSettings()


settings = Config()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.environment not in ("development", "testing"):
    if "dev-only" in settings.secret_key:
        raise RuntimeError(
            "FATAL: SECRET_KEY must be set for non-development environments. "
            "Set it as an environment variable."
        )
else:
    if "dev-only" in settings.secret_key:
        _logger.warning("⚠ Using insecure default SECRET_KEY; only acceptable in development.")
