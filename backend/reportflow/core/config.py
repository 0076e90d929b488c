"""
Pydantic Settings — centralized configuration loaded from environment variables.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Database ──────────────────────────────
    POSTGRES_USER: str = "reportflow_user"
    POSTGRES_PASSWORD: str = "reportflow_pass"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "reportflow_db"

    @property
    def DATABASE_URL(self) -> str:
        """Async URL for app runtime (asyncpg)."""
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def DATABASE_URL_SYNC(self) -> str:
        """Sync URL for Alembic migrations (psycopg2)."""
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def LISTEN_DSN(self) -> str:
        """Plain DSN for the dedicated asyncpg LISTEN connection."""
        return self.DATABASE_URL_SYNC

    # ── Change notifications ──────────────────
    ORDER_EVENTS_CHANNEL: str = "order_inserts"

    # ── Object storage / job status ───────────
    STORAGE_BASE_URL: str = "http://localhost:54321"
    STORAGE_API_KEY: str = ""
    STORAGE_BUCKET: str = "files"
    WORKFLOW_ID: str = "00000000-0000-0000-0000-000000000000"

    # ── Analysis service ──────────────────────
    ANALYSIS_SUBMIT_URL: str = "http://localhost:8080/api/deep-check"

    # ── Remote credentials ────────────────────
    CREDENTIAL_TOKEN_URL: str = "http://localhost:8081/token.txt"
    CREDENTIAL_COOKIE_URL: str = "http://localhost:8081/Cookie.txt"

    # ── CDN (Cloudinary) ──────────────────────
    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_API_KEY: str = ""
    CLOUDINARY_API_SECRET: str = ""
    CLOUDINARY_UPLOAD_BASE_URL: str = "https://api.cloudinary.com/v1_1"
    CDN_FOLDER: str = "homework_reports"
    CDN_PREFIX: str = "reports"

    # ── Artifact post-processing ──────────────
    QPDF_BINARY: str = "qpdf"
    TEMP_DIR: str | None = None

    # ── Outbound HTTP ─────────────────────────
    HTTP_TIMEOUT_SECONDS: float = 120.0

    # ── Polling ───────────────────────────────
    POLL_INTERVAL_SECONDS: float = 60.0
    POLL_MAX_WAIT_SECONDS: float = 360.0

    # ── Listener reconnect ────────────────────
    LISTENER_BACKOFF_BASE_SECONDS: float = 1.0
    LISTENER_BACKOFF_CAP_SECONDS: float = 30.0
    LISTENER_MAX_RETRIES: int = 10
    # Shutdown waits this long for dispatched workflows before cancelling them
    SHUTDOWN_GRACE_SECONDS: float = 10.0
    AUTOMATION_AUTOSTART: bool = False

    # ── Application ───────────────────────────
    APP_ENV: str = "development"

    model_config = {"env_file": ["../.env", ".env"], "extra": "ignore"}


settings = Settings()
