from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    local_database_url: str = Field("sqlite+aiosqlite:///./schoolsync.db", alias="LOCAL_DATABASE_URL")

    # "rest" talks to the hosted backends, "memory" keeps everything in process (dev/tests)
    remote_backend: str = Field("rest", alias="REMOTE_BACKEND")
    supabase_url: Optional[str] = Field(None, alias="SUPABASE_URL")
    supabase_anon_key: Optional[str] = Field(None, alias="SUPABASE_ANON_KEY")
    supabase_service_key: Optional[str] = Field(None, alias="SUPABASE_SERVICE_KEY")
    documents_url: Optional[str] = Field(None, alias="DOCUMENTS_URL")
    documents_key: Optional[str] = Field(None, alias="DOCUMENTS_KEY")
    remote_timeout_seconds: float = Field(10.0, alias="REMOTE_TIMEOUT_SECONDS")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(480, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    gmail_user: Optional[str] = Field(None, alias="GMAIL_USER")
    gmail_app_password: Optional[str] = Field(None, alias="GMAIL_APP_PASSWORD")
    smtp_host: str = Field("smtp.gmail.com", alias="SMTP_HOST")
    smtp_port: int = Field(587, alias="SMTP_PORT")
    mail_from_name: str = Field("Skultek Support", alias="MAIL_FROM_NAME")
    reset_code_ttl_minutes: int = Field(15, alias="RESET_CODE_TTL_MINUTES")

    sync_reconnect_cooldown_seconds: int = Field(30, alias="SYNC_RECONNECT_COOLDOWN_SECONDS")
    connection_probe_interval_seconds: int = Field(60, alias="CONNECTION_PROBE_INTERVAL_SECONDS")
    background_sync_retention_minutes: int = Field(24 * 60, alias="BACKGROUND_SYNC_RETENTION_MINUTES")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_format: str = Field("text", alias="LOG_FORMAT")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], alias="CORS_ORIGINS")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
