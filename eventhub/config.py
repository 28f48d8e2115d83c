from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional, List


class Settings(BaseSettings):
    # App settings
    debug: bool = Field(default=False, env="APP_DEBUG")
    app_name: str = "EventHub"
    cors_allowed_origins: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]
    base_url: str = Field(default="http://localhost:8000", env="BASE_URL")

    # Database settings
    database_url: str = Field(
        default="sqlite+aiosqlite:///./eventhub.db",
        env="APP_DATABASE_URL",
    )

    # Sessions (web login, OAuth state)
    session_secret_key: str = Field(
        default="session-secret-change-in-production", env="SESSION_SECRET_KEY"
    )
    session_max_age_seconds: int = Field(
        default=14 * 24 * 60 * 60, env="SESSION_MAX_AGE_SECONDS")

    # Member API gate
    api_key: str = Field(default="dev-api-key", env="API_KEY")

    # JWT settings
    jwt_secret_key: str = Field(
        default="your-jwt-secret-key-change-in-production", env="JWT_SECRET_KEY"
    )
    jwt_algorithm: str = Field(default="HS256", env="JWT_ALGORITHM")
    # 1 week = 7 * 24 * 60 = 10,080 minutes
    jwt_expiry_minutes: int = Field(default=10080, env="JWT_EXPIRY_MINUTES")
    # Issued tokens are returned as "<scheme> <token>"
    token_scheme: str = Field(default="JWT", env="TOKEN_SCHEME")

    # Administration
    admin_member_id: Optional[int] = Field(default=None, env="ADMIN_MEMBER_ID")

    # OAuth providers
    facebook_client_id: Optional[str] = Field(default=None, env="FACEBOOK_CLIENT_ID")
    facebook_client_secret: Optional[str] = Field(
        default=None, env="FACEBOOK_CLIENT_SECRET")
    google_client_id: Optional[str] = Field(default=None, env="GOOGLE_CLIENT_ID")
    google_client_secret: Optional[str] = Field(
        default=None, env="GOOGLE_CLIENT_SECRET")
    foursquare_client_id: Optional[str] = Field(
        default=None, env="FOURSQUARE_CLIENT_ID")
    foursquare_client_secret: Optional[str] = Field(
        default=None, env="FOURSQUARE_CLIENT_SECRET")
    foursquare_redirect_url: Optional[str] = Field(
        default=None, env="FOURSQUARE_REDIRECT_URL")

    # Storage settings
    storage_backend: str = Field(
        default="local", env="STORAGE_BACKEND")  # "local" or "s3"
    upload_dir: str = Field(default="uploads", env="UPLOAD_DIR")
    s3_bucket: Optional[str] = Field(default=None, env="S3_BUCKET")
    s3_region: Optional[str] = Field(default=None, env="S3_REGION")
    s3_endpoint_url: Optional[str] = Field(default=None, env="S3_ENDPOINT_URL")
    s3_access_key_id: Optional[str] = Field(
        default=None, env="S3_ACCESS_KEY_ID")
    s3_secret_access_key: Optional[str] = Field(
        default=None, env="S3_SECRET_ACCESS_KEY")
    s3_public_base_url: Optional[str] = Field(
        default=None, env="S3_PUBLIC_BASE_URL")

    # Upload limits
    photo_max_mb: int = Field(default=2, env="PHOTO_MAX_MB")
    photo_default_width: int = Field(default=320, env="PHOTO_DEFAULT_WIDTH")
    photo_default_height: int = Field(default=240, env="PHOTO_DEFAULT_HEIGHT")
    photo_max_dimension: int = Field(default=2048, env="PHOTO_MAX_DIMENSION")
    member_photo_limit: int = Field(default=8, env="MEMBER_PHOTO_LIMIT")
    event_photo_limit: int = Field(default=8, env="EVENT_PHOTO_LIMIT")

    # Password reset mail
    password_reset_expiry_minutes: int = Field(
        default=60, env="PASSWORD_RESET_EXPIRY_MINUTES")
    mailgun_api_key: Optional[str] = Field(default=None, env="MAILGUN_API_KEY")
    mailgun_domain: Optional[str] = Field(default=None, env="MAILGUN_DOMAIN")
    mail_from: str = Field(default="noreply@eventhub.local", env="MAIL_FROM")

    # Metrics
    metrics_token: Optional[str] = Field(default=None, env="METRICS_TOKEN")

    # Timeouts
    http_timeout_seconds: int = Field(default=30, env="HTTP_TIMEOUT_SECONDS")

    # Logging
    log_sample_rate: float = Field(default=0.1, env="LOG_SAMPLE_RATE")

    class Config:
        env_file = ".env"
        env_prefix = "APP_"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
