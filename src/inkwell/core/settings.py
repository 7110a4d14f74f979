"""Application settings and configuration.

This module defines all configuration options for the Inkwell application.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Inkwell", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )
    max_login_attempts: int = Field(default=5, alias="MAX_LOGIN_ATTEMPTS")
    lockout_minutes: int = Field(default=120, alias="LOCKOUT_MINUTES")

    # Password reset
    password_reset_max_attempts: int = Field(default=3, alias="PASSWORD_RESET_MAX_ATTEMPTS")
    password_reset_window_minutes: int = Field(
        default=120,
        alias="PASSWORD_RESET_WINDOW_MINUTES",
    )
    reset_token_expire_minutes: int = Field(default=10, alias="RESET_TOKEN_EXPIRE_MINUTES")
    reset_otp_expire_minutes: int = Field(default=5, alias="RESET_OTP_EXPIRE_MINUTES")
    password_reset_url: str = Field(
        default="http://localhost:3000/reset-password",
        alias="PASSWORD_RESET_URL",
    )

    # Federated login: assertions are HS256 JWTs signed by the login gateway
    federation_secret: str | None = Field(default=None, alias="FEDERATION_SECRET")

    # Database configuration
    database_url: str = Field(default="sqlite:///./inkwell.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Reserved identity that takes over posts removed by their authors
    anonymous_email: str = Field(default="anonymous@system.local", alias="ANONYMOUS_EMAIL")
    anonymous_name: str = Field(default="Anonymous", alias="ANONYMOUS_NAME")

    # Comment moderation and pagination
    comment_hide_threshold: int = Field(default=3, alias="COMMENT_HIDE_THRESHOLD")
    comments_page_size: int = Field(default=10, alias="COMMENTS_PAGE_SIZE")
    comments_page_max: int = Field(default=50, alias="COMMENTS_PAGE_MAX")
    posts_page_size: int = Field(default=10, alias="POSTS_PAGE_SIZE")
    posts_page_max: int = Field(default=50, alias="POSTS_PAGE_MAX")

    # Third-party media host (Cloudinary-compatible API)
    media_enabled: bool = Field(default=False, alias="MEDIA_ENABLED")
    media_base_url: str = Field(
        default="https://api.cloudinary.com/v1_1",
        alias="MEDIA_BASE_URL",
    )
    media_cloud_name: str | None = Field(default=None, alias="MEDIA_CLOUD_NAME")
    media_api_key: str | None = Field(default=None, alias="MEDIA_API_KEY")
    media_api_secret: str | None = Field(default=None, alias="MEDIA_API_SECRET")
    media_folder: str = Field(default="post_images", alias="MEDIA_FOLDER")
    media_max_upload_bytes: int = Field(
        default=5 * 1024 * 1024,
        alias="MEDIA_MAX_UPLOAD_BYTES",
    )
    media_http_timeout_seconds: float = Field(
        default=15.0,
        alias="MEDIA_HTTP_TIMEOUT_SECONDS",
    )

    # Unused image sweep
    image_sweep_interval_seconds: float = Field(
        default=3 * 60 * 60,
        alias="IMAGE_SWEEP_INTERVAL_SECONDS",
    )
    image_sweep_min_age_seconds: int = Field(
        default=3 * 60 * 60,
        alias="IMAGE_SWEEP_MIN_AGE_SECONDS",
    )
    image_sweep_batch_size: int = Field(default=500, alias="IMAGE_SWEEP_BATCH_SIZE")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def media_configured(self) -> bool:
        """Return True when the media host is enabled and has credentials.

        Returns:
            Whether uploads and the unused image sweep can talk to the media host
        """
        return bool(
            self.media_enabled
            and self.media_cloud_name
            and self.media_api_key
            and self.media_api_secret
        )


settings = Settings()  # type: ignore[call-arg]
