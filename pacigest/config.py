"""
Application configuration settings loaded from environment variables.
Uses pydantic_settings for validation and type conversion.
"""
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings class with environment variable validation.

    Attributes:
        database_url: SQLAlchemy connection string
        jwt_secret: Secret key for JWT token signing
        jwt_algorithm: Algorithm used for JWT encoding (typically HS256)
        access_token_expire_minutes: Session token lifetime in minutes

        # Email provider (Resend)
        resend_api_key: API key for the Resend HTTP API; emails are only logged when unset
        resend_api_url: Resend endpoint for sending a single email
        mail_from: Sender address used on every outgoing email

        # Frontend settings
        frontend_url: URL of the frontend application (CORS origin, links in emails)

        # File storage (Bunny CDN)
        bunny_storage_zone / bunny_api_key / bunny_cdn_url: CDN credentials and base URL

        # Auth lifecycle
        verification_code_ttl_minutes: Lifetime of the 6-digit email code
        reset_token_ttl_minutes: Lifetime of a password reset token
        trial_days: Length of the free trial granted at registration
        trial_warning_days: How many days before trial end the reminder goes out

        # Reminder scheduler
        scheduler_enabled: Start the reminder loop with the application
        scheduler_interval_seconds: Time between reminder ticks
        reminder_window_minutes: Half-width of the window around each reminder lead time

        # Rate limiting
        rate_limit_enabled: Apply the per-route limiters
        login_rate_limit / register_rate_limit / email_rate_limit / password_reset_rate_limit

        billing_admin_emails: Accounts allowed to approve or reject payments
    """
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Database settings
    database_url: str = "sqlite:///./pacigest.db"

    # JWT settings
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7

    # Email settings
    resend_api_key: Optional[str] = None
    resend_api_url: str = "https://api.resend.com/emails"
    mail_from: str = "PaciGest Plus <no-reply@pacigest.app>"
    mail_timeout_seconds: float = 10.0

    # Frontend settings
    frontend_url: str = "http://localhost:3000"

    # Bunny CDN settings
    bunny_storage_zone: Optional[str] = None
    bunny_api_key: Optional[str] = None
    bunny_cdn_url: Optional[str] = None

    # Auth lifecycle
    verification_code_ttl_minutes: int = 15
    reset_token_ttl_minutes: int = 30
    trial_days: int = 30
    trial_warning_days: int = 3

    # Reminder scheduler
    scheduler_enabled: bool = True
    scheduler_interval_seconds: int = 15 * 60
    reminder_window_minutes: int = 30

    # Rate limiting (requests per window, window in seconds)
    rate_limit_enabled: bool = True
    login_rate_limit: int = 5
    login_rate_window_seconds: int = 15 * 60
    register_rate_limit: int = 3
    register_rate_window_seconds: int = 60 * 60
    email_rate_limit: int = 3
    email_rate_window_seconds: int = 60 * 60
    password_reset_rate_limit: int = 3
    password_reset_rate_window_seconds: int = 60 * 60

    billing_admin_emails: List[str] = []


# Create settings instance
settings = Settings()
