"""Application configuration loaded from environment variables.

Settings for the database, session tokens, host classification, magic-link
e-mail delivery and rate limiting. Uses pydantic-settings for validation
and .env file support.
"""

import re
from datetime import timedelta
from typing import Literal

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_production_security() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "fundroom_dev_password"  # nosec B105

# Minimum length for AUTH_SECRET in production (256 bits = 32 bytes)
_MIN_AUTH_SECRET_LENGTH = 32

_DOMAIN_RE = re.compile(r"^[a-z0-9]([a-z0-9\-]*[a-z0-9])?(\.[a-z0-9]([a-z0-9\-]*[a-z0-9])?)+$")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "fundroom"
    database_user: str = "fundroom_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD

    # CORS (Security)
    # CRITICAL: Never set to ["*"] when allow_credentials=True
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Canonical application URL (magic links, secure-cookie decision, host
    # classification). Empty means "derive from request headers".
    app_url: str = ""
    # Base URL for visitor verification e-mails; falls back to app_url
    verification_email_base_url: str = ""

    # Platform host classification
    platform_domain: str = "fundroom.ai"
    # Hosts that are never tenant domains, in addition to the built-in list
    infrastructure_host_suffixes: list[str] = []
    # Hosts whose requests are routed to the incoming-webhook handler
    webhook_hosts: list[str] = []

    # Session tokens
    auth_secret: SecretStr = SecretStr("")
    auth_issuer: str = "fundroom"
    auth_audience: str = "fundroom"
    # Issuance and decoding must agree on this name regardless of TLS
    session_cookie_name: str = "fundroom.session-token"
    session_max_age_seconds: int = 30 * 24 * 60 * 60
    session_update_age_seconds: int = 24 * 60 * 60
    auth_cookie_samesite: Literal["lax", "strict", "none"] = "lax"

    # Admin access: comma-separated static allow-list, unioned with the
    # database team-role lookup
    admin_emails: str = ""

    # Email (Resend)
    email_from: str = "FundRoom <dataroom@fundroom.ai>"
    resend_api_key: SecretStr = SecretStr("")

    # Rate Limiting (Security)
    rate_limit_enabled: bool = True

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def secure_cookies(self) -> bool:
        """Secure flag: production, or an HTTPS canonical URL."""
        return self.is_production or self.app_url.startswith("https://")

    @property
    def session_max_age(self) -> timedelta:
        return timedelta(seconds=self.session_max_age_seconds)

    @property
    def session_update_age(self) -> timedelta:
        return timedelta(seconds=self.session_update_age_seconds)

    @property
    def platform_url(self) -> str:
        """Marketing site for unknown tenant roots."""
        return f"https://{self.platform_domain}"

    @property
    def admin_email_set(self) -> frozenset[str]:
        return frozenset(
            e.strip().lower() for e in self.admin_emails.split(",") if e.strip()
        )

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate production security requirements.

        Checks:
        - Platform domain must be a bare lower-case hostname (all environments)
        - SameSite=None requires a secure deployment (all environments)
        - CORS must not use wildcard origin (incompatible with credentials)
        - Database password must not be the default in production
        - AUTH_SECRET must be set and >= 32 chars in production
        """
        if not _DOMAIN_RE.match(self.platform_domain):
            msg = (
                "PLATFORM_DOMAIN must be a bare lower-case hostname "
                f"(e.g. fundroom.ai). Got: {self.platform_domain!r}"
            )
            raise ValueError(msg)

        if self.auth_cookie_samesite == "none" and not self.secure_cookies:
            msg = (
                "AUTH_COOKIE_SAMESITE=none requires ENVIRONMENT=production or an "
                "https APP_URL. Browsers reject SameSite=None cookies without "
                "the Secure flag."
            )
            raise ValueError(msg)

        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "This application uses credentials (cookies) which are "
                "incompatible with wildcard CORS origins."
            )
            raise ValueError(msg)

        if self.is_production:
            if self.database_password == _INSECURE_DEFAULT_PASSWORD:
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            secret_value = self.auth_secret.get_secret_value()
            if len(secret_value) < _MIN_AUTH_SECRET_LENGTH:
                msg = (
                    f"AUTH_SECRET must be at least {_MIN_AUTH_SECRET_LENGTH} "
                    "characters in production. Generate with: python -c "
                    '"import secrets; print(secrets.token_hex(32))"'
                )
                raise ValueError(msg)

        return self


settings = Settings()
