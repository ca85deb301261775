"""Tests for application configuration.

Settings for the database, session tokens, host classification and
production security validation.
"""

from datetime import timedelta

import pytest
from pydantic import SecretStr, ValidationError

from fundroom.core.config import _INSECURE_DEFAULT_PASSWORD, Settings

# Reusable test constants
_SECURE_DB_PASSWORD = "my-secure-production-password-123!"
_TEST_AUTH_SECRET = "a" * 64
_PRODUCTION = "production"


class TestProductionSecurityValidation:
    """Tests for production security requirements."""

    def test_allows_default_password_in_development(self):
        """Default password is allowed in development environment."""
        s = Settings(
            environment="development",
            database_password=_INSECURE_DEFAULT_PASSWORD,
        )
        assert s.database_password == _INSECURE_DEFAULT_PASSWORD

    def test_rejects_default_password_in_production(self):
        """Default password is rejected in production environment."""
        with pytest.raises(ValidationError) as exc_info:
            Settings(
                environment=_PRODUCTION,
                database_password=_INSECURE_DEFAULT_PASSWORD,
                auth_secret=SecretStr(_TEST_AUTH_SECRET),
            )
        assert "Cannot use default database password in production" in str(
            exc_info.value
        )

    def test_rejects_short_auth_secret_in_production(self):
        """AUTH_SECRET must be at least 32 characters in production."""
        with pytest.raises(ValidationError) as exc_info:
            Settings(
                environment=_PRODUCTION,
                database_password=_SECURE_DB_PASSWORD,
                auth_secret=SecretStr("short"),
            )
        assert "AUTH_SECRET must be at least 32" in str(exc_info.value)

    def test_accepts_valid_production_settings(self):
        s = Settings(
            environment=_PRODUCTION,
            database_password=_SECURE_DB_PASSWORD,
            auth_secret=SecretStr(_TEST_AUTH_SECRET),
        )
        assert s.is_production is True
        assert s.secure_cookies is True

    def test_rejects_wildcard_cors(self):
        with pytest.raises(ValidationError):
            Settings(allowed_origins=["*"])

    def test_rejects_samesite_none_without_secure(self):
        """Browsers drop SameSite=None cookies that are not Secure."""
        with pytest.raises(ValidationError):
            Settings(auth_cookie_samesite="none", app_url="http://localhost:3000")

    def test_allows_samesite_none_with_https(self):
        s = Settings(auth_cookie_samesite="none", app_url="https://app.fundroom.ai")
        assert s.secure_cookies is True

    @pytest.mark.parametrize("domain", ["https://fundroom.ai", "FundRoom.ai", "fundroom", "fundroom.ai/"])
    def test_rejects_malformed_platform_domain(self, domain):
        with pytest.raises(ValidationError):
            Settings(platform_domain=domain)


class TestSessionDefaults:
    """Tests for session cookie and token defaults."""

    def test_cookie_name_does_not_depend_on_tls(self):
        """One cookie name whether or not cookies are Secure."""
        plain = Settings(app_url="http://localhost:3000")
        secure = Settings(app_url="https://app.fundroom.ai")
        assert plain.session_cookie_name == secure.session_cookie_name
        assert plain.session_cookie_name == "fundroom.session-token"
        assert plain.secure_cookies is False
        assert secure.secure_cookies is True

    def test_lifetimes(self):
        s = Settings()
        assert s.session_max_age == timedelta(days=30)
        assert s.session_update_age == timedelta(hours=24)


class TestDerivedValues:
    """Tests for computed settings."""

    def test_admin_email_set_normalised(self):
        s = Settings(admin_emails=" Admin@Example.com, ,ops@fundroom.ai ")
        assert s.admin_email_set == frozenset({"admin@example.com", "ops@fundroom.ai"})

    def test_platform_url(self):
        assert Settings(platform_domain="fundroom.ai").platform_url == "https://fundroom.ai"

    def test_database_url_uses_asyncpg(self):
        s = Settings(database_host="db", database_name="fr")
        assert s.database_url.startswith("postgresql+asyncpg://")
        assert s.database_url.endswith("@db:5432/fr")
