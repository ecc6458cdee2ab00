"""
Tests for Settings validation.

Run tests:
    pytest tests/core/test_config.py -v
"""

from pydantic import ValidationError
import pytest

from nextsub.core.config import Settings

DATABASE_URL = "sqlite+aiosqlite://"


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, DATABASE_URL=DATABASE_URL, **overrides)


class TestAdminEmail:
    def test_admin_email_normalized(self):
        settings = _settings(ADMIN_EMAIL="  Admin@NextSub.Example.com ")

        assert settings.admin_email == "admin@nextsub.example.com"

    @pytest.mark.parametrize(
        "email",
        ["not-an-email", "admin@nextsub.test", "admin@nextsub.local"],
    )
    def test_admin_email_must_be_deliverable(self, email):
        """An admin address the request schema would refuse is rejected at startup."""
        with pytest.raises(ValidationError):
            _settings(ADMIN_EMAIL=email)

    def test_default_admin_email_rejected_in_production(self):
        with pytest.raises(ValidationError, match="ADMIN_EMAIL"):
            _settings(
                ENVIRONMENT="production",
                JWT_SECRET_KEY="a-real-secret",
                BREVO_API_KEY="a-real-key",
            )


class TestAdminCodeSettings:
    def test_min_length_above_max_rejected(self):
        with pytest.raises(ValidationError):
            _settings(ADMIN_CODE_LENGTH_MIN=31, ADMIN_CODE_LENGTH_MAX=30)

    def test_hash_rounds_bounded(self):
        with pytest.raises(ValidationError):
            _settings(ADMIN_CODE_HASH_ROUNDS=3)
