"""Kurator configuration via pydantic-settings."""

import warnings
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_DEFAULTS = {
    "secret_key": "insecure-dev-key-change-me",
    "encryption_key": "insecure-encryption-key-change-me",
    "admin_password": "insecure-admin-password-change-me",
}


class KuratorSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="KURATOR_")

    environment: str = "development"
    secret_key: str = "insecure-dev-key-change-me"

    # Field encryption. Legacy mode writes the fixed-IV AES-CBC format
    # so data stays readable by older deployments.
    encryption_key: str = "insecure-encryption-key-change-me"
    encryption_legacy_mode: bool = False

    # Database
    db_url: str = "sqlite+aiosqlite:///./data/kurator.db"

    # API
    api_title: str = "Kurator"
    api_version: str = "0.1.0"
    host: str = "0.0.0.0"
    port: int = 8080
    api_prefix: str = ""
    cors_origins: list[str] = ["http://localhost:3000"]
    token_max_age: int = 8 * 3600  # seconds
    log_level: str = "INFO"

    # Bootstrap administrator created by `kurator init-db`
    admin_login: str = "admin"
    admin_password: str = "insecure-admin-password-change-me"

    def validate_for_production(self) -> None:
        """Raise if insecure defaults are used in non-development environments."""
        insecure_fields = [
            field
            for field, default in _INSECURE_DEFAULTS.items()
            if getattr(self, field) == default
        ]

        if self.environment != "development" and insecure_fields:
            env_vars = ", ".join(f"KURATOR_{f.upper()}" for f in insecure_fields)
            raise RuntimeError(
                f"Insecure default values detected in '{self.environment}' environment. "
                f"Set these environment variables to secure values: {env_vars}. "
                "Generate secrets with: python -c \"import secrets; print(secrets.token_urlsafe(48))\""
            )

        if insecure_fields:
            warnings.warn(
                "Using insecure default secrets, set KURATOR_SECRET_KEY, "
                "KURATOR_ENCRYPTION_KEY, KURATOR_ADMIN_PASSWORD for production",
                UserWarning,
                stacklevel=2,
            )

        if self.encryption_legacy_mode:
            warnings.warn(
                "KURATOR_ENCRYPTION_LEGACY_MODE is enabled: new field values are "
                "encrypted with a fixed IV (legacy compatibility only)",
                UserWarning,
                stacklevel=2,
            )


@lru_cache
def get_settings() -> KuratorSettings:
    settings = KuratorSettings()
    settings.validate_for_production()
    return settings
