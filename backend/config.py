"""Application configuration using pydantic-settings."""

from typing import Any

from pydantic import field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from services.credential_manager import CREDENTIAL_KEYS, get_credential


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class KeychainSettingsSource(PydanticBaseSettingsSource):
    """Load credential fields from the OS keychain via ``keyring``.

    Only fields whose uppercase name appears in
    :data:`~services.credential_manager.CREDENTIAL_KEYS` are looked up.
    All other fields return ``None`` so the next source in the chain
    handles them.
    """

    def get_field_value(
        self, field: FieldInfo, field_name: str
    ) -> tuple[Any, str, bool]:
        env_name = field_name.upper()
        if env_name not in CREDENTIAL_KEYS:
            return None, field_name, False
        value = get_credential(env_name)
        return value, field_name, False

    def __call__(self) -> dict[str, Any]:
        d: dict[str, Any] = {}
        for field_name, field_info in self.settings_cls.model_fields.items():
            value, key, is_complex = self.get_field_value(field_info, field_name)
            if value is not None:
                d[key] = value
        return d


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            KeychainSettingsSource(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    # Plaid credentials
    PLAID_CLIENT_ID: str = ""
    PLAID_SECRET: str = ""
    PLAID_ENVIRONMENT: str = "sandbox"

    # Plaid Link options
    PLAID_CLIENT_NAME: str = "Personal Finance Dashboard"
    PLAID_PRODUCTS: str = "transactions,investments,auth"
    PLAID_COUNTRY_CODES: str = "US,ES"
    PLAID_LANGUAGE: str = "en"

    # Days of history requested on an Item's first transactions sync.
    # Unset means the aggregator default applies.
    PLAID_DAYS_REQUESTED: int | None = None

    # Synchronization pipeline
    SYNC_PAGE_SIZE: int = 100
    SYNC_MAX_TRANSACTIONS_PER_ITEM: int = 500

    # Cache store
    CACHE_BACKEND: str = "redis"
    REDIS_URL: str = "redis://localhost:6379/0"
    SNAPSHOT_TTL_SECONDS: int = 3600

    # Identity provider token verification
    AUTH_JWT_KEY: str = ""
    AUTH_JWT_ALGORITHMS: str = "RS256"
    AUTH_JWT_ISSUER: str = ""
    AUTH_JWT_AUDIENCE: str = ""

    # App settings
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "http://localhost:3000"

    @field_validator("AUTH_JWT_KEY", mode="before")
    @classmethod
    def normalize_pem_newlines(cls, v: str) -> str:
        """Convert literal ``\\n`` sequences to real newlines in PEM keys.

        When set via shell ``export``, ``\\n`` stays as a literal two-char
        sequence. python-dotenv already converts ``\\n`` inside double-quoted
        ``.env`` values, so this handles the shell-export case.
        """
        if isinstance(v, str) and "\\n" in v:
            v = v.replace("\\n", "\n")
        return v

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize LOG_LEVEL to an uppercase Python logging level."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {valid}, got {v!r}")
        return v.upper()

    @field_validator("CACHE_BACKEND", mode="before")
    @classmethod
    def validate_cache_backend(cls, v: str) -> str:
        """Accept only the supported cache backends (case-insensitive)."""
        valid = {"redis", "memory"}
        if v.lower() not in valid:
            raise ValueError(f"CACHE_BACKEND must be one of {valid}, got {v!r}")
        return v.lower()

    @property
    def plaid_products(self) -> list[str]:
        return _split_csv(self.PLAID_PRODUCTS)

    @property
    def plaid_country_codes(self) -> list[str]:
        return [code.upper() for code in _split_csv(self.PLAID_COUNTRY_CODES)]

    @property
    def auth_jwt_algorithms(self) -> list[str]:
        return _split_csv(self.AUTH_JWT_ALGORITHMS)

    @property
    def cors_origins(self) -> list[str]:
        return _split_csv(self.CORS_ORIGINS)


settings = Settings()
