# crankslist/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, AliasChoices


class Settings(BaseSettings):
    # read .env, ignore unknown keys
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    # Database
    DATABASE_URL: str = "sqlite:///./crankslist.db"
    SEED_CATEGORIES: bool = True

    # Admins (in addition to the admins table), comma separated
    ADMIN_EMAILS: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ADMIN_EMAILS", "admin_emails"),
    )

    # Security and cookies
    SECRET_KEY: str = "dev-secret"
    COOKIE_NAME: str = "access_token"
    COOKIE_SECURE: bool = False
    COOKIE_SAMESITE: str = "lax"

    # JWT
    JWT_TTL_SEC: int = 60 * 60 * 24 * 7
    JWT_ALG: str = "HS256"

    # CORS
    ALLOWED_ORIGINS: str = "*"

    # Listings / profiles
    DEFAULT_CURRENCY: str = "USD"
    ALLOWED_CURRENCIES: str = "USD,CAD"
    MAX_LISTING_IMAGES: int = 5
    MIN_PASSWORD_LENGTH: int = 6
    BIO_MAX_LENGTH: int = 500

    # Reverse geocoding
    GEOCODE_URL: str = "https://api.bigdatacloud.net/data/reverse-geocode-client"
    GEOCODE_TIMEOUT_SEC: float = 10

    # Live inbox stream
    SSE_KEEPALIVE_SEC: float = 15

    LOG_LEVEL: str = "INFO"

    @property
    def admin_emails(self) -> set[str]:
        if not self.ADMIN_EMAILS:
            return set()
        return {p.strip().lower() for p in self.ADMIN_EMAILS.split(",") if p.strip()}

    @property
    def allowed_currencies(self) -> list[str]:
        return [c.strip().upper() for c in self.ALLOWED_CURRENCIES.split(",") if c.strip()]


settings = Settings()
