"""TaskFlow settings, read from the environment and an optional .env file."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed settings; unknown variables are ignored."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version
    VERSION: str = "0.3.0"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str

    # Session Token (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 24 * 7

    # Password hashing cost (bcrypt log2 rounds)
    BCRYPT_ROUNDS: int = 12

    # CORS
    CORS_ORIGINS: str = "http://localhost:5173"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate limiting storage; in-memory when empty or unreachable
    REDIS_URL: str = ""

    # Rate Limiting (requests per minute)
    RATE_LIMIT_AUTH: int = 5  # Login / register attempts
    RATE_LIMIT_WEBHOOK: int = 100  # Inbound WhatsApp webhooks
    RATE_LIMIT_API: int = 60  # General API

    # WhatsApp bridge sidecar (runs the WhatsApp Web client)
    WHATSAPP_BRIDGE_URL: str = ""
    WHATSAPP_BRIDGE_TOKEN: str = ""  # Bearer token for calls to the bridge
    WHATSAPP_BRIDGE_SECRET: str = ""  # HMAC secret for events from the bridge
    WHATSAPP_EVENTS_WEBHOOK_URL: str = "http://localhost:8000/webhooks/whatsapp/events"
    WHATSAPP_CONNECT_TIMEOUT_SECONDS: float = 30.0
    WHATSAPP_REQUEST_TIMEOUT_SECONDS: float = 10.0

    @property
    def cors_origins_list(self) -> list[str]:
        """Comma-separated CORS_ORIGINS as a list, blanks dropped."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Secrets accepted when decoding: the current one, then the previous one."""
        secrets = [self.JWT_SECRET]
        if self.JWT_SECRET_PREVIOUS:
            secrets.append(self.JWT_SECRET_PREVIOUS)
        return secrets

    @property
    def cookie_secure(self) -> bool:
        """Cookies are marked Secure everywhere except dev."""
        return self.ENV != "dev"


settings = Settings()
