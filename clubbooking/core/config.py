from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    BUSINESS_NAME: str = "Your Club"
    PUBLIC_BASE_URL: str = "http://localhost:3000"

    STORE_PROVIDER: str = "memory"  # "memory", "json"
    DATA_DIR: str = "./data"

    STRIPE_SECRET_KEY: str | None = None
    STRIPE_WEBHOOK_SECRET: str | None = None
    STRIPE_WEBHOOK_TOLERANCE_SECONDS: int = 300
    CURRENCY: str = "gbp"

    RESEND_API_KEY: str | None = None
    RESEND_BASE_URL: str = "https://api.resend.com"
    EMAIL_FROM: str = "Your Club <onboarding@resend.dev>"
    NOTIFICATIONS_ENABLED: bool = True

    AUTH_TOKEN_SECRET: str | None = None

    HTTP_TIMEOUT_SECONDS: float = 10.0

    @property
    def is_dev(self) -> bool:
        return self.ENV.lower() in {"dev", "local", "test"}


settings = Settings()
