from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    BUSINESS_NAME: str = "FeelME Town"
    BUSINESS_TIMEZONE: str = "Asia/Kolkata"
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    BACKEND_BASE_URL: str = "http://localhost:3000"
    BACKEND_TIMEOUT_SECONDS: float = 10.0

    DEFAULT_SLOT_BOOKING_FEE: float = 1000
    DEFAULT_EXTRA_GUEST_FEE: float = 400
    DEFAULT_CONVENIENCE_FEE: float = 50
    DEFAULT_DECORATION_FEES: float = 0
    DEFAULT_THEATER_PRICE: float = 1399.0
    FALLBACK_CAPACITY_MIN: int = 1
    FALLBACK_CAPACITY_MAX: int = 10

    SLOT_POLL_INTERVAL_SECONDS: float = 5.0
    ITEM_TOGGLE_DEBOUNCE_SECONDS: float = 0.3
    BOOKING_CUTOFF_MINUTES: int = 60
    HANDOFF_TTL_SECONDS: int = 300
    CATALOG_PRELOAD_TTL_SECONDS: int = 300
    NOTICE_DURATION_MS: int = 1000

    PAYMENT_GATEWAY_KEY: str | None = None
    PAYMENT_CURRENCY: str = "INR"
    PAYMENT_GATEWAY_TIMEOUT_SECONDS: float = 900.0
    CHECKOUT_RESPONSE_WAIT_SECONDS: float = 2.0


settings = Settings()
