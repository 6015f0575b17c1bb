from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL_INTENT: str = "gpt-4o-mini"
    OPENAI_TEMPERATURE_INTENT: float = 0.0
    RESOLVER_TIMEOUT_SECONDS: float = 15.0

    META_VERIFY_TOKEN: str = ""
    META_APP_SECRET: str | None = None
    META_GRAPH_API_VERSION: str = "v18.0"
    META_TOKEN: str | None = None
    META_PHONE_ID: str | None = None
    META_SEND_TIMEOUT_SECONDS: float = 10.0

    GOOGLE_CALENDAR_ID: str = "primary"
    GOOGLE_CLIENT_ID: str | None = None
    GOOGLE_CLIENT_SECRET: str | None = None
    GOOGLE_REFRESH_TOKEN: str | None = None
    CALENDAR_TIMEOUT_SECONDS: float = 10.0

    BUSINESS_NAME: str = "la barbería"
    BUSINESS_TIMEZONE: str = "America/Bogota"
    REPLY_LANGUAGE: str = "es"
    APPOINTMENT_DURATION_MINUTES: int = 60
    HISTORY_WINDOW: int = 8
    CHECK_LIMIT: int = 3

    REQUIRE_EMAIL: bool = False
    ROLLBACK_ORPHANED_EVENTS: bool = False
    DEBUG_ERROR_REPLIES: bool = False

    STORE_PROVIDER: str = "json"
    STORE_DATA_DIR: str = "./data/customers"

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    AUTO_REPLY_ENABLED: bool = False


settings = Settings()
