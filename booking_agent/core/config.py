from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    AUTO_REPLY_ENABLED: bool = True
    DEBUG_ENDPOINTS_ENABLED: bool = False
    DEFAULT_LANGUAGE: str = "en"
    LANGUAGE_PROMPT_ENABLED: bool = True
    BUSINESS_TIMEZONE: str = "Asia/Kolkata"

    META_VERIFY_TOKEN: str = ""
    META_APP_SECRET: str | None = None
    META_GRAPH_API_VERSION: str = "v17.0"
    WHATSAPP_TOKEN: str | None = None
    WHATSAPP_PHONE_NUMBER_ID: str | None = None

    ZOHO_CLIENT_ID: str | None = None
    ZOHO_CLIENT_SECRET: str | None = None
    ZOHO_REFRESH_TOKEN: str | None = None
    ZOHO_ACCOUNTS_URL: str = "https://accounts.zoho.in"
    ZOHO_BOOKINGS_BASE_URL: str = "https://www.zohoapis.in/bookings/v1/json"
    ZOHO_WORKSPACE_ID: str | None = None
    ZOHO_DESK_BASE_URL: str = "https://desk.zoho.in/api/v1"
    ZOHO_DESK_ORG_ID: str | None = None
    ZOHO_DESK_DEPARTMENT_ID: str | None = None

    RAZORPAY_KEY_ID: str | None = None
    RAZORPAY_KEY_SECRET: str | None = None
    RAZORPAY_BASE_URL: str = "https://api.razorpay.com/v1"
    PAYMENT_CURRENCY: str = "INR"
    PAYMENT_CALLBACK_URL: str | None = None

    SESSION_TTL_SECONDS: int = 15 * 60
    TOKEN_REFRESH_MARGIN_SECONDS: int = 50 * 60
    API_MAX_ATTEMPTS: int = 3
    API_RETRY_BASE_DELAY_SECONDS: float = 1.0
    API_TIMEOUT_SECONDS: float = 10.0
    LIST_PAGE_SIZE: int = 9
    SLOT_SCAN_MAX_DAYS: int = 30
    MAX_INPUT_ATTEMPTS: int = 3
    MONTHS_AHEAD: int = 3


settings = Settings()
