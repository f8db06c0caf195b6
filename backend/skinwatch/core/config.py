import os


class Settings:
    DATABASE_URL = os.getenv(
        "DATABASE_URL",
        "postgresql+psycopg2://skinwatch:secret@db:5432/skinwatch",
    )
    SQL_ECHO = os.getenv("SQL_ECHO", "0") == "1"

    # shared secret for the scheduled sweep trigger
    CRON_SECRET = os.getenv("CRON_SECRET", "")

    TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN", "")
    TELEGRAM_API_URL = os.getenv("TELEGRAM_API_URL", "https://api.telegram.org")

    STEAM_MARKET_URL = os.getenv(
        "STEAM_MARKET_URL",
        "https://steamcommunity.com/market/priceoverview/",
    )
    QUOTE_TIMEOUT_SECONDS = float(os.getenv("QUOTE_TIMEOUT_SECONDS", "5"))
    QUOTE_RETRIES = int(os.getenv("QUOTE_RETRIES", "3"))
    DEFAULT_APP_ID = int(os.getenv("DEFAULT_APP_ID", "730"))
    DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "USD")

    CACHE_TTL_MINUTES = int(os.getenv("CACHE_TTL_MINUTES", "15"))
    SESSION_IDLE_MINUTES = int(os.getenv("SESSION_IDLE_MINUTES", "30"))
    SWEEP_DELAY_SECONDS = float(os.getenv("SWEEP_DELAY_SECONDS", "1.0"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT = os.getenv("LOG_FORMAT", "json")  # json | console


settings = Settings()
