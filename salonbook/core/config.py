from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "SalonBook"

    # Server
    PORT: int = 8000
    ENVIRONMENT: str = "development"

    # Supabase
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""

    # Local cache
    CACHE_DIR: str = ".salonbook_cache"

    # Business
    BUSINESS_CONFIG_PATH: str = "data/business_config.json"
    TIMEZONE: str = "Asia/Kolkata"

    # Status scheduler
    SWEEP_INTERVAL_SECONDS: int = 60

    # Writes
    ALLOW_LOCAL_ONLY_WRITES: bool = True
    CREATE_RETRY_ATTEMPTS: int = 1

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
