from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = "sqlite:///./toolcrib.db"
    # seconds a SQLite writer waits for the lock before failing
    sqlite_busy_timeout: float = 15.0

    log_level: str = "INFO"
    log_json: bool = True

    # PIN pad codes: 4 digits -> 1000..9999
    operario_code_length: int = 4
    code_generation_attempts: int = 50

    recent_transactions_limit: int = 20

    default_location: str = "Almacén Central"
    default_minimum_stock: int = 1
    default_category_color: str = "#E2372B"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
