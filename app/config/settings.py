from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Used by maintenance scripts; bypasses RLS

    # Recipe catalog (Tasty on RapidAPI)
    recipe_api_url: str = "https://tasty.p.rapidapi.com/recipes/list"
    recipe_api_key: Optional[str] = None
    recipe_api_host: str = "tasty.p.rapidapi.com"
    recipe_api_timeout_sec: float = 8.0

    # Decision workflow
    meal_request_timeout_sec: float = 10.0
    group_operation_timeout_sec: float = 8.0
    profile_lookup_timeout_sec: float = 3.0
    auto_meal_option_count: int = 12
    preload_batch_size: int = 25
    preload_max_workers: int = 8

    # App
    app_name: str = "dinner-decisions-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:8081,http://127.0.0.1:3000,http://127.0.0.1:8081"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
