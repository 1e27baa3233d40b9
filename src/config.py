"""Application configuration loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is loaded from environment variables (or .env file)."""

    # --- App ---
    app_name: str = "Device Monitor"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"  # development | staging | production

    # --- Database ---
    database_url: str = "postgresql://localhost:5432/device_monitor"
    database_pool_min_size: int = 2
    database_pool_max_size: int = 10

    # --- IoT platform ---
    iot_api_base_url: str = "https://iot.know-act.com"
    iot_app_key: str = ""
    iot_app_secret: str = ""
    iot_device_code: str = ""  # default device when a request names none
    iot_token_ttl_hours: int = 24  # the platform does not report a lifetime
    iot_request_timeout_seconds: float = 30.0
    iot_platform_timezone: str = "UTC"  # timezone of startTime/endTime in queries
    iot_verify_ssl: bool = True

    # --- Outbound proxy (optional) ---
    http_proxy: str = ""
    https_proxy: str = ""

    # --- CORS ---
    cors_origins: list[str] = ["http://localhost:5173"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def outbound_proxy(self) -> str | None:
        return self.https_proxy or self.http_proxy or None


@lru_cache
def get_settings() -> Settings:
    return Settings()
