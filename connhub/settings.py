from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=True)

    ENVIRONMENT: str = "development"

    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_FILE_PATH: str = "logs/logging_errors.log"

    # Loki settings
    LOKI_ENABLED: bool = False
    LOKI_URL: str = "http://loki:3100"
    LOKI_VERSION: str = "1"

    # Registry behavior
    REGISTRY_CLEAR_ON_DISCONNECT_ALL: bool = True

    # WebSocket settings
    WS_KEY_QUERY_PARAM: str = "key"

    # Paths left out of uvicorn access logs
    LOG_EXCLUDED_PATHS: list[str] = ["/metrics", "/health"]


app_settings = Settings()
