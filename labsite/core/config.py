from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "labsite-content"
    environment: str = "dev"
    log_level: str = "INFO"
    sheets_id: str = ""
    sheets_base_url: str = "https://docs.google.com/spreadsheets/d"
    revalidate_seconds: int = 300
    client_cache_ttl_ms: int = 300000
    client_cache_dir: str | None = None
    request_timeout_seconds: float = 10.0
    news_similar_limit: int = 4
    otel_enabled: bool = True
    otel_service_name: str = "labsite-content"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="LABSITE_", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
