"""Application configuration."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings with env var overrides."""

    # Detection
    difficulty: str = "expert"
    pattern_cache_size: int = 1000
    share_pattern_cache: bool = False  # API: carry one cache across requests

    # Logging
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = {"env_prefix": "FILLSCAN_"}


settings = Settings()
