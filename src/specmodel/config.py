import logging
from functools import lru_cache

from pydantic_settings import BaseSettings

_config_logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Resolution settings loaded from SPECMODEL_* environment variables."""

    # Level for the "specmodel" logger hierarchy (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_level: str = "WARNING"

    # False: only loosening a REQUIRED binding is a violation.
    # True: any weaker binding over an inherited one is a violation.
    strict_binding_strength: bool = False

    model_config = {
        "env_prefix": "SPECMODEL_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance; reads the environment once."""
    settings = Settings()
    _config_logger.debug("Loaded settings: %s", settings)
    return settings
