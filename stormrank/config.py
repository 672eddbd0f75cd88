# stormrank/config.py

import os
from pydantic_settings import BaseSettings


def _default_cache_dir() -> str:
    """Cache downloads under the user's home so repeated runs skip the network."""
    return os.path.join(os.path.expanduser("~"), ".cache", "stormrank")


class Settings(BaseSettings):
    """
    StormRank configuration.

    Every field can be overridden with a STORMRANK_<NAME> environment variable
    or a `.env` file; CLI flags override both.
    """

    # --- Dataset ---
    DATA_URL: str = "https://d396qusza40orc.cloudfront.net/repdata%2Fdata%2FStormData.csv.bz2"
    CACHE_DIR: str = _default_cache_dir()
    REQUEST_TIMEOUT: float = 120.0

    # --- Report ---
    TOP_N: int = 5
    CHART_DPI: int = 200

    # --- Logging ---
    LOG_LEVEL: str = "INFO"

    class Config:
        env_prefix = "STORMRANK_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
