import logging
import os
from pathlib import Path

import structlog
from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Explicitly load .env for local/dev environments only if values are missing from the environment
BASE_DIR = Path(__file__).resolve().parent.parent.parent
env_file = BASE_DIR / ".env"

if env_file.exists():
    file_env = dotenv_values(env_file)
    missing_keys = {k: v for k, v in file_env.items() if k not in os.environ and v is not None}
    for k, v in missing_keys.items():
        os.environ[k] = v


class Settings(BaseSettings):
    """Application settings pulled from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RANDLEBROT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (json or console)")

    # World Generation Configuration
    default_seed: int = Field(default=42, description="Seed used when none is given")
    default_map_width: int = Field(default=1024, description="Default world width in cells")
    default_map_height: int = Field(default=512, description="Default world height in cells")

    # Performance Configuration
    generation_workers: int = Field(
        default=min(4, os.cpu_count() or 1),
        ge=1,
        description="Worker threads for data-parallel layer generation",
    )

    # Chunk cache capacities (entries per tier)
    macro_cache_capacity: int = Field(default=64, ge=1, description="Macro tier capacity")
    meso_cache_capacity: int = Field(default=256, ge=1, description="Meso tier capacity")
    micro_cache_capacity: int = Field(default=1024, ge=1, description="Micro tier capacity")

    # Persistence
    worlds_dir: str = Field(default="assets/worlds", description="Directory for saved worlds")


# Instantiate singleton settings object
settings = Settings()


def configure_logging(level: str = None, log_format: str = None) -> None:
    """
    Configure structlog for an entry point.

    Library modules only call ``structlog.get_logger()``; scripts and
    applications call this once at startup.
    """
    level = (level or settings.log_level).upper()
    log_format = (log_format or settings.log_format).lower()

    logging.basicConfig(format="%(message)s", level=getattr(logging, level, logging.INFO))

    renderer = (
        structlog.dev.ConsoleRenderer()
        if log_format == "console"
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
