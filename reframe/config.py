"""Process configuration from environment variables / .env."""

from __future__ import annotations

import logging

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    reframe_env: str = "development"
    reframe_log_level: str = "info"

    # Symmetric safe-area ratio for targets without explicit or preset insets
    reframe_safe_area_ratio: float = 0.05

    # Thread pool size for retarget_many (0 = run targets sequentially)
    reframe_max_workers: int = 0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    """Install a root handler for host applications. The library never calls this."""
    name = (level or settings.reframe_log_level).upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
