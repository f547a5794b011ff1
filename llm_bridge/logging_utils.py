from __future__ import annotations

import logging
from typing import Any

DEFAULT_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def configure_logging(logging_cfg: dict[str, Any] | None = None) -> None:
    """Set up root logging from the ``logging`` config section."""
    cfg = logging_cfg or {}
    level = str(cfg.get("level", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=cfg.get("format", DEFAULT_FORMAT),
    )
    # httpx logs every request at INFO
    http_level = str(cfg.get("http_level", "WARNING")).upper()
    logging.getLogger("httpx").setLevel(getattr(logging, http_level, logging.WARNING))


def mask_secret(value: str | None) -> str | None:
    """Shorten an API key for log output."""
    if value is None:
        return None
    if len(value) <= 4:
        return "***"
    return f"{value[:3]}***{value[-2:]}"
