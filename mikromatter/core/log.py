"""Logging setup shared by the API process and scripts."""
import logging

from mikromatter.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Install one stream handler on the root logger. Safe to call twice."""
    root = logging.getLogger()
    root.setLevel((level or settings.LOG_LEVEL).upper())
    if not any(getattr(h, "_mikromatter", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._mikromatter = True  # type: ignore[attr-defined]
        root.addHandler(handler)


def mask_database_url(url: str) -> str:
    # Show only host/db part
    if "@" not in url:
        return "configured"
    return "...@" + url.split("@")[-1].split("?")[0]
