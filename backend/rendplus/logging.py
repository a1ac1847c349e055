"""Logging setup shared by the API process and the worker."""
import logging
import sys


def setup_logging(
    level: int | str = logging.INFO,
    format_string: str | None = None,
) -> None:
    if format_string is None:
        format_string = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=format_string,
        stream=sys.stdout,
        force=True,
    )
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(level)
    logging.getLogger("rendplus").setLevel(level)
    # httpx logs each request URL at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def token_preview(token: str, length: int = 12) -> str:
    """Short, log-safe prefix of a device token."""
    if len(token) <= length:
        return token
    return f"{token[:length]}..."
