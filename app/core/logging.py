import logging

from app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """
    Configure the root logger once for the whole application.

    Args:
        level: Log level name. Defaults to `settings.log_level`.
    """
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
    )
    # httpx logs every request at INFO; keep upstream calls quiet unless debugging
    logging.getLogger("httpx").setLevel(logging.WARNING)
