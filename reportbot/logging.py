"""Root logger setup for the bot process.

ERROR is for fetches that gave up and store write failures, WARNING for
retries, malformed responses and undelivered alerts, INFO for one line per
poll cycle, DEBUG for per-report decisions.
"""

import logging

from reportbot.config import LoggingConfig

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# HTTP libraries that log every connection; kept at WARNING or above
QUIET_LOGGERS = ("urllib3",)


def _resolve_level(level: str) -> int | None:
    """Standard level name (any case, WARN and FATAL included) or None."""
    return logging.getLevelNamesMapping().get(level.strip().upper())


class ReportBotLogging:
    """Applies LoggingConfig to the root logger."""

    def __init__(self, config: LoggingConfig) -> None:
        self._requested = config.level
        resolved = _resolve_level(config.level)
        self._known = resolved is not None
        self._level = logging.INFO if resolved is None else resolved
        self._format = config.format or DEFAULT_FORMAT

    def setup(self) -> None:
        logging.basicConfig(level=self._level, format=self._format, force=True)
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(max(self._level, logging.WARNING))
        if not self._known:
            logging.getLogger("reportbot.logging").warning(
                "Unknown log level %r, using INFO", self._requested
            )
