"""
Logger wrapper carrying per-run context.
"""

import logging
from typing import Any


class ContextLogger:
    """
    Logger that attaches the same context to every message.

    Usage:
        log = ContextLogger("index_advisor.planner.advisor", collection="tickets")
        log.info("Selected index", index="tenantId_1_createdAt_-1", cost=1200)
        # both collection and index/cost end up in the record's extra fields
    """

    def __init__(self, name: str, **context):
        self.logger = logging.getLogger(name)
        self.context = context

    def _log(self, level: int, msg: str, *args, exc_info=None, **kwargs) -> None:
        if not self.logger.isEnabledFor(level):
            return
        self.logger.log(level, msg, *args, exc_info=exc_info, extra={**self.context, **kwargs})

    def debug(self, msg: str, *args, **kwargs) -> None:
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs) -> None:
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, exc_info=None, **kwargs) -> None:
        self._log(logging.ERROR, msg, *args, exc_info=exc_info, **kwargs)

    def update_context(self, **context) -> None:
        self.context.update(context)

    def get_context(self) -> dict[str, Any]:
        return self.context.copy()
