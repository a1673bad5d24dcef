"""Console and logging notification adapters."""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.markdown import Markdown
from rich.text import Text

from adapters.notification_formatting import format_notification
from core.models import Event, MatchRecord

LOGGER = logging.getLogger(__name__)


class ConsoleNotifier:
    """Notifier adapter that prints matches to the terminal via rich."""

    def __init__(self, console: Optional[Console] = None, mode: str = "plain") -> None:
        self._console = console or Console()
        self._mode = mode

    async def send(self, event: Event, match: MatchRecord) -> None:
        """Print the formatted notification."""

        body = format_notification(match, mode=self._mode)
        if self._mode == "markdown":
            self._console.print(Markdown(body))
        else:
            self._console.print(Text(body))


class LoggingNotifier:
    """Notifier adapter that writes matches to the application log."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or LOGGER

    async def send(self, event: Event, match: MatchRecord) -> None:
        self._logger.info("%s", format_notification(match, mode="plain"))
