"""User-facing notifications raised by write actions."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

from gamenight.core.logging import get_logger

logger = get_logger(__name__)


class NotificationStatus(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """A transient message, e.g. a toast."""

    status: NotificationStatus
    description: str


class Notifier(ABC):
    """Where actions report outcomes."""

    @abstractmethod
    def notify(self, notification: Notification) -> None:
        """Show a transient notification."""
        ...

    @abstractmethod
    def alert(self, title: str, message: str) -> None:
        """Show a blocking alert the user has to acknowledge."""
        ...


class LogNotifier(Notifier):
    """Notifier that only writes to the structured log."""

    def notify(self, notification: Notification) -> None:
        log = logger.error if notification.status is NotificationStatus.ERROR else logger.info
        log(notification.description, status=notification.status.value)

    def alert(self, title: str, message: str) -> None:
        logger.warning(message, title=title)


# Asks the user a yes/no question: (title, message) -> answer
Confirmer = Callable[[str, str], Awaitable[bool]]
