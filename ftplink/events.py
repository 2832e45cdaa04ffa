"""Lifecycle notifications published by :class:`ftplink.client.FtpClient`.

Notifications are delivered synchronously, on the caller's thread, after
the operation has completed, in the order operations complete.

Example usage:

    client = FtpClient("ftp://ftp.example.com")
    unsubscribe = client.events.subscribe(print, Event.FILE_DOWNLOADED)
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, List, Mapping, Optional, Tuple
import logging

logger = logging.getLogger(__name__)


class Event(Enum):
    CONNECTION_OPENED = "connection-opened"
    CONNECTION_CLOSED = "connection-closed"
    LOGIN_SUCCEEDED = "login-succeeded"
    FOLDER_CREATED = "folder-created"
    FOLDER_DELETED = "folder-deleted"
    FOLDER_CHANGED = "folder-changed"
    FILE_DOWNLOADED = "file-downloaded"
    FILE_UPLOADED = "file-uploaded"
    FILE_DELETED = "file-deleted"
    FILE_RENAMED = "file-renamed"
    FILE_MODE_CHANGED = "file-mode-changed"


@dataclass(frozen=True)
class Notification:
    event: Event
    data: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        if not isinstance(self.data, MappingProxyType):
            object.__setattr__(self, "data", MappingProxyType(dict(self.data)))


Subscriber = Callable[[Notification], Any]


class EventDispatcher:
    """Ordered list of subscribers, optionally filtered by event."""

    def __init__(self) -> None:
        self._subscribers: List[Tuple[Optional[Event], Subscriber]] = []

    def subscribe(self, callback: Subscriber, event: Optional[Event] = None) -> Callable[[], None]:
        """
        Register ``callback`` for ``event``, or for every event if None.

        Returns:
            A function that removes the subscription
        """
        subscription = (event, callback)
        self._subscribers.append(subscription)

        def unsubscribe() -> None:
            if subscription in self._subscribers:
                self._subscribers.remove(subscription)

        return unsubscribe

    def publish(self, event: Event, **data: Any) -> Notification:
        notification = Notification(event, data)
        logger.debug("Publishing %s", event.value)
        for wanted, callback in list(self._subscribers):
            if wanted is None or wanted is event:
                callback(notification)
        return notification

    def __len__(self) -> int:
        return len(self._subscribers)
