"""Protocol registry mapping connection string schemes to drivers."""

from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import TYPE_CHECKING, Dict, List, Optional, Type

from ftplink.exceptions import ConfigurationError

if TYPE_CHECKING:
    from ftplink.drivers.driver import RemoteDriver


class FtpProtocol(str, Enum):
    FTP = "ftp"
    FTPS = "ftps"


DEFAULT_PORT = 21


@dataclass(frozen=True)
class ProtocolEntry:
    """Registered scheme: driver class and default port."""

    scheme: str
    driver: Type["RemoteDriver"]
    default_port: int


class ProtocolRegistry:
    """Table of supported schemes.

    Lookups are case-insensitive. Once :meth:`freeze` has been called the
    registry is read-only.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, ProtocolEntry] = {}
        self._frozen = False

    def register(self, scheme: str, driver: Type["RemoteDriver"], default_port: int) -> None:
        if self._frozen:
            raise ConfigurationError(
                f"Cannot register protocol '{scheme}': registry is read-only"
            )
        if not scheme:
            raise ConfigurationError("Protocol scheme cannot be empty")
        if default_port < 0:
            raise ConfigurationError(f"Invalid default port for '{scheme}': {default_port}")
        key = scheme.lower()
        self._entries[key] = ProtocolEntry(key, driver, default_port)

    def lookup(self, scheme: str) -> Optional[ProtocolEntry]:
        return self._entries.get(scheme.lower())

    def freeze(self) -> "ProtocolRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def schemes(self) -> List[str]:
        return list(self._entries)

    def __contains__(self, scheme: object) -> bool:
        return isinstance(scheme, str) and scheme.lower() in self._entries


_default_registry: Optional[ProtocolRegistry] = None
_default_registry_lock = Lock()


def default_registry() -> ProtocolRegistry:
    """Return the process-wide registry holding the built-in drivers.

    The registry is built on first use and frozen immediately.
    """
    global _default_registry
    with _default_registry_lock:
        if _default_registry is None:
            from ftplink.drivers import FtpDriver, FtpsDriver

            registry = ProtocolRegistry()
            registry.register(FtpProtocol.FTP.value, FtpDriver, DEFAULT_PORT)
            registry.register(FtpProtocol.FTPS.value, FtpsDriver, DEFAULT_PORT)
            _default_registry = registry.freeze()
        return _default_registry
