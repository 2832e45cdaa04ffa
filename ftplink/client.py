"""Client facade over the remote drivers.

Example usage:

    with FtpClient("ftp://anonymous@ftp.example.com") as client:
        for entry in client.ls("/pub", full=True):
            print(entry.filename, entry.size)
        client.get("/pub/README", "README")

    # Named remotes loaded once at startup
    config = Config.from_file(open("remotes.toml", "rb"))
    client = FtpClient.from_config(config.get_remote("backup"))
"""

from __future__ import annotations

from datetime import datetime
from types import TracebackType
from typing import List, Optional, Union
from typing_extensions import Self
import logging

from ftplink.config.base import BaseRemoteConfig
from ftplink.config.settings import Settings
from ftplink.connection import (
    ConnectionOptions,
    ConnectionStringParser,
    format_connection_string,
)
from ftplink.drivers.driver import DriverState, LocalFile, RemoteDriver, local_file_name
from ftplink.events import Event, EventDispatcher
from ftplink.exceptions import ConfigurationError, FtplinkError
from ftplink.fileentry import FileEntry
from ftplink.protocols import ProtocolRegistry
from ftplink.transfer import ProgressCallback, TransferMode

logger = logging.getLogger(__name__)


class FtpClient:
    """Lazily connected client bound to one connection string.

    The driver is created from the protocol registry on first use and
    connects and logs in on demand. Completed operations are published
    on :attr:`events`. An explicit ``registry`` wins over the one in
    ``settings``.
    """

    def __init__(
        self,
        connection_string: Optional[str] = None,
        *,
        options: Optional[ConnectionOptions] = None,
        registry: Optional[ProtocolRegistry] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or Settings()
        self._parser = ConnectionStringParser(
            registry if registry is not None else self._settings.resolve_registry()
        )
        self._driver: Optional[RemoteDriver] = None
        self.events = EventDispatcher()

        if connection_string is not None and options is not None:
            raise ConfigurationError("Pass either a connection string or options, not both")
        if connection_string is not None:
            self._options = self._parser.parse(connection_string)
        elif options is not None:
            self._options = options
        else:
            raise ConfigurationError("A connection string or connection options are required")

    @classmethod
    def from_config(
        cls, remote: BaseRemoteConfig, settings: Optional[Settings] = None
    ) -> Self:
        settings = settings or Settings()
        return cls(options=remote.to_options(settings.resolve_registry()), settings=settings)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        if self._driver is None or self._driver.state is DriverState.DISCONNECTED:
            return
        try:
            self.close()
        except FtplinkError as e:
            # Teardown must not mask the caller's exception
            logger.warning("Ignoring failure while closing %s: %s", self._options.host, e)

    # Connection settings

    @property
    def options(self) -> ConnectionOptions:
        return self._options

    @property
    def connection_string(self) -> str:
        return format_connection_string(self._options)

    @connection_string.setter
    def connection_string(self, connection_string: str) -> None:
        options = self._parser.parse(connection_string)
        if self._driver is not None:
            self.close()
            self._driver = None
        self._options = options

    def get_connection_string(self, with_password: bool = False) -> str:
        return format_connection_string(self._options, with_password)

    @property
    def driver(self) -> RemoteDriver:
        if self._driver is None:
            entry = self._parser.registry.lookup(self._options.scheme)
            if entry is None:
                raise ConfigurationError(f"Unknown protocol: '{self._options.scheme}'")
            self._driver = entry.driver.from_options(  # type: ignore[attr-defined]
                self._options, self._settings.diagnostic_handler
            )
            logger.debug("Created %s for %s", entry.driver.__name__, self._options.host)
        return self._driver

    # Lifecycle

    def connect(self) -> None:
        self.driver.connect()
        self.events.publish(Event.CONNECTION_OPENED, host=self._options.host, port=self._options.port)

    def login(self) -> None:
        self.driver.login()
        self.events.publish(Event.LOGIN_SUCCEEDED, host=self._options.host, user=self._options.user)

    def close(self) -> None:
        if self._driver is None or self._driver.state is DriverState.DISCONNECTED:
            return
        self._driver.close()
        self.events.publish(Event.CONNECTION_CLOSED, host=self._options.host, port=self._options.port)

    def _connect_if_needed(self) -> None:
        # Lifecycle events are published on the lazy path too.
        if self.driver.state is DriverState.DISCONNECTED:
            self.connect()
        if self.driver.state is DriverState.CONNECTED and self._options.user:
            self.login()

    # Directories

    def ls(self, path: str = ".", full: bool = False, recursive: bool = False) -> List[FileEntry]:
        self._connect_if_needed()
        return self.driver.ls(path, full, recursive)

    def pwd(self) -> str:
        self._connect_if_needed()
        return self.driver.pwd()

    def mkdir(self, path: str) -> None:
        self._connect_if_needed()
        self.driver.mkdir(path)
        self.events.publish(Event.FOLDER_CREATED, path=path)

    def rmdir(self, path: str) -> None:
        self._connect_if_needed()
        self.driver.rmdir(path)
        self.events.publish(Event.FOLDER_DELETED, path=path)

    def chdir(self, path: str) -> str:
        self._connect_if_needed()
        current = self.driver.chdir(path)
        self.events.publish(Event.FOLDER_CHANGED, path=current)
        return current

    def cdup(self) -> str:
        self._connect_if_needed()
        current = self.driver.cdup()
        self.events.publish(Event.FOLDER_CHANGED, path=current)
        return current

    # Files

    def get(
        self,
        remote: str,
        local: Optional[LocalFile] = None,
        mode: TransferMode = TransferMode.BINARY,
        asynchronous: bool = False,
        progress: Optional[ProgressCallback] = None,
    ) -> str:
        self._connect_if_needed()
        local_path = self.driver.get(remote, local, mode, asynchronous, progress)
        self.events.publish(
            Event.FILE_DOWNLOADED,
            remote=remote,
            local=local_path,
            asynchronous=asynchronous,
        )
        return local_path

    def put(
        self,
        local: LocalFile,
        remote: Optional[str] = None,
        mode: TransferMode = TransferMode.BINARY,
        asynchronous: bool = False,
        progress: Optional[ProgressCallback] = None,
    ) -> str:
        self._connect_if_needed()
        remote_path = self.driver.put(local, remote, mode, asynchronous, progress)
        self.events.publish(
            Event.FILE_UPLOADED,
            local=local_file_name(local),
            remote=remote_path,
            asynchronous=asynchronous,
        )
        return remote_path

    def delete(self, path: str) -> None:
        self._connect_if_needed()
        self.driver.delete(path)
        self.events.publish(Event.FILE_DELETED, path=path)

    def rename(self, old_name: str, new_name: str) -> None:
        self._connect_if_needed()
        self.driver.rename(old_name, new_name)
        self.events.publish(Event.FILE_RENAMED, old_name=old_name, new_name=new_name)

    def chmod(self, mode: Union[int, str], path: str) -> None:
        self._connect_if_needed()
        self.driver.chmod(mode, path)
        self.events.publish(Event.FILE_MODE_CHANGED, mode=mode, path=path)

    def file_exists(self, path: str) -> bool:
        self._connect_if_needed()
        return self.driver.file_exists(path)

    def size(self, path: str) -> int:
        self._connect_if_needed()
        return self.driver.size(path)

    def mdtm(self, path: str) -> datetime:
        self._connect_if_needed()
        return self.driver.mdtm(path)

    def execute(self, command: str, raw: bool = False) -> Union[bool, List[str]]:
        self._connect_if_needed()
        return self.driver.execute(command, raw)

    def systype(self) -> str:
        self._connect_if_needed()
        return self.driver.systype()  # type: ignore[attr-defined]


def connect(connection_string: str, settings: Optional[Settings] = None) -> FtpClient:
    """Create a client for ``connection_string``; it connects on first use."""
    return FtpClient(connection_string, settings=settings)
