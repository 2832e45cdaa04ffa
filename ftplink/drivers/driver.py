from abc import abstractmethod, ABCMeta
from contextlib import AbstractContextManager
from datetime import datetime
from enum import Enum
from os import PathLike, fspath
from pathlib import Path
from typing import Any, BinaryIO, List, Optional, Union

from ftplink.fileentry import FileEntry
from ftplink.transfer import ProgressCallback, TransferMode

LocalFile = Union[str, Path, BinaryIO]


def is_local_path(local: Any) -> bool:
    return isinstance(local, (str, PathLike))


def local_file_name(local: LocalFile) -> str:
    """Full path of a local file, or the name of a file object."""
    if is_local_path(local):
        return fspath(local)  # type: ignore[arg-type]
    return str(getattr(local, "name", "<stream>"))


class DriverState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    AUTHENTICATED = "authenticated"


class RemoteDriver(AbstractContextManager, metaclass=ABCMeta):
    """One live connection to a remote file server.

    A driver is not thread-safe: it must be used by one caller at a time,
    and nothing else may run on it while a transfer is in progress.
    """

    @property
    @abstractmethod
    def state(self) -> DriverState:
        """Current connection state."""

    @abstractmethod
    def connect(self) -> None:
        """
        Open the connection.

        Raises:
            ClientConnectionError: If the server cannot be reached
        """

    @abstractmethod
    def login(self) -> None:
        """
        Authenticate with the stored credentials.

        Raises:
            AuthenticationError: If the server rejects the credentials
        """

    @abstractmethod
    def close(self) -> None:
        """
        Close the connection. Does nothing when already disconnected.

        Raises:
            ClientConnectionError: If the connection could not be closed cleanly
        """

    @abstractmethod
    def ls(self, path: str = ".", full: bool = False, recursive: bool = False) -> List[FileEntry]:
        """
        List a remote directory.

        Args:
            path: The remote directory to list
            full: Return full metadata (LIST) instead of bare names (NLST)
            recursive: List subdirectories as well

        Returns:
            A list of FileEntry objects

        Raises:
            ListingError: If the directory cannot be read
        """

    @abstractmethod
    def pwd(self) -> str:
        """Return the current remote directory."""

    @abstractmethod
    def chdir(self, path: str) -> str:
        """
        Change the current remote directory.

        Returns:
            The new current directory, or ``path`` if it cannot be determined
        """

    @abstractmethod
    def cdup(self) -> str:
        """Move to the parent directory and return the new current directory."""

    @abstractmethod
    def mkdir(self, path: str) -> None:
        """Create a remote directory."""

    @abstractmethod
    def rmdir(self, path: str) -> None:
        """Remove a remote directory."""

    @abstractmethod
    def delete(self, path: str) -> None:
        """Delete a remote file."""

    @abstractmethod
    def rename(self, old_name: str, new_name: str) -> None:
        """Rename a remote file or directory."""

    @abstractmethod
    def chmod(self, mode: Union[int, str], path: str) -> None:
        """
        Change the permissions of a remote file.

        Args:
            mode: Octal string ("755", "0644") or integer (0o755)
            path: The remote file
        """

    @abstractmethod
    def size(self, path: str) -> int:
        """Return the size in bytes of a remote file."""

    @abstractmethod
    def mdtm(self, path: str) -> datetime:
        """Return the modification time (UTC) of a remote file."""

    @abstractmethod
    def file_exists(self, path: str) -> bool:
        """Whether a remote file or directory exists."""

    @abstractmethod
    def get(
        self,
        remote: str,
        local: Optional[LocalFile] = None,
        mode: TransferMode = TransferMode.BINARY,
        asynchronous: bool = False,
        progress: Optional[ProgressCallback] = None,
    ) -> str:
        """
        Download a remote file.

        Args:
            remote: The remote file to download
            local: Destination path or writable binary file object. Defaults
                to the remote basename in the current local directory
            mode: ASCII or binary transfer
            asynchronous: Drive the transfer chunk by chunk
            progress: Optional callback receiving the number of bytes
                downloaded so far

        Returns:
            The local path written to

        Raises:
            TransferError: If the download fails
        """

    @abstractmethod
    def put(
        self,
        local: LocalFile,
        remote: Optional[str] = None,
        mode: TransferMode = TransferMode.BINARY,
        asynchronous: bool = False,
        progress: Optional[ProgressCallback] = None,
    ) -> str:
        """
        Upload a local file.

        Args:
            local: Source path or readable binary file object
            remote: Destination path. Defaults to the local basename;
                mandatory when ``local`` is a file object
            mode: ASCII or binary transfer
            asynchronous: Drive the transfer chunk by chunk
            progress: Optional callback receiving the number of bytes
                uploaded so far

        Returns:
            The remote path written to

        Raises:
            TransferError: If the upload fails
        """

    @abstractmethod
    def execute(self, command: str, raw: bool = False) -> Union[bool, List[str]]:
        """
        Execute a command on the server.

        ``SITE EXEC`` and ``SITE`` commands return True; any other command
        (or any command when ``raw`` is set) returns the server's reply
        lines unparsed.

        Raises:
            CommandExecutionError: If the command fails
        """
