"""Centralized exception definitions for ftplink."""

from enum import Enum
from typing import Optional, Union


class FtplinkError(Exception):
    """Base exception for all ftplink errors."""

    def __init__(
        self,
        message: str,
        host: Optional[str] = None,
        original_error: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.host = host
        self.original_error = original_error
        # Diagnostic text reported by the transport, if any.
        self.reason: Optional[str] = None

    def __str__(self) -> str:
        if self.reason:
            return f"{self.message}: {self.reason}"
        if self.original_error is not None:
            return f"{self.message}: {self.original_error}"
        return self.message


# Configuration Exceptions


class ConfigurationError(FtplinkError):
    """Invalid connection string or configuration."""

    def __init__(self, message: str, original_error: Optional[BaseException] = None) -> None:
        super().__init__(message, original_error=original_error)


class RemoteNotFoundError(ConfigurationError):
    """Exception raised when a remote configuration is not found."""


class ValidationError(ConfigurationError):
    """Exception raised when configuration validation fails."""


class MissingDependencyError(ConfigurationError):
    """Raised when required dependencies are not installed."""


# Connection Exceptions


class ClientConnectionError(FtplinkError):
    """Failed to open or close the connection to the remote server."""

    def __init__(
        self,
        host: str,
        port: int,
        closing: bool = False,
        original_error: Optional[BaseException] = None,
        tls: bool = False,
    ) -> None:
        self.port = port
        self.closing = closing
        if closing:
            message = f'Could not close connection to FTP server "{host}" on port "{port}"'
        else:
            message = f'Could not connect to FTP server "{host}" on port "{port}"'
            if tls:
                message += " using TLS"
        super().__init__(message, host, original_error)


class AuthenticationError(FtplinkError):
    """Login rejected by the remote server."""

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        original_error: Optional[BaseException] = None,
    ) -> None:
        self.port = port
        self.user = user
        message = f'Could not login to FTP server "{host}" on port "{port}" with user "{user}"'
        super().__init__(message, host, original_error)


# Listing Exceptions


class ListingError(FtplinkError):
    """Directory listing failed.

    ``path`` is ``None`` when the current folder itself could not be
    determined.
    """

    def __init__(
        self,
        host: str,
        path: Optional[str] = None,
        original_error: Optional[BaseException] = None,
    ) -> None:
        self.path = path
        if path is None:
            message = f'Could not get current folder on server "{host}"'
        else:
            message = f'Could not read folder "{path}" on server "{host}"'
        super().__init__(message, host, original_error)


# File system Exceptions


class FileSystemOperation(Enum):
    """Remote file system operation that failed."""

    CHANGE_FOLDER = "change-folder"
    PARENT_FOLDER = "parent-folder"
    CREATE_FOLDER = "create-folder"
    REMOVE_FOLDER = "remove-folder"
    DELETE_FILE = "delete-file"
    RENAME = "rename"
    CHMOD = "chmod"
    SIZE = "size"
    MODIFICATION_TIME = "modification-time"
    PASSIVE = "passive"


_FILESYSTEM_MESSAGES = {
    FileSystemOperation.CHANGE_FOLDER: 'Could not move to folder "{path}" on "{host}"',
    FileSystemOperation.PARENT_FOLDER: 'Could not move to parent directory on "{host}"',
    FileSystemOperation.CREATE_FOLDER: 'Could not create folder "{path}" on "{host}"',
    FileSystemOperation.REMOVE_FOLDER: 'Could not remove folder "{path}" on "{host}"',
    FileSystemOperation.DELETE_FILE: 'Could not delete file "{path}" on server "{host}"',
    FileSystemOperation.SIZE: 'Could not get size of file "{path}" on server "{host}"',
    FileSystemOperation.MODIFICATION_TIME: (
        'Could not get modification time of file "{path}" on server "{host}"'
    ),
}


class FileSystemError(FtplinkError):
    """A remote file system operation (mkdir, rmdir, delete, ...) failed."""

    def __init__(
        self,
        host: str,
        kind: FileSystemOperation,
        path: Optional[str] = None,
        original_error: Optional[BaseException] = None,
        message: Optional[str] = None,
    ) -> None:
        self.kind = kind
        self.path = path
        if message is None:
            message = _FILESYSTEM_MESSAGES[kind].format(host=host, path=path)
        super().__init__(message, host, original_error)


class RenameError(FileSystemError):
    """Renaming a remote file failed."""

    def __init__(
        self,
        host: str,
        old_name: str,
        new_name: str,
        original_error: Optional[BaseException] = None,
    ) -> None:
        self.old_name = old_name
        self.new_name = new_name
        message = f'Could not rename file "{old_name}" to "{new_name}" on server "{host}"'
        super().__init__(host, FileSystemOperation.RENAME, old_name, original_error, message)


class ChmodError(FileSystemError):
    """Changing the mode of a remote file failed."""

    def __init__(
        self,
        host: str,
        mode: Union[int, str],
        path: str,
        original_error: Optional[BaseException] = None,
    ) -> None:
        self.mode = mode
        message = f'Could not change mode (to "{mode}") of file "{path}" on server "{host}"'
        super().__init__(host, FileSystemOperation.CHMOD, path, original_error, message)


class PassiveModeError(FileSystemError):
    """Passive mode could not be turned on or off."""

    def __init__(
        self,
        host: str,
        passive: bool,
        original_error: Optional[BaseException] = None,
    ) -> None:
        self.passive = passive
        action = "set" if passive else "unset"
        message = f'Could not {action} passive mode on server "{host}"'
        super().__init__(host, FileSystemOperation.PASSIVE, None, original_error, message)


# Transfer Exceptions


class TransferDirection(Enum):
    DOWNLOAD = "download"
    UPLOAD = "upload"


class TransferError(FtplinkError):
    """File transfer (get/put) failed."""

    def __init__(
        self,
        host: str,
        direction: TransferDirection,
        remote: Optional[str],
        local: Optional[str] = None,
        asynchronous: bool = False,
        original_error: Optional[BaseException] = None,
        message: Optional[str] = None,
    ) -> None:
        self.direction = direction
        self.remote = remote
        self.local = local
        self.asynchronous = asynchronous
        if message is None:
            if direction is TransferDirection.DOWNLOAD:
                how = "asynchronously" if asynchronous else "synchronously"
                message = f'Could not {how} get file "{remote}" from server "{host}"'
            else:
                message = f'Could not put file "{local}" on "{remote}" on server "{host}"'
        super().__init__(message, host, original_error)


# Command Exceptions


class CommandExecutionError(FtplinkError):
    """SITE, SITE EXEC or raw command failed."""

    def __init__(
        self,
        host: str,
        command: str,
        original_error: Optional[BaseException] = None,
    ) -> None:
        self.command = command
        message = f'Could not execute command "{command}" on "{host}"'
        super().__init__(message, host, original_error)
