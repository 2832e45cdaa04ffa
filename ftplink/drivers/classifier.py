"""Turns untyped transport failures into typed ftplink exceptions.

The transport only reports *which* operation failed and a free-text
message. Drivers record an :class:`ErrorContext` right before each risky
call so that :func:`classify` can rebuild a parameterized exception
(the folder being created, the files being renamed, ...).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Union

from ftplink.exceptions import (
    AuthenticationError,
    ChmodError,
    ClientConnectionError,
    CommandExecutionError,
    FileSystemError,
    FileSystemOperation,
    FtplinkError,
    ListingError,
    PassiveModeError,
    RenameError,
    TransferDirection,
    TransferError,
)


class Operation(str, Enum):
    CONNECT = "connect"
    CLOSE = "close"
    LOGIN = "login"
    LIST = "list"
    CURRENT_FOLDER = "current-folder"
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
    DOWNLOAD = "download"
    UPLOAD = "upload"
    EXEC = "exec"
    SITE = "site"
    RAW = "raw"


@dataclass(frozen=True)
class ErrorContext:
    """Parameters of the operation in progress, used to enrich failures."""

    operation: Optional[str] = None
    path: Optional[str] = None
    local: Optional[str] = None
    remote: Optional[str] = None
    mode: Optional[Union[int, str]] = None
    old_name: Optional[str] = None
    new_name: Optional[str] = None
    passive: Optional[bool] = None
    command: Optional[str] = None
    asynchronous: bool = False
    tls: bool = False


@dataclass(frozen=True)
class _Target:
    host: str
    port: Optional[int]
    user: Optional[str]


_Builder = Callable[[ErrorContext, _Target], FtplinkError]


def _filesystem(kind: FileSystemOperation) -> _Builder:
    return lambda ctx, target: FileSystemError(target.host, kind, ctx.path)


_BUILDERS: Dict[Operation, _Builder] = {
    Operation.CONNECT: lambda ctx, t: ClientConnectionError(t.host, t.port or 0, tls=ctx.tls),
    Operation.CLOSE: lambda ctx, t: ClientConnectionError(t.host, t.port or 0, closing=True),
    Operation.LOGIN: lambda ctx, t: AuthenticationError(t.host, t.port or 0, t.user or ""),
    Operation.LIST: lambda ctx, t: ListingError(t.host, ctx.path if ctx.path is not None else "."),
    Operation.CURRENT_FOLDER: lambda ctx, t: ListingError(t.host, None),
    Operation.CHANGE_FOLDER: _filesystem(FileSystemOperation.CHANGE_FOLDER),
    Operation.PARENT_FOLDER: _filesystem(FileSystemOperation.PARENT_FOLDER),
    Operation.CREATE_FOLDER: _filesystem(FileSystemOperation.CREATE_FOLDER),
    Operation.REMOVE_FOLDER: _filesystem(FileSystemOperation.REMOVE_FOLDER),
    Operation.DELETE_FILE: _filesystem(FileSystemOperation.DELETE_FILE),
    Operation.SIZE: _filesystem(FileSystemOperation.SIZE),
    Operation.MODIFICATION_TIME: _filesystem(FileSystemOperation.MODIFICATION_TIME),
    Operation.RENAME: lambda ctx, t: RenameError(t.host, ctx.old_name or "", ctx.new_name or ""),
    Operation.CHMOD: lambda ctx, t: ChmodError(
        t.host, ctx.mode if ctx.mode is not None else "", ctx.path or ""
    ),
    Operation.PASSIVE: lambda ctx, t: PassiveModeError(t.host, bool(ctx.passive)),
    Operation.DOWNLOAD: lambda ctx, t: TransferError(
        t.host, TransferDirection.DOWNLOAD, ctx.remote, ctx.local, ctx.asynchronous
    ),
    Operation.UPLOAD: lambda ctx, t: TransferError(
        t.host, TransferDirection.UPLOAD, ctx.remote, ctx.local, ctx.asynchronous
    ),
    Operation.EXEC: lambda ctx, t: CommandExecutionError(t.host, ctx.command or ""),
    Operation.SITE: lambda ctx, t: CommandExecutionError(t.host, ctx.command or ""),
    Operation.RAW: lambda ctx, t: CommandExecutionError(t.host, ctx.command or ""),
}


def classify(
    operation: Union[Operation, str],
    message: str,
    context: Optional[ErrorContext] = None,
    *,
    host: str,
    port: Optional[int] = None,
    user: Optional[str] = None,
    original_error: Optional[BaseException] = None,
) -> Optional[FtplinkError]:
    """
    Build the typed exception for a failed transport call.

    Args:
        operation: Name of the failing operation (an :class:`Operation`
            or its string value)
        message: Diagnostic text reported by the transport
        context: Parameters recorded before the call
        host: Remote host, present in every exception
        port: Remote port, used by connection and login failures
        user: User name, used by login failures
        original_error: Exception raised by the transport, if any

    Returns:
        The exception to raise, or None if the operation is unknown
    """
    try:
        key = Operation(operation)
    except ValueError:
        return None

    error = _BUILDERS[key](context or ErrorContext(operation=key.value), _Target(host, port, user))
    error.reason = message.strip() or None
    error.original_error = original_error
    return error
