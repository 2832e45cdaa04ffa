"""Chunked transfers driven as an explicit continuation state machine.

A :class:`Continuation` is started once and then resumed until it stops
reporting ``MORE_DATA``::

    INITIATE -> (MORE_DATA -> CONTINUE)* -> FINISHED | FAILED

:func:`run_continuation` runs that loop on the caller's thread and
invokes a progress callback after every ``MORE_DATA`` step and once more
on ``FINISHED``. There is no cancellation: a caller that stops resuming
leaves the remote transfer in an undefined partial state.
"""

from abc import ABCMeta, abstractmethod
from enum import Enum, auto
from ftplib import FTP, all_errors
from socket import socket
from typing import BinaryIO, Callable, Optional
import logging
import ssl

logger = logging.getLogger(__name__)

DEFAULT_BLOCKSIZE = 8192

ProgressCallback = Callable[[int], object]


class TransferState(Enum):
    MORE_DATA = auto()
    FINISHED = auto()
    FAILED = auto()


class TransferMode(Enum):
    """FTP representation type used for a transfer."""

    ASCII = "A"
    BINARY = "I"


def _noop(transferred: int) -> None:
    pass


class Continuation(metaclass=ABCMeta):
    """One step-wise transfer.

    Attributes:
        transferred: Number of bytes moved so far.
        error: The exception that turned the transfer into ``FAILED``.
    """

    def __init__(self) -> None:
        self.transferred = 0
        self.error: Optional[BaseException] = None

    @abstractmethod
    def start(self) -> TransferState:
        """Initiate the transfer."""

    @abstractmethod
    def resume(self) -> TransferState:
        """Move the next chunk."""


def run_continuation(
    continuation: Continuation, progress: Optional[ProgressCallback] = None
) -> TransferState:
    """
    Drive ``continuation`` until it finishes or fails.

    Args:
        continuation: The transfer to run
        progress: Called with the bytes transferred so far after every
            ``MORE_DATA`` step and once more on success

    Returns:
        ``TransferState.FINISHED`` or ``TransferState.FAILED``
    """
    progress = progress or _noop
    state = continuation.start()
    while state is TransferState.MORE_DATA:
        progress(continuation.transferred)
        state = continuation.resume()
    if state is TransferState.FINISHED:
        progress(continuation.transferred)
    return state


class _FtpContinuation(Continuation):
    """Shared plumbing for transfers over an ftplib data connection."""

    command = ""

    def __init__(
        self,
        ftp: FTP,
        remote: str,
        fp: BinaryIO,
        mode: TransferMode = TransferMode.BINARY,
        blocksize: int = DEFAULT_BLOCKSIZE,
    ) -> None:
        super().__init__()
        self.ftp = ftp
        self.remote = remote
        self.fp = fp
        self.mode = mode
        self.blocksize = blocksize
        self._conn: Optional[socket] = None

    def start(self) -> TransferState:
        try:
            self.ftp.voidcmd(f"TYPE {self.mode.value}")
            self._conn = self.ftp.transfercmd(f"{self.command} {self.remote}")
        except all_errors as e:
            return self._fail(e)
        return TransferState.MORE_DATA

    def resume(self) -> TransferState:
        if self._conn is None:
            return self._fail(RuntimeError("Transfer was not started"))
        try:
            if self._step():
                return TransferState.MORE_DATA
            self._finish()
        except all_errors as e:
            return self._fail(e)
        return TransferState.FINISHED

    @abstractmethod
    def _step(self) -> bool:
        """Move one chunk; return False once there is nothing left."""

    def _finish(self) -> None:
        conn, self._conn = self._conn, None
        assert conn is not None
        try:
            if isinstance(conn, ssl.SSLSocket):
                conn.unwrap()
        finally:
            conn.close()
        self.ftp.voidresp()

    def _fail(self, error: BaseException) -> TransferState:
        logger.debug("%s %s failed: %s", self.command, self.remote, error)
        self.error = error
        if self._conn is not None:
            try:
                self._conn.close()
            except OSError:
                pass
            self._conn = None
        return TransferState.FAILED


class DownloadContinuation(_FtpContinuation):
    """Step-wise ``RETR`` into a binary file object."""

    command = "RETR"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._reader: Optional[BinaryIO] = None

    def start(self) -> TransferState:
        state = super().start()
        if state is TransferState.MORE_DATA and self.mode is TransferMode.ASCII:
            assert self._conn is not None
            self._reader = self._conn.makefile("rb")
        return state

    def _step(self) -> bool:
        assert self._conn is not None
        if self._reader is not None:
            line = self._reader.readline(self.blocksize)
            if not line:
                self._reader.close()
                self._reader = None
                return False
            if line.endswith(b"\r\n"):
                line = line[:-2] + b"\n"
            data = line
        else:
            data = self._conn.recv(self.blocksize)
            if not data:
                return False
        self.fp.write(data)
        self.transferred += len(data)
        return True


class UploadContinuation(_FtpContinuation):
    """Step-wise ``STOR`` from a binary file object."""

    command = "STOR"

    def _step(self) -> bool:
        assert self._conn is not None
        if self.mode is TransferMode.ASCII:
            data = self.fp.readline(self.blocksize)
            if data.endswith(b"\n") and not data.endswith(b"\r\n"):
                data = data[:-1] + b"\r\n"
        else:
            data = self.fp.read(self.blocksize)
        if not data:
            return False
        self._conn.sendall(data)
        self.transferred += len(data)
        return True
