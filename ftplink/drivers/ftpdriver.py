from contextlib import contextmanager, nullcontext
from datetime import datetime, timezone
from ftplib import FTP, FTP_TLS, all_errors
from pathlib import Path, PurePosixPath
from types import TracebackType
from typing import (
    TYPE_CHECKING,
    Any,
    BinaryIO,
    Callable,
    ContextManager,
    Iterator,
    List,
    NamedTuple,
    Optional,
    Union,
)
from typing_extensions import Self
import logging

from ftplink.converters import (
    ListingConverter,
    SimpleListingConverter,
    UnixListingConverter,
    converter_for,
    system_type_from_reply,
)
from ftplink.drivers.classifier import ErrorContext, Operation, classify
from ftplink.drivers.driver import (
    DriverState,
    LocalFile,
    RemoteDriver,
    is_local_path,
    local_file_name,
)
from ftplink.drivers import socks as socks_transport
from ftplink.exceptions import (
    ChmodError,
    CommandExecutionError,
    FileSystemError,
    FileSystemOperation,
    FtplinkError,
    ListingError,
    MissingDependencyError,
    TransferDirection,
    TransferError,
)
from ftplink.fileentry import FileEntry
from ftplink.transfer import (
    Continuation,
    DownloadContinuation,
    ProgressCallback,
    TransferMode,
    TransferState,
    UploadContinuation,
    run_continuation,
)

if TYPE_CHECKING:
    from ftplink.config.remotes import ProxyConfig
    from ftplink.connection import ConnectionOptions

logger = logging.getLogger(__name__)

DiagnosticHandler = Callable[[str, str], None]


def log_diagnostic(operation: str, message: str) -> None:
    """Default handler for failures the classifier does not recognize."""
    logger.error("Unclassified failure during '%s': %s", operation, message)


class Attempt(NamedTuple):
    """Outcome of a best-effort call: its value, or the error it raised."""

    value: Any
    error: Optional[FtplinkError]

    @property
    def ok(self) -> bool:
        return self.error is None


def _reply_value(reply: str, code: str) -> Optional[str]:
    if reply[:3] != code:
        return None
    return reply[3:].strip() or None


def _octal_mode(mode: Union[int, str]) -> str:
    if isinstance(mode, bool):
        raise ValueError(f"Invalid file mode: {mode!r}")
    if isinstance(mode, int):
        value = mode
    else:
        text = mode.strip()
        if not text or any(c not in "01234567" for c in text):
            raise ValueError(f"Invalid file mode: {mode!r}")
        value = int(text, 8)
    if not 0 <= value <= 0o7777:
        raise ValueError(f"Invalid file mode: {mode!r}")
    return format(value, "o")


def _open_local(local: LocalFile, mode: str) -> ContextManager[BinaryIO]:
    if is_local_path(local):
        return open(local, mode)  # type: ignore[arg-type, return-value]
    # Caller-owned file objects are left open.
    return nullcontext(local)  # type: ignore[arg-type]


class FtpDriver(RemoteDriver):
    """Plain FTP driver built on :mod:`ftplib`.

    Every operation except :meth:`connect`, :meth:`login` and
    :meth:`close` connects and logs in on demand when the driver is
    disconnected.
    """

    tls = False

    def __init__(
        self,
        host: str = "localhost",
        port: int = 21,
        user: str = "anonymous",
        password: str = "",
        *,
        passive: bool = True,
        timeout: int = 30,
        proxy: Optional["ProxyConfig"] = None,
        diagnostic_handler: Optional[DiagnosticHandler] = None,
    ) -> None:
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._passive = passive
        self.timeout = timeout
        self.proxy = proxy
        self._diagnostic_handler = diagnostic_handler or log_diagnostic

        self._ftp: Optional[FTP] = None
        self._state = DriverState.DISCONNECTED
        self._converter: ListingConverter = UnixListingConverter()
        self._context = ErrorContext()
        self.skipped_lines = 0

    @classmethod
    def from_options(
        cls,
        options: "ConnectionOptions",
        diagnostic_handler: Optional[DiagnosticHandler] = None,
    ) -> Self:
        return cls(
            options.host,
            options.port,
            options.user,
            options.password,
            passive=options.passive,
            timeout=options.timeout,
            proxy=options.proxy,
            diagnostic_handler=diagnostic_handler,
        )

    def __enter__(self) -> Self:
        self._connect_if_needed()
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self._attempt(self.close)

    # Connection settings. Changing them drops the current connection.

    @property
    def host(self) -> str:
        return self._host

    @host.setter
    def host(self, host: str) -> None:
        if host != self._host:
            self.close()
            self._host = host

    @property
    def port(self) -> int:
        return self._port

    @port.setter
    def port(self, port: int) -> None:
        if port != self._port:
            self.close()
            self._port = port

    @property
    def user(self) -> str:
        return self._user

    @user.setter
    def user(self, user: str) -> None:
        if user != self._user:
            self.close()
            self._user = user

    @property
    def password(self) -> str:
        return self._password

    @password.setter
    def password(self, password: str) -> None:
        if password != self._password:
            self.close()
            self._password = password

    @property
    def passive(self) -> bool:
        return self._passive

    @passive.setter
    def passive(self, passive: bool) -> None:
        if passive != self._passive:
            self._passive = passive
            if self._ftp is not None:
                self.pasv(passive)

    @property
    def converter(self) -> ListingConverter:
        """Converter applied to full listings, chosen from the system type on connect."""
        return self._converter

    @converter.setter
    def converter(self, converter: ListingConverter) -> None:
        self._converter = converter

    @property
    def state(self) -> DriverState:
        return self._state

    @property
    def error_context(self) -> ErrorContext:
        """Parameters of the last operation attempted."""
        return self._context

    # Error handling

    def _classified(self, operation: Operation, error: BaseException) -> Optional[FtplinkError]:
        return classify(
            operation,
            str(error),
            self._context,
            host=self._host,
            port=self._port,
            user=self._user,
            original_error=error,
        )

    @contextmanager
    def _operation(self, operation: Operation, **params: Any) -> Iterator[None]:
        """Record the error context and convert transport failures."""
        self._context = ErrorContext(operation=operation.value, tls=self.tls, **params)
        try:
            yield
        except all_errors as e:
            error = self._classified(operation, e)
            if error is None:
                self._diagnostic_handler(operation.value, str(e))
                raise
            logger.debug("%s", error)
            raise error from e

    def _attempt(self, func: Callable[..., Any], *args: Any) -> Attempt:
        """Run a best-effort call; its failure is returned instead of raised."""
        try:
            return Attempt(func(*args), None)
        except FtplinkError as e:
            logger.debug("Best-effort %s failed: %s", getattr(func, "__name__", func), e)
            return Attempt(None, e)

    # Connection lifecycle

    def _create_transport(self) -> FTP:
        """Create the ftplib object. Does not connect."""
        if self.proxy is not None:
            if not socks_transport.SOCKS_AVAILABLE:
                raise MissingDependencyError(
                    "SOCKS5 proxy support requires PySocks. "
                    "Install with: pip install pysocks"
                )
            cls = socks_transport.Socks5FTP_TLS if self.tls else socks_transport.Socks5FTP
            return cls(
                proxy_host=self.proxy.host,
                proxy_port=self.proxy.port,
                proxy_username=self.proxy.username,
                proxy_password=self.proxy.password,
            )
        return FTP_TLS() if self.tls else FTP()

    def _secure_control_channel(self, ftp: FTP) -> None:
        """Hook run right after the control connection is open."""

    def _secure_data_channel(self, ftp: FTP) -> None:
        """Hook run right after a successful login."""

    def _transport(self) -> FTP:
        assert self._ftp is not None, "Driver not connected"
        return self._ftp

    def _connect_if_needed(self, login: bool = True) -> None:
        if self._ftp is None:
            self.connect()
            if login and self._user:
                self.login()

    def connect(self) -> None:
        if self._ftp is not None:
            self.close()

        ftp = self._create_transport()
        try:
            with self._operation(Operation.CONNECT):
                ftp.connect(self._host, self._port, timeout=self.timeout)
                self._secure_control_channel(ftp)
        except FtplinkError:
            ftp.close()
            raise

        self._ftp = ftp
        self._state = DriverState.CONNECTED
        logger.info("Connected to %s:%s", self._host, self._port)

        system_type = system_type_from_reply(self.systype())
        self._converter = converter_for(system_type)
        logger.debug("Remote system type %s, using %s", system_type.name, type(self._converter).__name__)

    def login(self) -> None:
        self._connect_if_needed(login=False)
        ftp = self._transport()
        with self._operation(Operation.LOGIN):
            ftp.login(user=self._user, passwd=self._password)
            self._secure_data_channel(ftp)
        self._state = DriverState.AUTHENTICATED
        logger.info("Logged in to %s as %s", self._host, self._user)

        if self._passive:
            self._attempt(self.pasv, True)

    def close(self) -> None:
        if self._ftp is None:
            return

        ftp, self._ftp = self._ftp, None
        self._state = DriverState.DISCONNECTED
        try:
            with self._operation(Operation.CLOSE):
                ftp.quit()
        except FtplinkError:
            # QUIT failed (e.g. connection already dropped): force close
            ftp.close()
            raise
        finally:
            logger.info("Connection to %s:%s closed", self._host, self._port)

    def pasv(self, passive: bool) -> None:
        """
        Turn passive mode on or off.

        Raises:
            PassiveModeError: If the mode could not be changed
        """
        self._connect_if_needed()
        with self._operation(Operation.PASSIVE, passive=passive):
            self._transport().set_pasv(passive)
        self._passive = passive

    def systype(self) -> str:
        """Remote system type, or ``"UNIX"`` when the server does not tell."""
        self._connect_if_needed(login=False)
        try:
            with self._operation(Operation.RAW, command="SYST"):
                reply = self._transport().sendcmd("SYST")
        except CommandExecutionError as e:
            logger.debug("SYST failed, assuming UNIX: %s", e)
            return "UNIX"
        return _reply_value(reply, "215") or "UNIX"

    # Directory operations

    def ls(self, path: str = ".", full: bool = False, recursive: bool = False) -> List[FileEntry]:
        self._connect_if_needed()
        ftp = self._transport()
        lines: List[str] = []

        with self._operation(Operation.LIST, path=path):
            if full:
                command = "LIST -R" if recursive else "LIST"
                ftp.retrlines(f"{command} {path}", lines.append)
                converter = self._converter
            else:
                lines = ftp.nlst(f"-R {path}" if recursive else path)
                converter = SimpleListingConverter()

        result = converter.convert(lines)
        self.skipped_lines = result.skipped
        if result.skipped:
            logger.warning("Skipped %d unparseable line(s) listing '%s'", result.skipped, path)
        return result.entries

    def pwd(self) -> str:
        self._connect_if_needed()
        with self._operation(Operation.CURRENT_FOLDER):
            return self._transport().pwd()

    def _change_folder(self, path: str) -> None:
        with self._operation(Operation.CHANGE_FOLDER, path=path):
            self._transport().cwd(path)

    def chdir(self, path: str) -> str:
        self._connect_if_needed()
        self._change_folder(path)
        current = self._attempt(self.pwd)
        return current.value if current.ok else path

    def cdup(self) -> str:
        self._connect_if_needed()
        with self._operation(Operation.PARENT_FOLDER):
            self._transport().voidcmd("CDUP")
        current = self._attempt(self.pwd)
        return current.value if current.ok else ".."

    def mkdir(self, path: str) -> None:
        self._connect_if_needed()
        with self._operation(Operation.CREATE_FOLDER, path=path):
            self._transport().mkd(path)

    def rmdir(self, path: str) -> None:
        self._connect_if_needed()
        with self._operation(Operation.REMOVE_FOLDER, path=path):
            self._transport().rmd(path)

    # File operations

    def delete(self, path: str) -> None:
        self._connect_if_needed()
        with self._operation(Operation.DELETE_FILE, path=path):
            self._transport().delete(path)

    def rename(self, old_name: str, new_name: str) -> None:
        self._connect_if_needed()
        with self._operation(Operation.RENAME, old_name=old_name, new_name=new_name):
            self._transport().rename(old_name, new_name)

    def chmod(self, mode: Union[int, str], path: str) -> None:
        self._connect_if_needed()
        try:
            octal = _octal_mode(mode)
        except ValueError as e:
            raise ChmodError(self._host, mode, path, e) from e

        with self._operation(Operation.CHMOD, mode=mode, path=path):
            self._transport().voidcmd(f"SITE CHMOD {octal} {path}")

    def size(self, path: str) -> int:
        self._connect_if_needed()
        ftp = self._transport()
        with self._operation(Operation.SIZE, path=path):
            # Many servers refuse SIZE in ASCII mode
            ftp.voidcmd("TYPE I")
            reply = ftp.sendcmd(f"SIZE {path}")

        value = _reply_value(reply, "213")
        if value is None or not value.isdigit():
            raise FileSystemError(self._host, FileSystemOperation.SIZE, path)
        return int(value)

    def mdtm(self, path: str) -> datetime:
        self._connect_if_needed()
        with self._operation(Operation.MODIFICATION_TIME, path=path):
            reply = self._transport().sendcmd(f"MDTM {path}")

        value = _reply_value(reply, "213")
        try:
            if value is None:
                raise ValueError(reply)
            # YYYYMMDDHHMMSS[.sss], always UTC
            modified = datetime.strptime(value.split(".")[0], "%Y%m%d%H%M%S")
        except ValueError as e:
            raise FileSystemError(
                self._host, FileSystemOperation.MODIFICATION_TIME, path, e
            ) from e
        return modified.replace(tzinfo=timezone.utc)

    def file_exists(self, path: str) -> bool:
        self._connect_if_needed()
        if self._attempt(self.mdtm, path).ok:
            return True

        # MDTM does not work on directories: try to enter it instead.
        origin = self._attempt(self.pwd)
        if not self._attempt(self._change_folder, path).ok:
            return False
        if origin.ok:
            self._attempt(self._change_folder, origin.value)
        return True

    # Transfers

    def _run_async(self, operation: Operation, continuation: Continuation,
                   progress: Optional[ProgressCallback]) -> None:
        state = run_continuation(continuation, progress)
        if state is TransferState.FAILED:
            error = continuation.error or RuntimeError("transfer failed")
            classified = self._classified(operation, error)
            assert classified is not None
            raise classified from error

    def get(
        self,
        remote: str,
        local: Optional[LocalFile] = None,
        mode: TransferMode = TransferMode.BINARY,
        asynchronous: bool = False,
        progress: Optional[ProgressCallback] = None,
    ) -> str:
        self._connect_if_needed()
        ftp = self._transport()
        if local is None or (isinstance(local, str) and not local.strip()):
            local = Path.cwd() / PurePosixPath(remote).name
        local_name = local_file_name(local)
        created = is_local_path(local) and not Path(local_name).exists()

        try:
            with self._operation(
                Operation.DOWNLOAD, remote=remote, local=local_name, asynchronous=asynchronous
            ):
                with _open_local(local, "wb") as fp:
                    if asynchronous:
                        continuation = DownloadContinuation(ftp, remote, fp, mode)
                        self._run_async(Operation.DOWNLOAD, continuation, progress)
                    else:
                        self._retrieve(ftp, remote, fp, mode, progress)
        except FtplinkError:
            if created:
                self._discard_partial(local_name)
            raise

        logger.debug("Downloaded %s to %s", remote, local_name)
        return local_name

    @staticmethod
    def _discard_partial(path: str) -> None:
        try:
            Path(path).unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove partial download %s: %s", path, e)

    @staticmethod
    def _retrieve(
        ftp: FTP,
        remote: str,
        fp: BinaryIO,
        mode: TransferMode,
        progress: Optional[ProgressCallback],
    ) -> None:
        bytes_so_far = 0

        def callback(data: bytes) -> None:
            nonlocal bytes_so_far
            fp.write(data)
            bytes_so_far += len(data)
            if progress:
                progress(bytes_so_far)

        if mode is TransferMode.BINARY:
            ftp.retrbinary(f"RETR {remote}", callback)
        else:
            ftp.retrlines(
                f"RETR {remote}", lambda line: callback(line.encode(ftp.encoding) + b"\n")
            )

    def put(
        self,
        local: LocalFile,
        remote: Optional[str] = None,
        mode: TransferMode = TransferMode.BINARY,
        asynchronous: bool = False,
        progress: Optional[ProgressCallback] = None,
    ) -> str:
        self._connect_if_needed()
        ftp = self._transport()
        local_name = local_file_name(local)
        if remote is None or not remote.strip():
            if not is_local_path(local):
                raise TransferError(
                    self._host,
                    TransferDirection.UPLOAD,
                    None,
                    local_name,
                    asynchronous,
                    message="You must specify the remote filename when the source is a file object",
                )
            remote = Path(local_name).name

        with self._operation(
            Operation.UPLOAD, remote=remote, local=local_name, asynchronous=asynchronous
        ):
            with _open_local(local, "rb") as fp:
                if asynchronous:
                    continuation = UploadContinuation(ftp, remote, fp, mode)
                    self._run_async(Operation.UPLOAD, continuation, progress)
                else:
                    self._store(ftp, remote, fp, mode, progress)

        logger.debug("Uploaded %s to %s", local_name, remote)
        return remote

    @staticmethod
    def _store(
        ftp: FTP,
        remote: str,
        fp: BinaryIO,
        mode: TransferMode,
        progress: Optional[ProgressCallback],
    ) -> None:
        bytes_so_far = 0

        def callback(data: bytes) -> None:
            nonlocal bytes_so_far
            bytes_so_far += len(data)
            if progress:
                progress(bytes_so_far)

        if mode is TransferMode.BINARY:
            ftp.storbinary(f"STOR {remote}", fp, callback=callback)
        else:
            ftp.storlines(f"STOR {remote}", fp, callback=callback)

    # Commands

    def execute(self, command: str, raw: bool = False) -> Union[bool, List[str]]:
        if not raw and command.startswith("SITE EXEC "):
            self.exec(command[len("SITE EXEC "):])
            return True
        if not raw and command.startswith("SITE "):
            self.site(command[len("SITE "):])
            return True
        return self.raw(command)

    def exec(self, command: str) -> None:
        """Send ``SITE EXEC <command>``."""
        self._connect_if_needed()
        full_command = f"SITE EXEC {command}"
        with self._operation(Operation.EXEC, command=full_command):
            self._transport().voidcmd(full_command)

    def site(self, command: str) -> None:
        """Send ``SITE <command>``."""
        self._connect_if_needed()
        full_command = f"SITE {command}"
        with self._operation(Operation.SITE, command=full_command):
            self._transport().voidcmd(full_command)

    def raw(self, command: str) -> List[str]:
        """Send any command and return the reply lines without interpreting them."""
        self._connect_if_needed()
        ftp = self._transport()
        with self._operation(Operation.RAW, command=command):
            ftp.putcmd(command)
            reply = ftp.getmultiline()
        return reply.splitlines()
