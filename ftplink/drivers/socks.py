"""ftplib transports tunnelled through a SOCKS5 proxy (requires PySocks)."""

from ftplib import FTP, FTP_TLS, error_reply
from typing import Any, Optional, Tuple
import re
import socket

try:
    import socks

    SOCKS_AVAILABLE = True
except ImportError:
    SOCKS_AVAILABLE = False


def _proxy_socket(
    host: str,
    port: int,
    username: Optional[str],
    password: Optional[str],
    timeout: Any,
) -> socket.socket:
    sock = socks.socksocket(socket.AF_INET, socket.SOCK_STREAM)
    sock.set_proxy(
        socks.SOCKS5,
        host,
        port,
        username=username,
        password=password,
    )
    # ftplib leaves the timeout as a sentinel object when none is given
    if isinstance(timeout, (int, float)) and timeout >= 0:
        sock.settimeout(timeout)
    return sock


class _Socks5Mixin:
    """Opens the control and data connections through the proxy.

    Proxy settings are keyword-only so the ftplib constructors further
    down the MRO keep their own positional signatures.
    """

    def __init__(
        self,
        *args: Any,
        proxy_host: str = "",
        proxy_port: int = 1080,
        proxy_username: Optional[str] = None,
        proxy_password: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        self.proxy_host = proxy_host
        self.proxy_port = proxy_port
        self.proxy_username = proxy_username
        self.proxy_password = proxy_password
        super().__init__(*args, **kwargs)  # type: ignore[call-arg]

    def _open_proxied(self) -> socket.socket:
        return _proxy_socket(
            self.proxy_host,
            self.proxy_port,
            self.proxy_username,
            self.proxy_password,
            self.timeout,  # type: ignore[attr-defined]
        )

    def connect(
        self,
        host: str = "",
        port: int = 0,
        timeout: float = -999,
        source_address: Optional[Tuple[str, int]] = None,
    ) -> str:
        ftp: Any = self
        if host:
            ftp.host = host
        if port > 0:
            ftp.port = port
        if timeout != -999:
            ftp.timeout = timeout

        ftp.sock = self._open_proxied()
        ftp.sock.connect((ftp.host, ftp.port))
        ftp.af = ftp.sock.family
        ftp.file = ftp.sock.makefile("r", encoding=ftp.encoding)
        ftp.welcome = ftp.getresp()
        return ftp.welcome

    def ntransfercmd(self, cmd: str, rest: Optional[int] = None) -> Tuple[socket.socket, Optional[int]]:
        ftp: Any = self
        if not ftp.passiveserver:
            raise error_reply("Active FTP mode is not supported through a SOCKS5 proxy")

        size: Optional[int] = None
        host, port = ftp.makepasv()
        conn = self._open_proxied()
        conn.connect((host, port))
        try:
            if rest is not None:
                ftp.sendcmd("REST %s" % rest)
            resp = ftp.sendcmd(cmd)
            if resp[0] == "2":
                resp = ftp.getresp()
            if resp[0] != "1":
                raise error_reply(resp)
        except BaseException:
            conn.close()
            raise
        if resp[:3] == "150":
            match = re.search(r"\((\d+) bytes\)", resp)
            if match:
                size = int(match.group(1))
        return conn, size


class Socks5FTP(_Socks5Mixin, FTP):
    """FTP transport that routes both channels through a SOCKS5 proxy."""


class Socks5FTP_TLS(_Socks5Mixin, FTP_TLS):
    """FTPS transport that routes both channels through a SOCKS5 proxy."""

    def ntransfercmd(self, cmd: str, rest: Optional[int] = None) -> Tuple[socket.socket, Optional[int]]:
        conn, size = super().ntransfercmd(cmd, rest)
        if self._prot_p:  # type: ignore[attr-defined]
            conn = self.context.wrap_socket(
                conn, server_hostname=self.host, session=self.sock.session  # type: ignore[union-attr]
            )
        return conn, size
