from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Any, Optional, Type

from .base import BaseRemoteConfig, ValidationError

if TYPE_CHECKING:
    from ftplink.connection import ConnectionOptions
    from ftplink.protocols import ProtocolRegistry


def _check_port(port: Any, what: str) -> None:
    if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
        raise ValidationError(f"{what} port must be an integer between 1 and 65535, got {port!r}")


@dataclass
class ProxyConfig:
    """SOCKS5 proxy configuration."""

    host: str
    port: int = 1080
    username: Optional[str] = None
    password: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProxyConfig":
        if "host" not in data:
            raise ValidationError("Proxy configuration requires 'host' field")

        return cls(
            host=data["host"],
            port=data.get("port", 1080),
            username=data.get("username"),
            password=data.get("password"),
        )

    def validate(self) -> None:
        if not self.host:
            raise ValidationError("Proxy host cannot be empty")

        _check_port(self.port, "Proxy")

    def to_options(self) -> Dict[str, str]:
        options = {"proxy_host": self.host, "proxy_port": str(self.port)}
        if self.username is not None:
            options["proxy_user"] = self.username
        if self.password is not None:
            options["proxy_password"] = self.password
        return options


@dataclass
class FtpRemoteConfig(BaseRemoteConfig):
    """An FTP or FTPS remote.

    Either ``url`` (a connection string) or ``host`` must be given. When
    ``url`` is set it wins over the individual fields.
    """

    url: Optional[str] = None
    host: Optional[str] = None
    port: int = 21
    username: str = "anonymous"
    password: str = ""
    passive: bool = True
    timeout: int = 30
    proxy: Optional[ProxyConfig] = None

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "FtpRemoteConfig":
        if "url" not in data and "host" not in data:
            raise ValidationError("FTP configuration requires 'url' or 'host' field")

        proxy = None
        if "proxy" in data and isinstance(data["proxy"], dict):
            proxy = ProxyConfig.from_dict(data["proxy"])

        return cls(
            name=name,
            type=data.get("type", "ftp"),
            url=data.get("url"),
            host=data.get("host"),
            port=data.get("port", 21),
            username=data.get("username", "anonymous"),
            password=data.get("password", ""),
            passive=data.get("passive", True),
            timeout=data.get("timeout", 30),
            proxy=proxy,
        )

    @property
    def tls(self) -> bool:
        return self.type == "ftps"

    def validate(self) -> None:
        if self.type not in ("ftp", "ftps"):
            raise ValidationError(f"Expected type 'ftp' or 'ftps', got '{self.type}'")

        if not self.url and not self.host:
            raise ValidationError("FTP URL or host cannot be empty")

        _check_port(self.port, "FTP")

        if not isinstance(self.passive, bool):
            raise ValidationError("Passive setting must be a boolean")

        if not isinstance(self.timeout, int) or self.timeout < 1:
            raise ValidationError("Timeout must be a positive integer")

        if self.proxy:
            self.proxy.validate()

    def to_options(self, registry: Optional["ProtocolRegistry"] = None) -> "ConnectionOptions":
        from ftplink.connection import ConnectionOptions, parse_connection_string
        from ftplink.protocols import FtpProtocol

        if self.url:
            return parse_connection_string(self.url, registry)

        options = {"passive": str(self.passive).lower(), "timeout": str(self.timeout)}
        if self.proxy:
            options.update(self.proxy.to_options())

        return ConnectionOptions(
            protocol=FtpProtocol.FTPS if self.tls else FtpProtocol.FTP,
            host=self.host or "",
            port=self.port,
            user=self.username or "anonymous",
            password=self.password,
            options=options,
        )


REMOTE_TYPES: Dict[str, Type[BaseRemoteConfig]] = {
    "ftp": FtpRemoteConfig,
    "ftps": FtpRemoteConfig,
}
