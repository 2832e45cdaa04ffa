import logging
import tomllib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Any, Type, Optional, IO, List, Union

from ftplink.exceptions import ConfigurationError, RemoteNotFoundError, ValidationError

if TYPE_CHECKING:
    from ftplink.connection import ConnectionOptions
    from ftplink.protocols import ProtocolRegistry

__all__ = ["ConfigurationError", "RemoteNotFoundError", "ValidationError", "BaseRemoteConfig", "Config"]

logger = logging.getLogger(__name__)


@dataclass
class BaseRemoteConfig(ABC):
    name: str
    type: str

    @classmethod
    @abstractmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "BaseRemoteConfig":
        """Build the remote named ``name`` from its TOML table.

        Raises:
            ValidationError: If a required field is missing
        """

    @abstractmethod
    def validate(self) -> None:
        """Check field values.

        Raises:
            ValidationError: If a field is out of range or inconsistent
        """

    @abstractmethod
    def to_options(self, registry: Optional["ProtocolRegistry"] = None) -> "ConnectionOptions":
        """Build the connection options described by this remote."""


class _SkippedRemote(ConfigurationError):
    """A TOML table that does not describe a remote at all."""


@dataclass
class Config:
    """Named remotes loaded from a TOML file.

    Tables that cannot be turned into a remote are left out and reported
    in :attr:`warnings`; the file as a whole only fails when it cannot be
    parsed or yields no remote.
    """

    remotes: Dict[str, BaseRemoteConfig]
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "Config":
        try:
            with open(path, "rb") as config_file:
                return cls.from_file(config_file)
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file '{path}'", e) from e

    @classmethod
    def from_file(cls, config_file: Optional[IO[bytes]]) -> "Config":
        """Load remotes from an open TOML file.

        Each top-level table describes one remote::

            [backup]
            type = "ftps"
            host = "ftp.example.com"
            username = "alice"

        Raises:
            ConfigurationError: If the file is missing or is not valid TOML
            ValidationError: If no remote could be loaded
        """
        if config_file is None:
            raise ConfigurationError("Configuration file not provided")

        try:
            config_data = tomllib.load(config_file)
        except (tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
            raise ConfigurationError("Failed to parse TOML configuration", e) from e

        remotes: Dict[str, BaseRemoteConfig] = {}
        warnings: List[str] = []

        for remote_name, remote_data in config_data.items():
            try:
                remotes[remote_name] = cls._load_remote(remote_name, remote_data)
            except _SkippedRemote as e:
                warnings.append(f"{e.message} - skipping")
            except ConfigurationError as e:
                warnings.append(
                    f"Invalid configuration for remote '{remote_name}': {e} - skipping"
                )

        for warning in warnings:
            logger.warning("%s", warning)

        config = cls(remotes=remotes, warnings=warnings)
        config.validate()
        return config

    @classmethod
    def _load_remote(cls, name: str, data: Any) -> BaseRemoteConfig:
        if not isinstance(data, dict):
            raise _SkippedRemote(f"Remote '{name}' configuration must be a table")
        if "type" not in data:
            raise _SkippedRemote(f"Remote '{name}' missing required 'type' field")

        config_class = cls._get_config_class(data["type"])
        if config_class is None:
            raise _SkippedRemote(f"Unknown remote type '{data['type']}' for remote '{name}'")

        remote = config_class.from_dict(name, data)
        remote.validate()
        return remote

    @staticmethod
    def _get_config_class(remote_type: str) -> Optional[Type[BaseRemoteConfig]]:
        from .remotes import REMOTE_TYPES

        return REMOTE_TYPES.get(remote_type)

    def get_remote(self, name: str) -> BaseRemoteConfig:
        """
        Raises:
            RemoteNotFoundError: If no remote is called ``name``
        """
        try:
            return self.remotes[name]
        except KeyError:
            available = ", ".join(sorted(self.remotes)) or "(none)"
            raise RemoteNotFoundError(
                f"Remote '{name}' not found in configuration. Available remotes: {available}"
            ) from None

    def validate(self) -> None:
        if not self.remotes:
            raise ValidationError("Configuration must contain at least one remote")

        for remote_name, remote_config in self.remotes.items():
            try:
                remote_config.validate()
            except ValidationError as e:
                raise ValidationError(f"Remote '{remote_name}': {e}") from e

    def list_remotes(self) -> Dict[str, str]:
        return {name: config.type for name, config in self.remotes.items()}

    def get_warnings(self) -> List[str]:
        return list(self.warnings)
