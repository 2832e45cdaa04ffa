from dataclasses import dataclass, field
from typing import Callable, Optional

from ftplink.protocols import ProtocolRegistry, default_registry


@dataclass(frozen=True)
class Settings:
    """Process-wide choices made once by the hosting application.

    Attributes:
        registry: Protocol registry used to resolve connection strings.
            Defaults to the built-in ftp/ftps registry.
        diagnostic_handler: Called with (operation, message) for transport
            failures that cannot be classified. Defaults to logging them.
    """

    registry: Optional[ProtocolRegistry] = None
    diagnostic_handler: Optional[Callable[[str, str], None]] = field(default=None)

    def resolve_registry(self) -> ProtocolRegistry:
        return self.registry if self.registry is not None else default_registry()
