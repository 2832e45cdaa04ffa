"""Directory listing converters."""

from enum import Enum
from typing import Optional

from ftplink.converters.converter import ListingConverter, ListingResult
from ftplink.converters.simple import SimpleListingConverter
from ftplink.converters.unix import UnixListingConverter
from ftplink.converters.windows import WindowsListingConverter


class SystemType(Enum):
    UNIX = "unix"
    WINDOWS = "windows"
    UNKNOWN = "unknown"


def system_type_from_reply(reply: Optional[str]) -> SystemType:
    """Map a ``SYST`` reply (with or without the ``215`` code) to a system type."""
    if not reply:
        return SystemType.UNKNOWN
    text = reply.strip()
    code, _, rest = text.partition(" ")
    if code.isdigit():
        text = rest
    words = text.lower().split()
    if not words:
        return SystemType.UNKNOWN
    if words[0] == "unix":
        return SystemType.UNIX
    if words[0].startswith("windows"):
        return SystemType.WINDOWS
    return SystemType.UNKNOWN


def converter_for(system_type: SystemType) -> ListingConverter:
    if system_type is SystemType.WINDOWS:
        return WindowsListingConverter()
    return UnixListingConverter()


__all__ = [
    "ListingConverter",
    "ListingResult",
    "SimpleListingConverter",
    "UnixListingConverter",
    "WindowsListingConverter",
    "SystemType",
    "system_type_from_reply",
    "converter_for",
]
