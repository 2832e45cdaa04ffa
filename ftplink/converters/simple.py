from typing import Optional

from ftplink.converters.converter import ListingConverter
from ftplink.fileentry import FileEntry, SPECIAL_NAMES


class SimpleListingConverter(ListingConverter):
    """Name-only listings (``NLST``).

    A bare name says nothing about its type: entries are reported as
    non-directories, except ``.`` and ``..``.
    """

    def parse_line(self, line: str) -> Optional[FileEntry]:
        return FileEntry(filename=line, is_directory=line in SPECIAL_NAMES)
