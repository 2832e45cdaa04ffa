from datetime import datetime
from typing import Optional
import re

from ftplink.converters.converter import ListingConverter
from ftplink.fileentry import FileEntry


class WindowsListingConverter(ListingConverter):
    """Parses IIS / ``dir`` style listings (``date time <DIR>|size name``)."""

    DIRECTORY_MARKER = "<DIR>"

    _PATTERN = re.compile(
        r"^(\d{2}-\d{2}-(?:\d{4}|\d{2}))\s+(\d{1,2}:\d{2}\s*(?:[AaPp][Mm])?)\s+"
        r"(<DIR>|\d+)\s+(.+)$"
    )

    def parse_line(self, line: str) -> Optional[FileEntry]:
        match = self._PATTERN.match(line)
        if not match:
            return None

        date_str, time_str, dir_or_size, name = match.groups()
        is_dir = dir_or_size == self.DIRECTORY_MARKER

        return FileEntry(
            filename=name,
            size=None if is_dir else int(dir_or_size),
            modified_time=self._parse_date(date_str, time_str),
            is_directory=is_dir,
        )

    @staticmethod
    def _parse_date(date_str: str, time_str: str) -> Optional[datetime]:
        time_str = time_str.replace(" ", "").upper()
        date_format = "%m-%d-%Y" if len(date_str) == 10 else "%m-%d-%y"
        time_format = "%I:%M%p" if time_str.endswith("M") else "%H:%M"
        try:
            return datetime.strptime(f"{date_str} {time_str}", f"{date_format} {time_format}")
        except ValueError:
            return None
