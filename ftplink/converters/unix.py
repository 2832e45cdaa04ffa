from datetime import datetime, timedelta
from typing import Callable, Optional
import re

from ftplink.converters.converter import ListingConverter
from ftplink.fileentry import FileEntry


class UnixListingConverter(ListingConverter):
    """Parses ``ls -l`` style listings.

    Each line holds rights, link count, owner, group, size, month, day,
    year-or-time and the file name. The name is everything after the
    eighth field, so names containing spaces survive.
    """

    _RIGHTS_PATTERN = re.compile(r"^[-bcdlpsD][-rwxsStTlL]{9}[+.@]?$")
    _TOTAL_PATTERN = re.compile(r"^total\s+\d+", re.IGNORECASE)
    _LINK_SEPARATOR = " -> "

    def __init__(self, now: Optional[Callable[[], datetime]] = None) -> None:
        self._now = now or datetime.now

    def parse_line(self, line: str) -> Optional[FileEntry]:
        fields = line.split(None, 8)
        if len(fields) < 9:
            return None

        rights, _links, owner, group, size, month, day, year_or_time, name = fields
        if not self._RIGHTS_PATTERN.match(rights) or not size.isdigit():
            return None

        link_target = None
        if rights.startswith("l") and self._LINK_SEPARATOR in name:
            name, link_target = name.split(self._LINK_SEPARATOR, 1)

        return FileEntry(
            filename=name,
            rights=rights,
            owner=owner,
            group=group,
            size=int(size),
            modified_time=self._parse_date(month, day, year_or_time),
            is_directory=rights.startswith("d"),
            link_target=link_target,
        )

    def is_ignorable(self, line: str) -> bool:
        return bool(self._TOTAL_PATTERN.match(line))

    def _parse_date(self, month: str, day: str, year_or_time: str) -> Optional[datetime]:
        if ":" not in year_or_time:
            try:
                return datetime.strptime(f"{month} {day} {year_or_time}", "%b %d %Y")
            except ValueError:
                return None

        # Recent files show a time instead of the year.
        now = self._now()
        try:
            parsed = datetime.strptime(
                f"{now.year} {month} {day} {year_or_time}", "%Y %b %d %H:%M"
            )
        except ValueError:
            return None
        if parsed > now + timedelta(days=1):
            try:
                parsed = parsed.replace(year=now.year - 1)
            except ValueError:
                # Feb 29 does not exist in the previous year
                return None
        return parsed
