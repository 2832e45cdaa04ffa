from abc import ABCMeta, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable, List, Optional
import logging

from ftplink.fileentry import FileEntry

logger = logging.getLogger(__name__)


@dataclass
class ListingResult:
    entries: List[FileEntry] = field(default_factory=list)
    skipped: int = 0


class ListingConverter(metaclass=ABCMeta):
    """Turns raw listing lines into :class:`FileEntry` objects.

    Lines that do not fit the dialect are skipped and counted in
    :attr:`ListingResult.skipped`. Blank lines are ignored.
    """

    def convert(self, lines: Iterable[str]) -> ListingResult:
        result = ListingResult()
        for raw in lines:
            line = raw.rstrip("\r\n")
            if not line.strip():
                continue
            entry = self.parse_line(line)
            if entry is None:
                if not self.is_ignorable(line):
                    logger.debug("%s skipped unparseable line: %r", type(self).__name__, line)
                    result.skipped += 1
                continue
            result.entries.append(entry)
        return result

    def parse(self, lines: Iterable[str]) -> List[FileEntry]:
        """
        Convert raw listing lines.

        Args:
            lines: Lines as returned by the server, without interpretation.

        Returns:
            The parsed entries, in listing order
        """
        return self.convert(lines).entries

    @abstractmethod
    def parse_line(self, line: str) -> Optional[FileEntry]:
        """
        Parse a single non-blank line.

        Returns:
            The entry, or None if the line does not match the dialect
        """

    def is_ignorable(self, line: str) -> bool:
        """Whether an unparsed line is expected noise rather than an error."""
        return False
