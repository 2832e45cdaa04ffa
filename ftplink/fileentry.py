from dataclasses import dataclass
from datetime import datetime
from enum import Enum, auto
from typing import Optional


class FileType(Enum):
    FILE = auto()
    DIRECTORY = auto()
    LINK = auto()


SPECIAL_NAMES = (".", "..")


@dataclass(frozen=True)
class FileEntry:
    """One record of a directory listing.

    Fields a listing dialect does not provide are left empty (``""``)
    or ``None``.
    """

    filename: str
    rights: str = ""
    owner: str = ""
    group: str = ""
    size: Optional[int] = None
    modified_time: Optional[datetime] = None
    is_directory: bool = False
    link_target: Optional[str] = None

    @property
    def name(self) -> str:
        return self.filename

    @property
    def is_link(self) -> bool:
        return self.rights.startswith("l")

    @property
    def is_file(self) -> bool:
        return not self.is_directory and not self.is_link

    @property
    def is_special(self) -> bool:
        return self.filename in SPECIAL_NAMES

    @property
    def filetype(self) -> FileType:
        if self.is_directory:
            return FileType.DIRECTORY
        if self.is_link:
            return FileType.LINK
        return FileType.FILE

    def __str__(self) -> str:
        return f"{str(self.filetype)} {self.filename}"
