"""
PsExec Bridge - Listing parser.
Turns the console text of a remote ``dir`` into DirectoryEntry records.

Input looks like:

     Volume in drive C has no label.
     Directory of C:\\Users\\Public

    03/14/2024  09:12 AM    <DIR>          .
    03/14/2024  09:12 AM    <DIR>          Sub1
    03/14/2024  09:15 AM             1,234 notes.txt
                   1 File(s)          1,234 bytes

Unparseable text yields an empty list, never an exception.
"""
import ntpath
import re
from dataclasses import dataclass
from typing import Iterator, List, Optional

from .models import DirectoryEntry


# ─── Line grammar ─────────────────────────────────────────────────────────────

RE_HEADER = re.compile(r"Directory of\s+(.+?)\s*$")
RE_ENTRY = re.compile(
    r"^\s*(?P<date>\d{2}[/.\-]\d{2}[/.\-]\d{4})"
    r"\s+(?P<time>\d{1,2}:\d{2}(?:\s*[AaPp][Mm])?)"
    r"\s+(?P<kind><DIR>|<JUNCTION>|<SYMLINKD>|[\d,.\u00a0]+)"
    r"\s(?P<name>.+?)\s*$"
)
RE_LINK_TARGET = re.compile(r"\s+\[[^\]]*\]$")
RE_SIZE_SEPARATORS = re.compile(r"[,.\u00a0]")
RE_SPACES = re.compile(r"\s+")

SKIP_MARKERS = ("File(s)", "Dir(s)", "Volume in drive", "Volume Serial Number", "Total Files Listed")
DIR_MARKERS = ("<DIR>", "<JUNCTION>", "<SYMLINKD>")
DOT_ENTRIES = (".", "..")


@dataclass
class _Row:
    directory: str
    name: str
    is_directory: bool
    size: Optional[int]
    date: str
    time: str

    @property
    def path(self) -> str:
        return ntpath.join(self.directory, self.name) if self.directory else self.name


def _rows(console_text: str) -> Iterator[_Row]:
    current_dir = ""
    for line in console_text.splitlines():
        if not line.strip():
            continue
        m = RE_ENTRY.match(line)
        if not m:
            if any(marker in line for marker in SKIP_MARKERS):
                continue
            header = RE_HEADER.search(line)
            if header:
                current_dir = header.group(1)
            continue

        kind = m.group("kind")
        is_directory = kind in DIR_MARKERS
        name = m.group("name").lstrip()
        if kind in ("<JUNCTION>", "<SYMLINKD>"):
            name = RE_LINK_TARGET.sub("", name)

        size = None
        if not is_directory:
            digits = RE_SIZE_SEPARATORS.sub("", kind)
            if not digits.isdigit():
                continue
            size = int(digits)

        yield _Row(
            directory=current_dir,
            name=name,
            is_directory=is_directory,
            size=size,
            date=m.group("date"),
            time=RE_SPACES.sub(" ", m.group("time")),
        )


def _to_entry(row: _Row) -> DirectoryEntry:
    return DirectoryEntry(
        name=row.name,
        is_directory=row.is_directory,
        size=row.size,
        path=row.path,
        date=row.date,
        time=row.time,
    )


def parse_directory_listing(console_text: str) -> List[DirectoryEntry]:
    """Entries in listing order, without '.' and '..'."""
    return [_to_entry(row) for row in _rows(console_text) if row.name not in DOT_ENTRIES]


def _same_path(a: str, b: str) -> bool:
    return a.rstrip("\\").lower() == b.rstrip("\\").lower()


def find_entry(console_text: str, target: str) -> Optional[DirectoryEntry]:
    """
    Locate the record describing ``target`` itself in ``dir <target> /a`` output.
    A file lists as itself; a directory lists its contents, so its own record
    comes from the '.' row under its header.
    """
    for row in _rows(console_text):
        if row.name == "." and _same_path(row.directory, target):
            name = ntpath.basename(target.rstrip("\\")) or target
            return DirectoryEntry(
                name=name,
                is_directory=True,
                size=None,
                path=target,
                date=row.date,
                time=row.time,
            )
        if row.name not in DOT_ENTRIES and _same_path(row.path, target):
            return _to_entry(row)
    return None
