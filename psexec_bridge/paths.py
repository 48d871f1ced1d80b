"""
PsExec Bridge - Path validation.

Two layers, always applied in this order before a path reaches a command
template:

1. sanitize: strip the shell metacharacters ``& ; | ` $ < >``.
2. grammar: the result must be a drive-rooted Windows path. ``%`` is refused
   because cmd expands ``%VAR%`` even inside quotes.

Names (new folder, rename target) are never stripped, only accepted or
rejected, so the name applied is always the name the caller asked for.
"""
import ntpath
import re

from .errors import InvalidName, InvalidPath, MissingArgument

RE_SHELL_META = re.compile(r"[&;|`$<>]")
RE_WINDOWS_PATH = re.compile(r'^[a-zA-Z]:\\(?:[^\\/:*?"<>|%\r\n]+\\)*[^\\/:*?"<>|%\r\n]*$')
RE_INVALID_NAME = re.compile(r'[\\/:*?"<>|%\r\n]')


class ValidatedPath(str):
    """A path that has been sanitized and grammar-checked."""


def sanitize(raw: str) -> str:
    return RE_SHELL_META.sub("", raw)


def is_valid_windows_path(candidate: str) -> bool:
    return RE_WINDOWS_PATH.fullmatch(candidate) is not None


def validate_path(raw, what: str = "path") -> ValidatedPath:
    if raw is None or not str(raw).strip():
        raise MissingArgument(f"{what.capitalize()} is required")
    cleaned = sanitize(str(raw))
    if not is_valid_windows_path(cleaned):
        raise InvalidPath(details=f"Rejected {what}: {cleaned!r}")
    return ValidatedPath(cleaned)


def validate_name(raw, what: str = "name") -> str:
    if raw is None or raw == "":
        raise MissingArgument(f"{what.capitalize()} is required")
    if RE_INVALID_NAME.search(raw) or RE_SHELL_META.search(raw):
        raise InvalidName(f"{what.capitalize()} contains invalid characters")
    if raw.strip() in (".", ".."):
        raise InvalidName(f"{what.capitalize()} may not be '.' or '..'")
    # Windows drops trailing spaces and dots, which would apply a different name
    if not raw.strip() or raw != raw.rstrip(" ."):
        raise InvalidName(f"{what.capitalize()} may not be blank or end in a space or dot")
    return raw


def validate_query(raw) -> str:
    """Search fragments go inside ``*<query>*``, so they follow the name rules."""
    if raw is None or not str(raw).strip():
        raise MissingArgument("Search query is required")
    return validate_name(sanitize(str(raw).strip()), what="search query")


def join(directory: ValidatedPath, name: str) -> ValidatedPath:
    return ValidatedPath(ntpath.join(directory, name))


def parent(path: ValidatedPath) -> ValidatedPath:
    head = ntpath.dirname(path.rstrip("\\"))
    if head.endswith(":"):
        head += "\\"
    return ValidatedPath(head)


def basename(path: str) -> str:
    return ntpath.basename(path.rstrip("\\"))


def extension(filename: str) -> str:
    """Lower-case extension without the dot, '' when there is none."""
    return ntpath.splitext(filename)[1].lstrip(".").lower()
