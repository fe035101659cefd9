"""File name sanitizing applied before an asset is committed."""

from __future__ import annotations

import unicodedata
from typing import Callable

from ..exceptions import FileNameNotAllowedError

FileNameSanitizer = Callable[[str], str]

_REPLACED_CHARACTERS = ("#", "/", "\\", " ")

EXECUTABLE_SUFFIXES = (
    ".php",
    ".php3",
    ".php4",
    ".php5",
    ".php7",
    ".php8",
    ".phtml",
    ".phar",
    ".cgi",
    ".asp",
    ".aspx",
    ".jsp",
)


def _strip_control_characters(value: str) -> str:
    return "".join(ch for ch in value if not unicodedata.category(ch).startswith("C"))


def sanitize_file_name(file_name: str) -> str:
    """Return a storage-safe file name.

    Control and format characters are dropped, path separators, ``#`` and
    spaces become ``-``. Names ending in a server-executable suffix are
    rejected with :class:`FileNameNotAllowedError`.
    """
    sanitized = _strip_control_characters(file_name)
    for character in _REPLACED_CHARACTERS:
        sanitized = sanitized.replace(character, "-")
    if sanitized.lower().endswith(EXECUTABLE_SUFFIXES):
        raise FileNameNotAllowedError(file_name)
    if not sanitized.strip(".-"):
        raise FileNameNotAllowedError(file_name)
    return sanitized


def default_name(file_name: str) -> str:
    """Display name derived from a file name: the stem without its extension."""
    stem, dot, _ = file_name.rpartition(".")
    return stem if dot and stem else file_name
