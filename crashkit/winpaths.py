"""Windows-style path manipulation, usable on any platform.

Both ``/`` and ``\\`` count as separators, drive letters such as ``C:`` are
recognised, and file name comparisons ignore case.
"""

from __future__ import annotations

from dataclasses import dataclass

_SEPARATORS = ("/", "\\")


def _has_drive(text: str) -> bool:
    """Whether ``text`` starts with an ASCII drive letter followed by ``:``."""
    return len(text) >= 2 and text[0].isascii() and text[0].isalpha() and text[1] == ":"


def _fold(text: str) -> str:
    return text.lower()


@dataclass(frozen=True)
class WinPath:
    """An immutable Windows path with string-level join semantics."""

    path: str

    def __str__(self) -> str:
        return self.path

    def __fspath__(self) -> str:
        return self.path

    def join(self, other: str) -> WinPath:
        """Join ``other`` onto this path.

        A drive-qualified ``other`` replaces the path. A rooted ``other`` keeps
        this path's drive letter if it has one and replaces the rest. Anything
        else is appended after a ``\\`` unless the path already ends in a
        separator or is empty.
        """
        if _has_drive(other):
            return WinPath(other)
        if other[:1] in _SEPARATORS and other:
            if _has_drive(self.path):
                return WinPath(self.path[0] + ":" + other)
            return WinPath(other)
        need_sep = bool(self.path) and self.path[-1] not in _SEPARATORS
        return WinPath(self.path + ("\\" if need_sep else "") + other)

    def append(self, suffix: str) -> WinPath:
        """Concatenate ``suffix`` to the path text without a separator."""
        return WinPath(self.path + suffix)

    def _filename_start(self) -> int:
        last = max(self.path.rfind("/"), self.path.rfind("\\"))
        return last + 1

    def filename(self) -> str:
        """The part after the last separator, or the whole path if there is none."""
        return self.path[self._filename_start():]

    def filename_matches(self, filename: str) -> bool:
        """Compare the file name with ``filename``, ignoring case."""
        return _fold(self.filename()) == _fold(filename)

    def ends_with(self, suffix: str) -> bool:
        """Whether the path ends with ``suffix``, ignoring case."""
        if len(suffix) > len(self.path):
            return False
        return _fold(self.path[len(self.path) - len(suffix):]) == _fold(suffix)

    def parent(self) -> WinPath:
        """The path with its last component and the separator before it removed.

        A path without any separator is returned unchanged.
        """
        start = self._filename_start()
        if start > 0:
            return WinPath(self.path[: start - 1])
        return WinPath(self.path)

    def dir_prefixes(self) -> list[str]:
        """The directories to create, in order, to make this whole path exist.

        Every separator that is neither the first character nor directly after
        a drive colon marks a prefix; separators already passed are normalised
        to ``\\``. The full path comes last.
        """
        chars = list(self.path)
        prefixes: list[str] = []
        for idx, char in enumerate(chars):
            if char in _SEPARATORS and idx > 0 and chars[idx - 1] != ":":
                prefixes.append("".join(chars[:idx]))
                chars[idx] = "\\"
        prefixes.append("".join(chars))
        return prefixes