"""Filesystem paths, directory walking, buffered file I/O and lock files."""

from __future__ import annotations

import errno
import os
import sys
from collections.abc import Iterator
from contextlib import suppress
from dataclasses import dataclass
from typing import Union

try:
    import fcntl
except ImportError:  # pragma: no cover - non-POSIX platforms
    fcntl = None  # type: ignore[assignment]

try:
    import msvcrt
except ImportError:  # pragma: no cover - POSIX platforms
    msvcrt = None  # type: ignore[assignment]

MAX_READ_TO_BUFFER = 134217728
"""Files larger than this are never read into memory."""

_FILE_MODE = 0o664
_LOCK_MODE = 0o666
_DIR_MODE = 0o700

PathLike = Union[str, "os.PathLike[str]"]


def _dirname(path: str) -> str:
    """Directory part of ``path`` with the semantics of POSIX ``dirname``."""
    if not path:
        return "."
    stripped = path.rstrip("/")
    if not stripped:
        return "/"
    idx = stripped.rfind("/")
    if idx < 0:
        return "."
    head = stripped[:idx].rstrip("/")
    return head or "/"


def _write_all(fd: int, data: bytes, path: str) -> None:
    view = memoryview(data)
    while view:
        try:
            written = os.write(fd, view)
        except BlockingIOError:
            continue
        if written <= 0:
            raise OSError(errno.EIO, "short write", path)
        view = view[written:]


@dataclass(frozen=True)
class FsPath:
    """An immutable filesystem path with string-level join semantics."""

    path: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", os.fspath(self.path))

    def __fspath__(self) -> str:
        return self.path

    def __str__(self) -> str:
        return self.path

    def join(self, other: str) -> FsPath:
        """Join ``other`` onto this path; an absolute ``other`` replaces it."""
        if other.startswith("/"):
            return FsPath(other)
        sep = "" if self.path.endswith("/") else "/"
        return FsPath(self.path + sep + other)

    def append(self, suffix: str) -> FsPath:
        """Concatenate ``suffix`` to the path text without a separator."""
        return FsPath(self.path + suffix)

    def filename(self) -> str:
        """The part after the last ``/``, or the whole path if there is none."""
        return self.path.rpartition("/")[2]

    def filename_matches(self, filename: str) -> bool:
        return self.filename() == filename

    def ends_with(self, suffix: str) -> bool:
        return self.path.endswith(suffix)

    def parent(self) -> FsPath:
        """The directory containing this path."""
        return FsPath(_dirname(self.path))

    def absolute(self) -> FsPath:
        """The canonical absolute path; raises ``OSError`` if it does not exist."""
        return FsPath(os.path.realpath(self.path, strict=True))

    def is_dir(self) -> bool:
        return os.path.isdir(self.path)

    def is_file(self) -> bool:
        return os.path.isfile(self.path)

    def size(self) -> int:
        """Size in bytes of a regular file, 0 for anything else."""
        if not self.is_file():
            return 0
        try:
            return os.stat(self.path).st_size
        except OSError:
            return 0

    def remove(self) -> None:
        """Remove a file or an empty directory; a missing path is not an error."""
        try:
            if self.is_dir():
                os.rmdir(self.path)
            else:
                os.unlink(self.path)
        except FileNotFoundError:
            pass

    def remove_all(self) -> None:
        """Remove this path and, if it is a directory, everything below it."""
        if self.is_dir():
            for child in list(self.iter_directory()):
                with suppress(OSError):
                    child.remove_all()
        self.remove()

    def create_dir_all(self) -> None:
        """Create this directory and all of its missing parents."""
        prefixes = [
            self.path[:idx]
            for idx, char in enumerate(self.path)
            if char == "/" and idx > 0
        ]
        prefixes.append(self.path)
        for prefix in prefixes:
            try:
                os.mkdir(prefix, _DIR_MODE)
            except OSError as exc:
                if exc.errno not in (errno.EEXIST, errno.EINVAL):
                    raise

    def iter_directory(self) -> Iterator[FsPath]:
        """Yield the entries of this directory; nothing if it cannot be opened."""
        try:
            entries = os.scandir(self.path)
        except OSError:
            return
        with entries:
            for entry in entries:
                if entry.name in (".", ".."):
                    continue
                yield self.join(entry.name)

    def touch(self) -> None:
        """Create the file if it does not exist, leaving its contents alone."""
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, _FILE_MODE)
        os.close(fd)

    def read_bytes(self) -> bytes:
        """Read the whole file; raises ``ValueError`` if it is too large."""
        fd = os.open(self.path, os.O_RDONLY | getattr(os, "O_BINARY", 0))
        try:
            length = self.size()
            if length > MAX_READ_TO_BUFFER:
                raise ValueError(f"file too large to read: {self.path}")
            chunks: list[bytes] = []
            remaining = length
            while remaining > 0:
                try:
                    chunk = os.read(fd, remaining)
                except BlockingIOError:
                    continue
                if not chunk:
                    break
                chunks.append(chunk)
                remaining -= len(chunk)
            return b"".join(chunks)
        finally:
            os.close(fd)

    def _write_with_flags(self, data: bytes, flags: int) -> None:
        fd = os.open(self.path, flags | getattr(os, "O_BINARY", 0), _FILE_MODE)
        try:
            _write_all(fd, bytes(data), self.path)
        finally:
            os.close(fd)

    def write_bytes(self, data: bytes) -> None:
        """Replace the file's contents with ``data``."""
        self._write_with_flags(data, os.O_RDWR | os.O_CREAT | os.O_TRUNC)

    def append_bytes(self, data: bytes) -> None:
        """Append ``data`` to the file, creating it if needed."""
        self._write_with_flags(data, os.O_RDWR | os.O_CREAT | os.O_APPEND)


def current_exe() -> FsPath | None:
    """Path of the running executable, or ``None`` if it cannot be found."""
    if sys.platform.startswith("linux"):
        try:
            return FsPath(os.readlink("/proc/self/exe"))
        except OSError:
            return None
    if sys.platform == "darwin" and sys.executable:
        return FsPath(sys.executable)
    return None


class FileLock:
    """An exclusive, non-blocking lock held on a file that is removed on unlock."""

    def __init__(self, path: PathLike | FsPath) -> None:
        self.path = path if isinstance(path, FsPath) else FsPath(path)
        self.is_locked = False
        self._fd: int | None = None

    def try_lock(self) -> bool:
        """Try to take the lock without waiting; return whether it was taken."""
        self.is_locked = False
        if fcntl is not None:
            flags = os.O_RDONLY | os.O_CREAT | os.O_TRUNC
        else:
            flags = os.O_RDWR | os.O_CREAT | os.O_TRUNC
        try:
            fd = os.open(self.path.path, flags, _LOCK_MODE)
        except OSError:
            return False

        try:
            if fcntl is not None:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            else:
                msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
        except OSError:
            os.close(fd)
            return False

        if fcntl is not None:
            # The file may have been replaced between open and flock; make sure
            # the file on disk is still the one that was locked.
            try:
                same = os.fstat(fd).st_ino == os.stat(self.path.path).st_ino
            except OSError:
                same = False
            if not same:
                os.close(fd)
                return False

        self._fd = fd
        self.is_locked = True
        return True

    def unlock(self) -> None:
        """Release the lock and remove the lock file; no-op if not held."""
        if not self.is_locked or self._fd is None:
            return
        fd = self._fd
        if fcntl is not None:
            with suppress(OSError):
                self.path.remove()
            fcntl.flock(fd, fcntl.LOCK_UN)
            os.close(fd)
        else:
            with suppress(OSError):
                msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)
            os.close(fd)
            with suppress(OSError):
                self.path.remove()
        self._fd = None
        self.is_locked = False

    def __enter__(self) -> FileLock:
        if not self.try_lock():
            raise BlockingIOError(
                errno.EWOULDBLOCK, "lock is held elsewhere", self.path.path
            )
        return self

    def __exit__(self, *args: object) -> None:
        self.unlock()