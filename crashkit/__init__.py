"""Filesystem paths, lock files, Windows path handling and ELF build-id extraction."""

__version__ = "0.1.0"
__all__ = ["paths", "winpaths", "elf"]