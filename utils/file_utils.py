from __future__ import annotations

import os
from pathlib import Path

__all__: list[str] = [
    "FileMissingError",
    "FileUtils",
    "FileUtilsError",
    "InvalidFileTypeError",
    "UnsupportedFileFormatError",
]


class FileUtils:
    """Path helpers for user supplied file names."""

    @staticmethod
    def resolve_path(path: str | Path, *, strict: bool = False) -> Path:
        """Convert a user-input path to an absolute path.

        Environment variables and ``~`` are expanded; relative paths are resolved
        against the current working directory.

        Args:
            path (str | Path): The input path (e.g., "~/books/$BOOK.txt").
            strict (bool): Raise if the path does not exist. Defaults to False.

        Returns:
            Path: The absolute path.
        """
        expanded: Path = Path(os.path.expandvars(str(path))).expanduser()
        if not expanded.is_absolute():
            expanded = Path.cwd() / expanded
        return expanded.resolve(strict=strict)

    @staticmethod
    def validate_file_path(file_path: Path, suffix: list[str] | str) -> None:
        """Check that a regular file exists and carries one of the allowed suffixes.

        Args:
            file_path (Path): The file to validate.
            suffix (list[str] | str): Allowed suffix(es), e.g. ".txt". An empty list allows any.

        Raises:
            FileMissingError: If the file does not exist.
            InvalidFileTypeError: If the path is a directory.
            UnsupportedFileFormatError: If the suffix is not allowed.
        """
        if isinstance(suffix, str):
            suffix = [suffix]

        if not file_path.exists():
            msg = f"File does not exist: {file_path}"
            raise FileMissingError(msg)
        if file_path.is_dir():
            msg = f"Invalid file type (directory): {file_path}"
            raise InvalidFileTypeError(msg)
        if suffix and file_path.suffix.lower() not in [s.lower() for s in suffix]:
            msg = f"Unsupported file format: '{file_path.suffix}'. Supported formats are: {', '.join(suffix)}"
            raise UnsupportedFileFormatError(msg)

    @staticmethod
    def read_all_bytes(file_path: Path) -> bytes:
        """Read the whole file. Read failures propagate as ``OSError``."""
        with file_path.open(mode="rb") as fhdl:
            return fhdl.read()


class FileUtilsError(Exception):
    """Base class for FileUtils errors."""


class FileMissingError(FileUtilsError):
    """The file does not exist."""


class InvalidFileTypeError(FileUtilsError):
    """The path is not a regular file."""


class UnsupportedFileFormatError(FileUtilsError):
    """The file suffix is not accepted."""
