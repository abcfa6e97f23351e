from __future__ import annotations

from typing import TYPE_CHECKING, Final

from utils.file_utils import FileUtils
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from pathlib import Path

__all__: list[str] = ["DecodeError", "TextSource"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

# utf-8-sig drops a leading byte-order mark, as browser text decoders do.
TEXT_ENCODING: Final[str] = "utf-8-sig"
DEFAULT_SUFFIXES: Final[tuple[str, ...]] = (".txt",)


class DecodeError(ValueError):
    """The bytes of an ingested file are not valid UTF-8."""


class TextSource:
    """The text buffer to be spoken.

    The playback controller only reads ``content`` when a play request is made, so
    edits never affect an utterance already in flight.

    Attributes:
        content (str): Current text.
        origin_label (str): Where the text came from (file name), empty for typed text.
    """

    def __init__(self, content: str = "", origin_label: str = "") -> None:
        self.content: str = content
        self.origin_label: str = origin_label

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} origin_label: {self.origin_label!r}, chars: {self.char_count}>"

    @property
    def char_count(self) -> int:
        return len(self.content)

    @property
    def is_empty(self) -> bool:
        return not self.content

    def set_content(self, text: str) -> None:
        self.content = text

    def load_from_bytes(self, data: bytes, origin_label: str = "") -> None:
        """Decode ``data`` as UTF-8 and replace the buffer and its label.

        Args:
            data (bytes): Raw file content.
            origin_label (str): Label of the source, e.g. the file name.

        Raises:
            DecodeError: If ``data`` is not valid UTF-8. The buffer is left untouched.
        """
        try:
            text: str = bytes(data).decode(TEXT_ENCODING)
        except UnicodeDecodeError as err:
            msg: str = f"Cannot decode '{origin_label or 'input'}' as UTF-8: {err.reason} at byte {err.start}"
            raise DecodeError(msg) from err

        self.content = text
        self.origin_label = origin_label
        logger.debug("Loaded %d characters from '%s'", len(text), origin_label)

    def load_from_file(self, file_path: Path, suffixes: list[str] | tuple[str, ...] = DEFAULT_SUFFIXES) -> None:
        """Read a text file and load it with its file name as label.

        Raises:
            FileUtilsError: If the file is missing, a directory or has a disallowed suffix.
            OSError: If reading fails.
            DecodeError: If the content is not valid UTF-8.
        """
        FileUtils.validate_file_path(file_path, list(suffixes))
        data: bytes = FileUtils.read_all_bytes(file_path)
        self.load_from_bytes(data, origin_label=file_path.name)

    def clear(self) -> None:
        self.content = ""
        self.origin_label = ""
