"""Core components of TextReader.

This package contains the application wiring, the text source and the
text-to-speech playback layer.
"""

from core.app import ReaderApp
from core.text_source import DecodeError, TextSource
from core.version import VERSION

__all__: list[str] = [
    "VERSION",
    "DecodeError",
    "ReaderApp",
    "TextSource",
]
