"""Text-to-speech playback layer.

This package provides the speech engine interface, the voice catalog and the
playback controller that drives the engine.
"""

from core.tts.interface import (
    EngineError,
    SpeechEngine,
    TTSExceptionError,
    TTSNotSupportedError,
)
from core.tts.playback_controller import EmptyInputWarning, PlaybackController
from core.tts.voice_catalog import VoiceCatalog

__all__: list[str] = [
    "EmptyInputWarning",
    "EngineError",
    "PlaybackController",
    "SpeechEngine",
    "TTSExceptionError",
    "TTSNotSupportedError",
    "VoiceCatalog",
]
