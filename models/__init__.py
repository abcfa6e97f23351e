"""Data models for TextReader.

This package contains dataclass definitions for configuration, voices, speech
parameters and playback events.
"""

from __future__ import annotations

from models.config_models import Config, EngineConfig
from models.playback_models import (
    EngineEvent,
    EngineEventType,
    PlaybackSession,
    PlaybackState,
    SpeechRequest,
    StatusEvent,
)
from models.voice_models import PARAMETER_RANGES, ParameterRange, ParameterSet, Voice

__all__: list[str] = [
    "PARAMETER_RANGES",
    "Config",
    "EngineConfig",
    "EngineEvent",
    "EngineEventType",
    "ParameterRange",
    "ParameterSet",
    "PlaybackSession",
    "PlaybackState",
    "SpeechRequest",
    "StatusEvent",
    "Voice",
]
