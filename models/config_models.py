"""Configuration data models for the text reader.

Each dataclass corresponds to one section of the INI file. Field names match the
INI keys, and the type of each default decides how the INI string is converted.
"""

from __future__ import annotations

from dataclasses import dataclass, field

__all__: list[str] = [
    "Config",
    "EngineConfig",
    "General",
    "Speech",
    "Text",
    "VoiceSelection",
]


@dataclass
class General:
    DEBUG: bool = False
    VERSION: str = ""
    SCRIPT_NAME: str = ""
    LOG_FILE: str = ""
    LOG_LEVEL: str = "INFO"


@dataclass
class EngineConfig:
    NAME: str = "gtts"
    TLD: str = "com"
    TIMEOUT: float = 10.0


@dataclass
class VoiceSelection:
    PREFERRED_LANGUAGE: str = "zh"
    NAME: str = ""


@dataclass
class Speech:
    RATE: float = 1.0
    PITCH: float = 1.0
    VOLUME: float = 1.0


@dataclass
class Text:
    ALLOWED_SUFFIXES: list[str] = field(default_factory=lambda: [".txt"])


@dataclass
class Config:
    GENERAL: General = field(default_factory=General)
    ENGINE: EngineConfig = field(default_factory=EngineConfig)
    VOICE: VoiceSelection = field(default_factory=VoiceSelection)
    SPEECH: Speech = field(default_factory=Speech)
    TEXT: Text = field(default_factory=Text)
