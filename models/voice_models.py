"""Data models for speech voices and speech parameters.

This module defines:
- Voice: A synthesis voice discovered from the engine.
- ParameterRange: Valid closed interval of a numeric speech parameter.
- ParameterSet: The tunable speech parameters and the selected voice name.
"""

from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass, field, replace
from typing import TYPE_CHECKING, Any, Final, Literal

from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from core.tts.voice_catalog import VoiceCatalog

__all__: list[str] = [
    "PARAMETER_RANGES",
    "ParameterField",
    "ParameterRange",
    "ParameterSet",
    "Voice",
]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

type ParameterField = Literal["rate", "pitch", "volume"]


@dataclass(frozen=True)
class Voice:
    """A synthesis voice offered by the engine.

    Attributes:
        name (str): Display name. Not guaranteed to be unique across the catalog.
        language_tag (str): BCP 47 style language tag, e.g. 'zh-CN'.
        handle (Any): Engine specific reference to the underlying voice.
            Excluded from comparison and representation.
    """

    name: str
    language_tag: str
    handle: Any = field(default=None, compare=False, repr=False)

    def __str__(self) -> str:
        return f"{self.name} ({self.language_tag})"


@dataclass(frozen=True)
class ParameterRange:
    minimum: float
    maximum: float
    default: float

    def clamp(self, value: float) -> float:
        return max(self.minimum, min(self.maximum, value))


PARAMETER_RANGES: Final[dict[str, ParameterRange]] = {
    "rate": ParameterRange(minimum=0.5, maximum=2.0, default=1.0),
    "pitch": ParameterRange(minimum=0.5, maximum=2.0, default=1.0),
    "volume": ParameterRange(minimum=0.0, maximum=1.0, default=1.0),
}


@dataclass
class ParameterSet:
    """Speech parameters applied to an utterance.

    Numeric fields always hold values inside their ``PARAMETER_RANGES`` interval.
    Use ``set`` to change them; out-of-range input is clamped, never rejected.

    Attributes:
        voice_name (str): Name of the selected voice. Empty selects the engine default.
        rate (float): Speaking rate, 0.5-2.0.
        pitch (float): Pitch, 0.5-2.0.
        volume (float): Volume, 0.0-1.0.
    """

    voice_name: str = ""
    rate: float = PARAMETER_RANGES["rate"].default
    pitch: float = PARAMETER_RANGES["pitch"].default
    volume: float = PARAMETER_RANGES["volume"].default

    def __post_init__(self) -> None:
        for name in PARAMETER_RANGES:
            self.set(name, getattr(self, name))

    def __repr__(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)

    def set(self, name: str, value: Any) -> float:
        """Clamp ``value`` into the valid range of ``name`` and store it.

        Args:
            name (str): One of 'rate', 'pitch' or 'volume'.
            value (Any): New value. Anything ``float()`` accepts.

        Returns:
            float: The value actually stored.

        Raises:
            ValueError: If the field name is unknown or the value is not numeric.
        """
        try:
            value_range: ParameterRange = PARAMETER_RANGES[name]
        except KeyError:
            msg: str = f"Unknown speech parameter: '{name}'"
            raise ValueError(msg) from None

        try:
            number: float = float(value)
        except (TypeError, ValueError) as err:
            msg = f"Invalid value for '{name}': {value!r}"
            raise ValueError(msg) from err

        if math.isnan(number):
            current: float = getattr(self, name, value_range.default)
            logger.warning("NaN given for '%s'; keeping %s", name, current)
            number = current if isinstance(current, float) and not math.isnan(current) else value_range.default

        clamped: float = value_range.clamp(number)
        if clamped != number:
            logger.debug("'%s' clamped from %s to %s", name, number, clamped)
        setattr(self, name, clamped)
        return clamped

    def validate(self, voice_catalog: VoiceCatalog) -> Voice | None:
        """Resolve ``voice_name`` against the catalog.

        A name missing from the catalog is not an error: None is returned and the
        engine's default voice is used.
        """
        if not self.voice_name:
            return None
        voice: Voice | None = voice_catalog.find(self.voice_name)
        if voice is None:
            logger.debug("Voice '%s' not in catalog; using engine default", self.voice_name)
        return voice

    def copy(self) -> ParameterSet:
        return replace(self)
