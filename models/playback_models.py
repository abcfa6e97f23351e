"""Data models exchanged between the playback controller, the engine and observers.

This module defines:
- PlaybackState: States of the playback state machine.
- SpeechRequest: A speak command sent to the engine, tagged with its session id.
- EngineEventType / EngineEvent: Lifecycle events reported back by the engine.
- PlaybackSession: The controller's record of one play request.
- StatusEvent: An entry of the observable status stream.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from models.voice_models import ParameterSet, Voice

__all__: list[str] = [
    "EngineEvent",
    "EngineEventType",
    "PlaybackSession",
    "PlaybackState",
    "SpeechRequest",
    "StatusEvent",
]


class PlaybackState(StrEnum):
    IDLE = "idle"
    SPEAKING = "speaking"
    PAUSED = "paused"
    # Reported once when an utterance completes; the controller is IDLE right after.
    ENDED = "ended"


class EngineEventType(Enum):
    START = "start"
    END = "end"
    ERROR = "error"


@dataclass(frozen=True)
class SpeechRequest:
    """Parameters of one utterance handed to the engine.

    Attributes:
        session_id (int): Identity of the session that issued the request.
            Every event produced for this request carries it back.
        text (str): Text to speak.
        voice (Voice | None): Voice to use. None selects the engine default.
        rate (float): Speaking rate, already clamped.
        pitch (float): Pitch, already clamped.
        volume (float): Volume, already clamped.
    """

    session_id: int
    text: str
    voice: Voice | None = None
    rate: float = 1.0
    pitch: float = 1.0
    volume: float = 1.0


@dataclass(frozen=True)
class EngineEvent:
    kind: EngineEventType
    session_id: int
    error: Exception | None = None


@dataclass
class PlaybackSession:
    """The controller's view of one play request.

    Attributes:
        session_id (int): Monotonic identity used to match engine events.
        text (str): Snapshot of the text source at play time.
        parameters (ParameterSet): Snapshot of the speech parameters at play time.
        voice (Voice | None): Voice resolved from the catalog, None for the engine default.
        state (PlaybackState): Current state of the session.
        started_at (float): Monotonic clock value when the session was created.
    """

    session_id: int
    text: str
    parameters: ParameterSet
    voice: Voice | None = None
    state: PlaybackState = PlaybackState.SPEAKING
    started_at: float = 0.0

    def to_request(self) -> SpeechRequest:
        return SpeechRequest(
            session_id=self.session_id,
            text=self.text,
            voice=self.voice,
            rate=self.parameters.rate,
            pitch=self.parameters.pitch,
            volume=self.parameters.volume,
        )


@dataclass(frozen=True)
class StatusEvent:
    """An entry of the status stream, emitted on every transition.

    Attributes:
        state (PlaybackState): State after the transition.
        message (str): Human-readable status, e.g. 'Speaking...' or 'Done'.
        session_id (int | None): Session the transition belongs to, if any.
        error (Exception | None): Attached failure or warning, if any.
    """

    state: PlaybackState
    message: str
    session_id: int | None = None
    error: Exception | None = field(default=None, compare=False)

    def __str__(self) -> str:
        return f"[{self.state.value}] {self.message}"
