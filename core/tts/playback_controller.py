"""Playback state machine driving the shared speech engine.

The controller is the only component that issues commands to the engine. It keeps at
most one live ``PlaybackSession``, tags every speak command with the session id, and
folds the engine's START/END/ERROR events back into its state, discarding events of
sessions it no longer considers current.

State and status are its whole observable surface; front ends subscribe to the status
stream and render from it.
"""

from __future__ import annotations

import itertools
import time
from typing import TYPE_CHECKING, Final

from core.text_source import TextSource
from core.tts.interface import TTSExceptionError
from models.playback_models import EngineEventType, PlaybackSession, PlaybackState, StatusEvent
from models.voice_models import ParameterSet
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Callable, Iterator

    from core.tts.interface import SpeechEngine
    from core.tts.voice_catalog import VoiceCatalog
    from models.playback_models import EngineEvent
    from models.voice_models import Voice

__all__: list[str] = [
    "MSG_DONE",
    "MSG_ERROR",
    "MSG_NO_TEXT",
    "MSG_PAUSED",
    "MSG_SPEAKING",
    "MSG_STARTING",
    "MSG_STOPPED",
    "EmptyInputWarning",
    "PlaybackController",
]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

MSG_STARTING: Final[str] = "Starting..."
MSG_SPEAKING: Final[str] = "Speaking..."
MSG_PAUSED: Final[str] = "Paused"
MSG_DONE: Final[str] = "Done"
MSG_STOPPED: Final[str] = "Stopped"
MSG_ERROR: Final[str] = "Error occurred"
MSG_NO_TEXT: Final[str] = "Please input text first"

type StatusListener = Callable[[StatusEvent], None]


class EmptyInputWarning(UserWarning):
    """``play()`` was requested with an empty text source."""


class PlaybackController:
    """Play/pause/stop state machine over one injected speech engine.

    States are IDLE, SPEAKING and PAUSED, plus ENDED which is reported when an
    utterance completes and immediately left for IDLE. ``pause()`` and ``stop()`` are
    no-ops where they have no effect, and ``play()`` always cancels a running session
    before starting a new one, so callers never need to check the state first.

    Args:
        engine (SpeechEngine): The engine to drive. Only this controller may command it.
        voice_catalog (VoiceCatalog): Voices used to resolve ``ParameterSet.voice_name``.
        parameters (ParameterSet | None): Speech parameters. A default set if None.
        text_source (TextSource | None): Text to speak. An empty source if None.
        clock (Callable[[], float]): Time source for ``PlaybackSession.started_at``.
    """

    def __init__(
        self,
        engine: SpeechEngine,
        voice_catalog: VoiceCatalog,
        parameters: ParameterSet | None = None,
        text_source: TextSource | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.engine: SpeechEngine = engine
        self.voice_catalog: VoiceCatalog = voice_catalog
        self.parameters: ParameterSet = parameters if parameters is not None else ParameterSet()
        self.text_source: TextSource = text_source if text_source is not None else TextSource()
        self._clock: Callable[[], float] = clock

        self._state: PlaybackState = PlaybackState.IDLE
        self._session: PlaybackSession | None = None
        self._session_ids: Iterator[int] = itertools.count(1)
        self._listeners: list[StatusListener] = []
        self._last_status: StatusEvent | None = None
        self._unsubscribe_catalog: Callable[[], None] = voice_catalog.subscribe(self._on_catalog_refreshed)

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def session(self) -> PlaybackSession | None:
        return self._session

    @property
    def last_status(self) -> StatusEvent | None:
        return self._last_status

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Register a status stream listener.

        Returns:
            Callable[[], None]: Call to unsubscribe.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def play(self) -> bool:
        """Resume a paused session, or start a new one from the current text.

        Returns:
            bool: False when nothing was started (empty text or engine failure).
        """
        text: str = self.text_source.content
        if not text:
            logger.info("Play requested without text")
            current_id: int | None = self._session.session_id if self._session else None
            self._publish(StatusEvent(self._state, MSG_NO_TEXT, current_id, EmptyInputWarning(MSG_NO_TEXT)))
            return False

        if self._state is PlaybackState.PAUSED and self._session is not None:
            self.engine.resume()
            self._transition(PlaybackState.SPEAKING, MSG_SPEAKING)
            return True

        self._cancel_engine_activity()

        parameters: ParameterSet = self.parameters.copy()
        voice: Voice | None = parameters.validate(self.voice_catalog)
        session = PlaybackSession(
            session_id=next(self._session_ids),
            text=text,
            parameters=parameters,
            voice=voice,
            started_at=self._clock(),
        )
        self._session = session
        self._transition(PlaybackState.SPEAKING, MSG_STARTING)
        logger.debug("Session %d: voice=%s parameters=%r", session.session_id, voice, parameters)

        try:
            self.engine.speak(session.to_request(), self.handle_engine_event)
        except (TTSExceptionError, RuntimeError, OSError) as err:
            logger.error("Engine refused session %d: %s", session.session_id, err)
            self._session = None
            self._transition(PlaybackState.IDLE, MSG_ERROR, error=err, session_id=session.session_id)
            return False
        return True

    def pause(self) -> None:
        """Pause while speaking; resume while paused (toggle). Otherwise a no-op."""
        if self._state is PlaybackState.SPEAKING:
            self.engine.pause()
            self._transition(PlaybackState.PAUSED, MSG_PAUSED)
        elif self._state is PlaybackState.PAUSED:
            self.engine.resume()
            self._transition(PlaybackState.SPEAKING, MSG_SPEAKING)
        else:
            logger.debug("pause() ignored in state '%s'", self._state)

    def stop(self) -> None:
        """Cancel the current session. A no-op, without engine command, when idle."""
        if self._state not in (PlaybackState.SPEAKING, PlaybackState.PAUSED):
            logger.debug("stop() ignored in state '%s'", self._state)
            return
        session_id: int | None = self._session.session_id if self._session else None
        self.engine.cancel()
        self._session = None
        self._transition(PlaybackState.IDLE, MSG_STOPPED, session_id=session_id)

    def set_parameter(self, name: str, value: float | str) -> float:
        """Set rate, pitch or volume for the next session; the value is clamped.

        Raises:
            ValueError: If the parameter name is unknown or the value is not numeric.
        """
        return self.parameters.set(name, value)

    def set_voice(self, name: str) -> Voice | None:
        """Select a voice by name for the next session.

        Returns:
            Voice | None: The matching voice, or None when the engine default will be used.
        """
        self.parameters.voice_name = name
        return self.parameters.validate(self.voice_catalog)

    def set_text(self, text: str) -> None:
        self.text_source.set_content(text)

    def handle_engine_event(self, event: EngineEvent) -> None:
        """Fold an engine event into the state machine.

        Events whose session id is not the current session are discarded.
        """
        session: PlaybackSession | None = self._session
        if session is None or event.session_id != session.session_id:
            logger.debug("Discarding stale '%s' event of session %d", event.kind.value, event.session_id)
            return

        if event.kind is EngineEventType.START:
            if self._state is PlaybackState.SPEAKING:
                self._publish(StatusEvent(PlaybackState.SPEAKING, MSG_SPEAKING, session.session_id))
            return

        self._session = None
        if event.kind is EngineEventType.END:
            self._transition(PlaybackState.ENDED, MSG_DONE, session_id=session.session_id, session=session)
            # A listener may already have started a new session.
            if self._state is PlaybackState.ENDED:
                self._state = PlaybackState.IDLE
        else:
            logger.error("Session %d failed: %s", session.session_id, event.error)
            self._transition(
                PlaybackState.IDLE, MSG_ERROR, error=event.error, session_id=session.session_id, session=session
            )

    def close(self) -> None:
        self.stop()
        self._unsubscribe_catalog()
        self._listeners.clear()

    def _cancel_engine_activity(self) -> None:
        """Cancel the current session and anything else the engine is still doing."""
        if self._session is not None or self.engine.is_speaking or self.engine.is_paused:
            if self._session is not None:
                logger.debug("Superseding session %d", self._session.session_id)
            self.engine.cancel()
        self._session = None

    def _on_catalog_refreshed(self, voices: tuple[Voice, ...]) -> None:
        # Only fill an empty choice; a chosen voice that vanished falls back to the engine default.
        if self.parameters.voice_name:
            return
        default: Voice | None = self.voice_catalog.select_default()
        if default is not None:
            self.parameters.voice_name = default.name
            logger.info("Default voice selected: %s (of %d)", default, len(voices))

    def _transition(
        self,
        state: PlaybackState,
        message: str,
        *,
        error: Exception | None = None,
        session_id: int | None = None,
        session: PlaybackSession | None = None,
    ) -> None:
        self._state = state
        target: PlaybackSession | None = session or self._session
        if target is not None:
            target.state = state
            if session_id is None:
                session_id = target.session_id
        self._publish(StatusEvent(state, message, session_id, error))

    def _publish(self, event: StatusEvent) -> None:
        self._last_status = event
        logger.debug("Status: %s", event)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as err:  # noqa: BLE001
                logger.error("Status listener failed: %r", err)
