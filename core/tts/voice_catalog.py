from __future__ import annotations

from typing import TYPE_CHECKING, Final

from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Callable

    from core.tts.interface import SpeechEngine
    from models.voice_models import Voice

__all__: list[str] = ["DEFAULT_PREFERRED_LANGUAGE", "VoiceCatalog"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

DEFAULT_PREFERRED_LANGUAGE: Final[str] = "zh"

type CatalogListener = Callable[[tuple[Voice, ...]], None]


class VoiceCatalog:
    """Queryable list of the voices offered by the engine.

    The list is an immutable tuple replaced wholesale on every ``refresh``, so readers
    never observe a partially updated catalog. Engines that load voices lazily signal
    a change, and the catalog refreshes itself in response.
    """

    def __init__(self, engine: SpeechEngine, preferred_language: str = DEFAULT_PREFERRED_LANGUAGE) -> None:
        self.engine: SpeechEngine = engine
        self.preferred_language: str = preferred_language
        self._voices: tuple[Voice, ...] = ()
        self._listeners: list[CatalogListener] = []
        engine.add_voices_changed_listener(self.refresh)

    def refresh(self) -> tuple[Voice, ...]:
        """Query the engine and replace the catalog. Subscribers are notified on every call.

        Returns:
            tuple[Voice, ...]: The new snapshot.
        """
        voices: tuple[Voice, ...] = tuple(self.engine.list_voices())
        self._voices = voices
        logger.debug("Voice catalog refreshed: %d voices", len(voices))
        for listener in list(self._listeners):
            try:
                listener(voices)
            except Exception as err:  # noqa: BLE001
                logger.error("Catalog listener failed: %r", err)
        return voices

    def list(self) -> tuple[Voice, ...]:
        return self._voices

    def find(self, name: str) -> Voice | None:
        """Return the first voice named ``name``, or None."""
        return next((voice for voice in self._voices if voice.name == name), None)

    def select_default(self) -> Voice | None:
        """Pick the voice to use when the user has not chosen one.

        Prefers the first voice whose language tag contains the preferred-language
        substring, then the first voice. None means no voice is available and the
        engine's own default applies.
        """
        voices: tuple[Voice, ...] = self._voices
        if self.preferred_language:
            for voice in voices:
                if self.preferred_language in voice.language_tag:
                    return voice
        return voices[0] if voices else None

    def subscribe(self, listener: CatalogListener) -> Callable[[], None]:
        """Register a listener for refreshes.

        Returns:
            Callable[[], None]: Call to unsubscribe.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        self.engine.remove_voices_changed_listener(self.refresh)
        self._listeners.clear()
