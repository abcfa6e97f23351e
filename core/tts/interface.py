from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar

from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Callable, Sequence

    from models.config_models import EngineConfig
    from models.playback_models import EngineEvent, SpeechRequest
    from models.voice_models import Voice


__all__: list[str] = [
    "EngineError",
    "EngineEventListener",
    "SpeechEngine",
    "TTSExceptionError",
    "TTSNotSupportedError",
    "VoicesChangedListener",
]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

type EngineEventListener = Callable[[EngineEvent], None]
type VoicesChangedListener = Callable[[], None]


class TTSExceptionError(Exception):
    """Base class for speech engine exceptions."""


class EngineError(TTSExceptionError):
    """The engine failed while producing an utterance.

    Delivered inside an ``EngineEvent`` of kind ERROR rather than raised to the caller
    of ``speak``.
    """


class TTSNotSupportedError(TTSExceptionError):
    """The engine does not support the requested operation or parameter."""


class SpeechEngine(ABC):
    """Base class for speech engines.

    An engine owns the physical output resource. It accepts one utterance at a time:
    ``speak`` returns immediately and the engine reports progress through the listener
    passed with the request, always on the event loop thread. Every event carries the
    ``session_id`` of the request that produced it.

    Subclasses register themselves by name when they are defined, so the engine
    configured in the INI file can be looked up with ``get_engine``.

    Attributes:
        _registered_engines (dict[str, type[SpeechEngine]]): Registered engine classes by name.
    """

    _registered_engines: ClassVar[dict[str, type[SpeechEngine]]] = {}

    def __init__(self) -> None:
        self._voices_changed_listeners: list[VoicesChangedListener] = []

    def __init_subclass__(cls, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        # Registration must happen here: subclasses are only usable once defined.
        cls.register_engine(cls)

    @classmethod
    def get_registered(cls) -> dict[str, type[SpeechEngine]]:
        return cls._registered_engines

    @classmethod
    def register_engine(cls, engine_cls: type[SpeechEngine]) -> None:
        """Register an engine class under its distinguished name."""
        if not issubclass(engine_cls, SpeechEngine):
            msg = "Must be a subclass of SpeechEngine"
            raise TypeError(msg)
        name: str = engine_cls.fetch_engine_name()
        cls._registered_engines[name] = engine_cls
        logger.debug("Registered engine: %s", name)

    @classmethod
    def get_engine(cls, name: str) -> type[SpeechEngine]:
        """Retrieve a registered engine class by name.

        Raises:
            ValueError: If no engine is registered under ``name``.
        """
        try:
            return cls._registered_engines[name]
        except KeyError:
            msg: str = f"No such engine registered: {name}"
            raise ValueError(msg) from None

    @staticmethod
    @abstractmethod
    def fetch_engine_name() -> str:
        """Get the distinguished name of the engine.

        Returns:
            str: The distinguished name of the engine.
        """
        raise NotImplementedError

    def initialize_engine(self, engine_config: EngineConfig) -> bool:
        """Apply the ``[ENGINE]`` configuration section (override if necessary).

        Returns:
            bool: True if initialization is successful, False otherwise.
        """
        _ = engine_config
        return True

    async def async_init(self) -> None:
        """Asynchronous start-up, e.g. loading voices (override if necessary)."""
        logger.info("%s initialised", self.__class__.__name__)

    async def close(self) -> None:
        """Release the output resource (override if necessary)."""
        logger.info("%s closed", self.__class__.__name__)

    def add_voices_changed_listener(self, listener: VoicesChangedListener) -> None:
        """Register a callback invoked whenever the engine's voice list changes."""
        self._voices_changed_listeners.append(listener)

    def remove_voices_changed_listener(self, listener: VoicesChangedListener) -> None:
        if listener in self._voices_changed_listeners:
            self._voices_changed_listeners.remove(listener)

    def notify_voices_changed(self) -> None:
        for listener in list(self._voices_changed_listeners):
            try:
                listener()
            except Exception as err:  # noqa: BLE001
                logger.error("Voices changed listener failed: %r", err)

    @abstractmethod
    def list_voices(self) -> Sequence[Voice]:
        """Return the voices the engine currently offers. May be empty before loading completes."""
        raise NotImplementedError

    @abstractmethod
    def speak(self, request: SpeechRequest, listener: EngineEventListener) -> None:
        """Start vocalizing ``request`` and return immediately.

        Args:
            request (SpeechRequest): Text, voice and parameters of the utterance.
            listener (EngineEventListener): Receives START, END or ERROR events for the request.
        """
        raise NotImplementedError

    @abstractmethod
    def pause(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def resume(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def cancel(self) -> None:
        """Abandon the current utterance. No further events are required for it."""
        raise NotImplementedError

    @property
    @abstractmethod
    def is_speaking(self) -> bool:
        """True while an utterance is queued, being synthesized or playing (including paused)."""
        raise NotImplementedError

    @property
    @abstractmethod
    def is_paused(self) -> bool:
        raise NotImplementedError
