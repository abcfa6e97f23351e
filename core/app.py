"""Application wiring and console commands for the text reader.

``ReaderApp`` builds the engine named in the configuration, the voice catalog, the
speech parameters, the text source and the playback controller, and translates
console command lines into controller calls.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

import core.tts.engines  # noqa: F401  # registers the bundled engines
from core.text_source import DecodeError, TextSource
from core.tts.interface import SpeechEngine
from core.tts.playback_controller import PlaybackController
from core.tts.voice_catalog import VoiceCatalog
from models.voice_models import PARAMETER_RANGES, ParameterSet
from utils.file_utils import FileUtils, FileUtilsError
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Awaitable, Callable

    from models.config_models import Config
    from models.playback_models import StatusEvent
    from models.voice_models import Voice

__all__: list[str] = ["ReaderApp"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

HELP_TEXT: str = """Commands:
  play                 Start speaking, or resume when paused
  pause                Pause / resume
  stop                 Stop speaking
  text <text>          Replace the text to read
  load <path>          Load a UTF-8 text file
  clear                Clear the text
  voice <name>         Select a voice by name
  voices               List available voices
  set <name> <value>   Set rate (0.5-2), pitch (0.5-2) or volume (0-1)
  status               Show the current state and settings
  help                 Show this help
  quit                 Exit"""


class ReaderApp:
    """Owns the reader's components for the lifetime of the process.

    Args:
        config (Config): Loaded configuration.
        engine (SpeechEngine | None): Engine to use. Built from ``config.ENGINE.NAME`` if None.
        output (Callable[[str], None]): Where console output goes.

    Raises:
        ValueError: If the configured engine is not registered.
    """

    commands: ClassVar[dict[str, str]] = {
        "play": "cmd_play",
        "p": "cmd_play",
        "pause": "cmd_pause",
        "stop": "cmd_stop",
        "s": "cmd_stop",
        "text": "cmd_text",
        "load": "cmd_load",
        "clear": "cmd_clear",
        "voice": "cmd_voice",
        "voices": "cmd_voices",
        "set": "cmd_set",
        "status": "cmd_status",
        "help": "cmd_help",
        "?": "cmd_help",
    }
    quit_commands: ClassVar[frozenset[str]] = frozenset({"quit", "exit", "q"})

    def __init__(
        self,
        config: Config,
        engine: SpeechEngine | None = None,
        output: Callable[[str], None] = print,
    ) -> None:
        logger.debug("Initializing ReaderApp with config")
        self.config: Config = config
        self.output: Callable[[str], None] = output

        if engine is None:
            engine = SpeechEngine.get_engine(config.ENGINE.NAME)()
        if not engine.initialize_engine(config.ENGINE):
            logger.warning("Engine '%s' reported an incomplete initialization", engine.fetch_engine_name())
        self.engine: SpeechEngine = engine

        self.voice_catalog = VoiceCatalog(engine, config.VOICE.PREFERRED_LANGUAGE)
        self.parameters = ParameterSet(
            voice_name=config.VOICE.NAME,
            rate=config.SPEECH.RATE,
            pitch=config.SPEECH.PITCH,
            volume=config.SPEECH.VOLUME,
        )
        self.text_source = TextSource()
        self.controller = PlaybackController(engine, self.voice_catalog, self.parameters, self.text_source)
        self._unsubscribe_status: Callable[[], None] = self.controller.subscribe(self._render_status)

    async def initialize(self) -> None:
        """Start the engine and load the voice catalog."""
        logger.info("ReaderApp initialization started")
        await self.engine.async_init()
        # Engines that list voices synchronously never signal a change.
        if not self.voice_catalog.list():
            self.voice_catalog.refresh()

    async def close(self) -> None:
        logger.info("ReaderApp closing")
        self._unsubscribe_status()
        self.controller.close()
        self.voice_catalog.close()
        await self.engine.close()

    async def execute(self, line: str) -> bool:
        """Run one console command line.

        Returns:
            bool: False when the user asked to quit.
        """
        name, _, argument = line.strip().partition(" ")
        name = name.lower()
        if not name:
            return True
        if name in self.quit_commands:
            return False

        method_name: str | None = self.commands.get(name)
        if method_name is None:
            self.output(f"Unknown command '{name}'. Type 'help' for a list of commands.")
            return True

        logger.debug("Command '%s' invoked", name)
        handler: Callable[[str], Awaitable[None]] = getattr(self, method_name)
        await handler(argument.strip())
        return True

    async def cmd_play(self, _argument: str) -> None:
        self.controller.play()

    async def cmd_pause(self, _argument: str) -> None:
        self.controller.pause()

    async def cmd_stop(self, _argument: str) -> None:
        self.controller.stop()

    async def cmd_text(self, argument: str) -> None:
        self.controller.set_text(argument)
        self.output(f"Text set ({self.text_source.char_count} chars)")

    async def cmd_load(self, argument: str) -> None:
        if not argument:
            self.output("Usage: load <path>")
            return
        try:
            self.load_file(argument)
        except (FileUtilsError, DecodeError) as err:
            self.output(f"Cannot load file: {err}")
        except OSError as err:
            logger.error("Reading '%s' failed: %s", argument, err)
            self.output(f"Cannot read file: {err}")
        else:
            self.output(f"File loaded successfully: {self.text_source.origin_label} ({self.text_source.char_count} chars)")

    async def cmd_clear(self, _argument: str) -> None:
        self.text_source.clear()
        self.output("Text cleared")

    async def cmd_voice(self, argument: str) -> None:
        if not argument:
            self.output(f"Current voice: {self.parameters.voice_name or '(engine default)'}")
            return
        voice: Voice | None = self.controller.set_voice(argument)
        if voice is None:
            self.output(f"Voice '{argument}' not found; the engine default will be used")
        else:
            self.output(f"Voice set: {voice}")

    async def cmd_voices(self, _argument: str) -> None:
        voices: tuple[Voice, ...] = self.voice_catalog.list()
        if not voices:
            self.output("No voices available")
            return
        for voice in voices:
            marker: str = "*" if voice.name == self.parameters.voice_name else " "
            self.output(f"{marker} {voice}")

    async def cmd_set(self, argument: str) -> None:
        name, _, value = argument.partition(" ")
        name = name.lower()
        if name not in PARAMETER_RANGES or not value.strip():
            self.output(f"Usage: set <{'|'.join(PARAMETER_RANGES)}> <value>")
            return
        try:
            stored: float = self.controller.set_parameter(name, value.strip())
        except ValueError as err:
            self.output(str(err))
        else:
            self.output(f"{name} = {stored:g}")

    async def cmd_status(self, _argument: str) -> None:
        self.output(self.describe())

    async def cmd_help(self, _argument: str) -> None:
        self.output(HELP_TEXT)

    def load_file(self, path: str) -> None:
        """Load a text file into the text source.

        Raises:
            FileUtilsError: If the file is missing or not an allowed text file.
            OSError: If reading fails.
            DecodeError: If the file is not valid UTF-8.
        """
        self.text_source.load_from_file(FileUtils.resolve_path(path), self.config.TEXT.ALLOWED_SUFFIXES)

    def describe(self) -> str:
        status: StatusEvent | None = self.controller.last_status
        origin: str = self.text_source.origin_label or "typed"
        lines: list[str] = [
            f"State:  {self.controller.state.value}" + (f" ({status.message})" if status else ""),
            f"Voice:  {self.parameters.voice_name or '(engine default)'}",
            f"Rate:   {self.parameters.rate:g}  Pitch: {self.parameters.pitch:g}  "
            f"Volume: {round(self.parameters.volume * 100)}%",
            f"Text:   {self.text_source.char_count} chars ({origin})",
        ]
        return "\n".join(lines)

    def _render_status(self, event: StatusEvent) -> None:
        if event.error is not None and not isinstance(event.error, Warning):
            self.output(f"{event} ({event.error})")
        else:
            self.output(str(event))
