"""TextReader console.

Reads typed text or UTF-8 text files aloud with a selectable voice, rate, pitch and volume.
Settings are read from textreader.ini when present; command-line options override them.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Final, NoReturn

from config.loader import ConfigLoader, ConfigLoaderError
from core.app import ReaderApp
from core.text_source import DecodeError
from core.version import VERSION
from utils.file_utils import FileUtils, FileUtilsError
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    from models.config_models import Config

CFG_FILE: Final[str] = "textreader.ini"
PROMPT: Final[str] = "> "


def check_python_version() -> None:
    """Check if Python version is 3.13 or later.

    Raises:
        RuntimeError: If Python version is below 3.13.
    """
    if sys.version_info < (3, 13):
        msg = "Python 3.13 or later is required"
        raise RuntimeError(msg)


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        print(f"\n{message}\n", file=sys.stderr)
        self.print_help(sys.stderr)
        raise SystemExit(2)


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    parser = _ArgumentParser(
        description="Read text aloud with text-to-speech",
        epilog="Example: python textreader.py --file story.txt --rate 1.2 --play",
    )
    parser.add_argument("--config", dest="config", metavar="INI_FILE", help=f"Configuration file (default: {CFG_FILE})")
    parser.add_argument("--file", dest="file", metavar="TEXT_FILE", help="UTF-8 text file to load")
    parser.add_argument("--text", dest="text", metavar="TEXT", help="Text to load")
    parser.add_argument("--engine", dest="engine", metavar="NAME", help="Speech engine (default: gtts)")
    parser.add_argument("--voice", dest="voice", metavar="NAME", help="Voice name")
    parser.add_argument("--rate", dest="rate", type=float, metavar="0.5-2.0", help="Speaking rate")
    parser.add_argument("--pitch", dest="pitch", type=float, metavar="0.5-2.0", help="Pitch")
    parser.add_argument("--volume", dest="volume", type=float, metavar="0.0-1.0", help="Volume")
    parser.add_argument("--play", dest="play", action="store_true", help="Start reading immediately")
    parser.add_argument("--list-voices", dest="list_voices", action="store_true", help="List voices and exit")
    parser.add_argument("--debug", dest="debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> Config:
    """Load the configuration file and apply command-line overrides.

    An explicit ``--config`` must exist. Without it, textreader.ini is used when
    present and built-in defaults otherwise.

    Raises:
        ConfigLoaderError: If the configuration file cannot be loaded.
    """
    config_filename: str | None = args.config
    if config_filename is None and FileUtils.resolve_path(CFG_FILE).exists():
        config_filename = CFG_FILE

    script_name: str = Path(sys.argv[0]).stem
    overrides: dict[str, object] = {
        "debug": args.debug,
        "engine": args.engine,
        "voice": args.voice,
        "rate": args.rate,
        "pitch": args.pitch,
        "volume": args.volume,
    }
    config: Config = ConfigLoader(config_filename=config_filename, script_name=script_name, **overrides).config
    config.GENERAL.VERSION = VERSION
    return config


def setup_logging(config: Config) -> None:
    log_file: str = str(FileUtils.resolve_path(config.GENERAL.LOG_FILE)) if config.GENERAL.LOG_FILE else ""
    logger_utils = LoggerUtils(log_file)
    logger_utils.set_level(config.GENERAL.LOG_LEVEL)


def preload_text(app: ReaderApp, args: argparse.Namespace) -> bool:
    """Load ``--file`` or ``--text`` into the text source.

    Returns:
        bool: False if the file could not be loaded.
    """
    if args.file:
        try:
            app.load_file(args.file)
        except (FileUtilsError, DecodeError, OSError) as err:
            print(f"Cannot load '{args.file}': {err}", file=sys.stderr)
            return False
        print(f"File loaded successfully: {app.text_source.origin_label}")
    elif args.text:
        app.controller.set_text(args.text)
    return True


async def console_loop(app: ReaderApp) -> None:
    """Read commands from stdin until 'quit' or end of input.

    ``input`` runs in a worker thread so that engine events keep flowing while waiting.
    """
    while True:
        try:
            line: str = await asyncio.to_thread(input, PROMPT)
        except EOFError:
            break
        if not await app.execute(line):
            break


async def main(argv: list[str] | None = None) -> int:
    check_python_version()
    args: argparse.Namespace = parse_arguments(argv)
    try:
        config: Config = load_config(args)
    except ConfigLoaderError as err:
        print("\nError: Failed to load configuration file.", file=sys.stderr)
        print(f"Details: {err}", file=sys.stderr)
        return 1

    setup_logging(config)

    try:
        app = ReaderApp(config)
    except ValueError as err:
        print(f"\nError: {err}", file=sys.stderr)
        return 1

    try:
        await app.initialize()
        if args.list_voices:
            await app.execute("voices")
            return 0
        if not preload_text(app, args):
            return 1

        print(f"{config.GENERAL.SCRIPT_NAME} ver.{config.GENERAL.VERSION}. Type 'help' for commands.")
        if args.play:
            await app.execute("play")
        await console_loop(app)
    finally:
        await app.close()
    return 0


def run() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\nInterrupted by user.", file=sys.stderr)
    except (OSError, RuntimeError) as err:
        print(f"\nFatal error: {err}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    run()
