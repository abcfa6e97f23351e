"""Configuration file loader and validator.

Handles reading, formatting, and validating settings from the INI configuration file.
Raises exceptions for any issues encountered during loading.
"""

from __future__ import annotations

import ast
import configparser
from configparser import ConfigParser
from dataclasses import fields
from typing import TYPE_CHECKING, Any

from models.config_models import Config
from models.voice_models import PARAMETER_RANGES
from utils.file_utils import FileUtils
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Callable
    from dataclasses import Field as DataclassField
    from pathlib import Path

__all__: list[str] = [
    "Config",
    "ConfigFileNotFoundError",
    "ConfigFormatError",
    "ConfigLoader",
    "ConfigLoaderError",
    "ConfigTypeError",
    "ConfigValueError",
]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

# Command-line option name -> (section, key)
_OVERRIDES: dict[str, tuple[str, str]] = {
    "voice": ("VOICE", "NAME"),
    "rate": ("SPEECH", "RATE"),
    "pitch": ("SPEECH", "PITCH"),
    "volume": ("SPEECH", "VOLUME"),
    "engine": ("ENGINE", "NAME"),
}


class ConfigLoaderError(Exception):
    """An error occurred while processing the configuration file."""


class ConfigFileNotFoundError(ConfigLoaderError):
    """The specified configuration file does not exist."""


class ConfigFormatError(ConfigLoaderError):
    """The configuration file is not formatted correctly."""


class ConfigValueError(ConfigFormatError):
    """The configuration file contains an invalid value."""


class ConfigTypeError(ConfigFormatError):
    """The configuration file contains an invalid type."""


class ConfigLoader:
    """Handles loading and validation of configuration settings.

    Reads the INI file (when given), converts each value to the type of the matching
    ``Config`` field, applies command-line overrides and validates the result.

    Args:
        config_filename (str | None): INI file to load. None builds the default configuration.
        script_name (str): Executing script name, used in error messaging.
        **args: Command-line overrides (debug, voice, rate, pitch, volume, engine).
            None values are ignored.

    Raises:
        ConfigFileNotFoundError: If the configuration file does not exist.
        ConfigFormatError: If the file cannot be parsed or contains invalid values/types.
    """

    def __init__(
        self,
        *,
        config_filename: str | Path | None,
        script_name: str,
        **args,
    ) -> None:
        self.config = Config()
        self.config.GENERAL.SCRIPT_NAME = script_name

        if config_filename is not None:
            parser: ConfigParser = self._read(config_filename, script_name)
            self._convert_settings(parser)

        self._apply_overrides(args)
        self._validate_settings()

    @staticmethod
    def _read(config_filename: str | Path, script_name: str) -> ConfigParser:
        config_path: Path = FileUtils.resolve_path(config_filename)
        msg: str
        if not config_path.exists():
            msg = (
                f"Configuration file '{config_filename}' not found. "
                f"Please create it or start '{script_name}' without '--config'."
            )
            raise ConfigFileNotFoundError(msg)

        parser: ConfigParser = ConfigParser(interpolation=None)
        try:
            parser.read(config_path, encoding="utf-8")
        except (configparser.Error, UnicodeDecodeError) as err:
            msg = f"Failed to parse configuration file '{config_filename}': {err}"
            raise ConfigFormatError(msg) from None
        return parser

    def _convert_settings(self, parser: ConfigParser) -> None:
        """Copy every defined INI value into the matching Config field.

        Raises:
            ConfigFormatError: If a value cannot be parsed or coerced to the expected type.
        """
        formatter = _ConfigFormatter(self.config, parser)
        for section in fields(self.config):
            if not parser.has_section(section.name):
                logger.debug("Skipping undefined section: '%s'", section.name)
                continue
            for key in fields(getattr(self.config, section.name)):
                if not parser.has_option(section.name, key.name):
                    logger.debug("Skipping undefined setting: '%s.%s'", section.name, key.name)
                    continue
                formatted_value: Any = formatter.apply_format(section, key)
                setattr(getattr(self.config, section.name), key.name, formatted_value)

    def _apply_overrides(self, args: dict[str, Any]) -> None:
        if args.get("debug", False):
            self.config.GENERAL.DEBUG = True
            self.config.GENERAL.LOG_LEVEL = "DEBUG"
        for option, (section_name, key_name) in _OVERRIDES.items():
            value: Any = args.get(option)
            if value is not None:
                setattr(getattr(self.config, section_name), key_name, value)

    def _validate_settings(self) -> None:
        """Validate value types and ranges.

        Out-of-range speech parameters are not rejected; they are clamped when applied.

        Raises:
            ConfigFormatError: If validation fails for any setting.
        """
        try:
            self._validate_speech_parameters()
            self._validate_suffixes()
        except (TypeError, ValueError) as err:
            msg: str = f"Invalid configuration value: {err}"
            raise ConfigFormatError(msg) from None

        if not self.config.ENGINE.NAME:
            msg = "'ENGINE.NAME' must not be empty"
            raise ConfigValueError(msg)
        if self.config.ENGINE.TIMEOUT <= 0:
            logger.warning("'ENGINE.TIMEOUT' must be positive; using 10.0")
            self.config.ENGINE.TIMEOUT = 10.0

    def _validate_speech_parameters(self) -> None:
        for name, value_range in PARAMETER_RANGES.items():
            key_name: str = name.upper()
            value = float(getattr(self.config.SPEECH, key_name))
            if not value_range.minimum <= value <= value_range.maximum:
                logger.warning(
                    "'SPEECH.%s' = %s is outside %s-%s and will be clamped",
                    key_name,
                    value,
                    value_range.minimum,
                    value_range.maximum,
                )
            setattr(self.config.SPEECH, key_name, value)

    def _validate_suffixes(self) -> None:
        value: Any = self.config.TEXT.ALLOWED_SUFFIXES
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            msg: str = f"Unsupported type used for 'TEXT.ALLOWED_SUFFIXES': {type(value)}"
            raise ConfigTypeError(msg)
        self.config.TEXT.ALLOWED_SUFFIXES = [s if s.startswith(".") else f".{s}" for s in value]


class _ConfigFormatter:
    """Converts INI string values to typed Python objects (bool, int, float, str, list)."""

    def __init__(self, config: Config, parser: ConfigParser) -> None:
        self.config: Config = config
        self.parser: ConfigParser = parser

    def apply_format(self, section: DataclassField[Any], key: DataclassField[Any]) -> Any:
        """Convert an INI value to the type of the current Config field value.

        Raises:
            ConfigValueError: If a value cannot be coerced to the expected type.
            ConfigFormatError: If literal evaluation fails due to invalid syntax.
            ConfigTypeError: If the literal has an unexpected type.
        """
        formatters: dict[type, Callable[[DataclassField[Any], DataclassField[Any]], Any]] = {
            bool: self.parse_as_boolean,
            int: self.parse_as_integer,
            float: self.parse_as_float,
            str: self.parse_as_string,
        }

        expected_type: type = type(getattr(getattr(self.config, section.name), key.name))
        formatter: Callable[[DataclassField[Any], DataclassField[Any]], Any] | None = formatters.get(expected_type)
        if formatter:
            try:
                return formatter(section, key)
            except ValueError as err:
                msg = f"Invalid value for {section.name}.{key.name}: {err}"
                raise ConfigValueError(msg) from err

        value_str: str = self.parser[section.name][key.name]
        try:
            value: Any = ast.literal_eval(value_str)
        except ValueError as err:
            msg = f"Invalid literal for {section.name}.{key.name}: {value_str}"
            raise ConfigValueError(msg) from err
        except SyntaxError as err:
            msg = f"Invalid literal for {section.name}.{key.name}: {value_str}"
            raise ConfigFormatError(msg) from err

        if not isinstance(value, (expected_type, str)):
            msg = f"Unsupported type used for '{section.name}.{key.name}': {type(value)}"
            raise ConfigTypeError(msg)
        return value

    def _stripped(self, section: DataclassField[Any], key: DataclassField[Any]) -> str:
        value: str = self.parser.get(section.name, key.name).strip()
        for char in ("'", '"'):
            value = value.removeprefix(char).removesuffix(char)
        return value

    def parse_as_float(self, section: DataclassField[Any], key: DataclassField[Any]) -> float:
        """Convert INI string to float. A trailing '%' divides by 100."""
        value: str = self._stripped(section, key)
        if value.endswith("%"):
            return float(value.removesuffix("%")) / 100.0
        return float(value)

    def parse_as_integer(self, section: DataclassField[Any], key: DataclassField[Any]) -> int:
        return int(float(self._stripped(section, key)))

    def parse_as_boolean(self, section: DataclassField[Any], key: DataclassField[Any]) -> bool:
        return self.parser.getboolean(section.name, key.name)

    def parse_as_string(self, section: DataclassField[Any], key: DataclassField[Any]) -> str:
        return self._stripped(section, key)
