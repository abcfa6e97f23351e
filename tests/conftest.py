"""Shared fixtures."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from core.tts.interface import SpeechEngine
from tests.fake_engine import SAMPLE_VOICES, FakeEngine

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine(SAMPLE_VOICES)


@pytest.fixture
def reset_engine_registry() -> Iterator[None]:
    prev_registry: dict[str, type[SpeechEngine]] = dict(SpeechEngine._registered_engines)
    SpeechEngine._registered_engines = {}
    yield
    SpeechEngine._registered_engines = prev_registry
