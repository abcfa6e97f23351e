"""Unit tests for core.tts.playback_controller module."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from core.text_source import TextSource
from core.tts.interface import TTSExceptionError
from core.tts.playback_controller import (
    MSG_DONE,
    MSG_ERROR,
    MSG_NO_TEXT,
    MSG_PAUSED,
    MSG_SPEAKING,
    MSG_STARTING,
    MSG_STOPPED,
    EmptyInputWarning,
    PlaybackController,
)
from core.tts.voice_catalog import VoiceCatalog
from models.playback_models import EngineEventType, PlaybackState, StatusEvent
from models.voice_models import ParameterSet

if TYPE_CHECKING:
    from tests.fake_engine import FakeEngine


@pytest.fixture
def catalog(engine: FakeEngine) -> VoiceCatalog:
    return VoiceCatalog(engine, preferred_language="zh")


@pytest.fixture
def controller(engine: FakeEngine, catalog: VoiceCatalog) -> PlaybackController:
    return PlaybackController(engine, catalog, ParameterSet(), TextSource("Hello world"), clock=lambda: 42.0)


@pytest.fixture
def statuses(controller: PlaybackController) -> list[StatusEvent]:
    events: list[StatusEvent] = []
    controller.subscribe(events.append)
    return events


def _messages(statuses: list[StatusEvent]) -> list[str]:
    return [event.message for event in statuses]


def test_initial_state_is_idle(controller: PlaybackController) -> None:
    assert controller.state is PlaybackState.IDLE
    assert controller.session is None
    assert controller.last_status is None


def test_play_starts_session_with_snapshot(
    controller: PlaybackController, engine: FakeEngine, statuses: list[StatusEvent]
) -> None:
    controller.set_parameter("rate", 1.5)

    assert controller.play() is True

    assert controller.state is PlaybackState.SPEAKING
    assert engine.commands == ["speak"]
    request = engine.requests[0]
    assert request.text == "Hello world"
    assert request.rate == 1.5
    assert controller.session is not None
    assert controller.session.session_id == request.session_id
    assert controller.session.started_at == 42.0
    assert statuses == [StatusEvent(PlaybackState.SPEAKING, MSG_STARTING, request.session_id)]


def test_start_event_reports_speaking(
    controller: PlaybackController, engine: FakeEngine, statuses: list[StatusEvent]
) -> None:
    controller.play()
    engine.emit(EngineEventType.START)

    assert controller.state is PlaybackState.SPEAKING
    assert _messages(statuses) == [MSG_STARTING, MSG_SPEAKING]


def test_end_event_reports_done_and_returns_to_idle(
    controller: PlaybackController, engine: FakeEngine, statuses: list[StatusEvent]
) -> None:
    controller.play()
    session_id: int = engine.requests[0].session_id
    engine.emit(EngineEventType.START)
    engine.emit(EngineEventType.END)

    assert controller.state is PlaybackState.IDLE
    assert controller.session is None
    assert statuses[-1] == StatusEvent(PlaybackState.ENDED, MSG_DONE, session_id)
    assert _messages(statuses).count(MSG_DONE) == 1


def test_error_event_returns_to_idle_with_error(
    controller: PlaybackController, engine: FakeEngine, statuses: list[StatusEvent]
) -> None:
    controller.play()
    failure = RuntimeError("synthesis failed")
    engine.emit(EngineEventType.ERROR, error=failure)

    assert controller.state is PlaybackState.IDLE
    assert controller.session is None
    assert statuses[-1].message == MSG_ERROR
    assert statuses[-1].error is failure


def test_stop_when_idle_is_a_no_op(
    controller: PlaybackController, engine: FakeEngine, statuses: list[StatusEvent]
) -> None:
    controller.stop()
    controller.stop()

    assert controller.state is PlaybackState.IDLE
    assert engine.commands == []
    assert statuses == []


def test_stop_cancels_current_session(
    controller: PlaybackController, engine: FakeEngine, statuses: list[StatusEvent]
) -> None:
    controller.play()
    controller.stop()
    controller.stop()

    assert controller.state is PlaybackState.IDLE
    assert controller.session is None
    assert engine.commands == ["speak", "cancel"]
    assert _messages(statuses) == [MSG_STARTING, MSG_STOPPED]


def test_stop_while_paused(controller: PlaybackController, engine: FakeEngine) -> None:
    controller.play()
    controller.pause()
    controller.stop()

    assert controller.state is PlaybackState.IDLE
    assert engine.commands == ["speak", "pause", "cancel"]


def test_pause_toggles(controller: PlaybackController, engine: FakeEngine, statuses: list[StatusEvent]) -> None:
    controller.play()
    controller.pause()
    assert controller.state is PlaybackState.PAUSED

    controller.pause()
    assert controller.state is PlaybackState.SPEAKING

    assert engine.commands == ["speak", "pause", "resume"]
    assert _messages(statuses) == [MSG_STARTING, MSG_PAUSED, MSG_SPEAKING]


def test_pause_when_idle_is_a_no_op(controller: PlaybackController, engine: FakeEngine) -> None:
    controller.pause()

    assert controller.state is PlaybackState.IDLE
    assert engine.commands == []


def test_play_while_paused_resumes_same_session(controller: PlaybackController, engine: FakeEngine) -> None:
    controller.play()
    session_id: int = engine.requests[0].session_id
    controller.pause()

    assert controller.play() is True

    assert controller.state is PlaybackState.SPEAKING
    assert controller.session is not None
    assert controller.session.session_id == session_id
    assert engine.commands == ["speak", "pause", "resume"]


def test_play_twice_supersedes_first_session(
    controller: PlaybackController, engine: FakeEngine, statuses: list[StatusEvent]
) -> None:
    controller.play()
    first_id: int = engine.requests[0].session_id
    controller.play()
    second_id: int = engine.requests[1].session_id

    assert engine.commands == ["speak", "cancel", "speak"]
    assert second_id != first_id

    # A late END of the first session must not end the second one.
    engine.emit(EngineEventType.END, session_id=first_id)
    assert controller.state is PlaybackState.SPEAKING
    assert MSG_DONE not in _messages(statuses)

    engine.emit(EngineEventType.END, session_id=second_id)
    assert controller.state is PlaybackState.IDLE
    assert _messages(statuses).count(MSG_DONE) == 1


def test_stale_events_after_stop_are_discarded(
    controller: PlaybackController, engine: FakeEngine, statuses: list[StatusEvent]
) -> None:
    controller.play()
    session_id: int = engine.requests[0].session_id
    controller.stop()
    count: int = len(statuses)

    engine.emit(EngineEventType.START, session_id=session_id)
    engine.emit(EngineEventType.ERROR, session_id=session_id, error=RuntimeError("late"))

    assert controller.state is PlaybackState.IDLE
    assert len(statuses) == count


def test_start_event_while_paused_keeps_paused(controller: PlaybackController, engine: FakeEngine) -> None:
    controller.play()
    controller.pause()
    engine.emit(EngineEventType.START)

    assert controller.state is PlaybackState.PAUSED


def test_play_with_empty_text_warns_without_engine_command(engine: FakeEngine, catalog: VoiceCatalog) -> None:
    controller = PlaybackController(engine, catalog, text_source=TextSource())
    statuses: list[StatusEvent] = []
    controller.subscribe(statuses.append)

    assert controller.play() is False

    assert controller.state is PlaybackState.IDLE
    assert engine.commands == []
    assert len(statuses) == 1
    assert statuses[0].message == MSG_NO_TEXT
    assert isinstance(statuses[0].error, EmptyInputWarning)


def test_play_with_empty_text_keeps_speaking_session(
    controller: PlaybackController, engine: FakeEngine, statuses: list[StatusEvent]
) -> None:
    controller.play()
    controller.set_text("")

    assert controller.play() is False

    assert controller.state is PlaybackState.SPEAKING
    assert engine.commands == ["speak"]
    assert statuses[-1].message == MSG_NO_TEXT


def test_play_with_empty_text_while_paused_stays_paused(
    controller: PlaybackController, engine: FakeEngine, statuses: list[StatusEvent]
) -> None:
    controller.play()
    session_id: int = engine.requests[0].session_id
    controller.pause()
    controller.text_source.clear()

    assert controller.play() is False

    assert controller.state is PlaybackState.PAUSED
    assert engine.commands == ["speak", "pause"]
    assert statuses[-1].message == MSG_NO_TEXT
    assert statuses[-1].state is PlaybackState.PAUSED
    assert statuses[-1].session_id == session_id
    assert isinstance(statuses[-1].error, EmptyInputWarning)


def test_text_edit_does_not_affect_session_in_flight(controller: PlaybackController, engine: FakeEngine) -> None:
    controller.play()
    controller.set_text("Something else")

    assert controller.session is not None
    assert controller.session.text == "Hello world"
    assert engine.requests[0].text == "Hello world"


def test_parameter_changes_apply_to_next_session(controller: PlaybackController, engine: FakeEngine) -> None:
    controller.play()
    stored: float = controller.set_parameter("volume", 5)
    controller.play()

    assert stored == 1.0
    controller.set_parameter("volume", -1)
    controller.play()
    assert [request.volume for request in engine.requests] == [1.0, 1.0, 0.0]


def test_speak_failure_reports_error(
    controller: PlaybackController, engine: FakeEngine, statuses: list[StatusEvent]
) -> None:
    engine.speak_error = TTSExceptionError("no audio device")

    assert controller.play() is False

    assert controller.state is PlaybackState.IDLE
    assert controller.session is None
    assert statuses[-1].message == MSG_ERROR
    assert statuses[-1].error is engine.speak_error


def test_catalog_refresh_selects_default_voice(
    controller: PlaybackController, catalog: VoiceCatalog, engine: FakeEngine
) -> None:
    catalog.refresh()

    assert controller.parameters.voice_name == "Chinese (Mandarin/Taiwan)"
    controller.play()
    assert engine.requests[0].voice is not None
    assert engine.requests[0].voice.language_tag == "zh-TW"


def test_catalog_refresh_keeps_chosen_voice(controller: PlaybackController, catalog: VoiceCatalog) -> None:
    controller.parameters.voice_name = "English (US)"
    catalog.refresh()

    assert controller.parameters.voice_name == "English (US)"


def test_unknown_voice_falls_back_to_engine_default(
    controller: PlaybackController, catalog: VoiceCatalog, engine: FakeEngine
) -> None:
    catalog.refresh()
    assert controller.set_voice("Klingon") is None

    controller.play()

    assert engine.requests[0].voice is None


def test_listener_failure_does_not_break_playback(controller: PlaybackController, engine: FakeEngine) -> None:
    def broken(_event: StatusEvent) -> None:
        raise RuntimeError("listener bug")

    controller.subscribe(broken)
    controller.play()
    engine.emit(EngineEventType.END)

    assert controller.state is PlaybackState.IDLE


def test_listener_may_start_new_session_on_done(controller: PlaybackController, engine: FakeEngine) -> None:
    def replay(event: StatusEvent) -> None:
        if event.message == MSG_DONE and len(engine.requests) == 1:
            controller.play()

    controller.subscribe(replay)
    controller.play()
    engine.emit(EngineEventType.END)

    assert controller.state is PlaybackState.SPEAKING
    assert len(engine.requests) == 2


def test_unsubscribe_stops_delivery(controller: PlaybackController) -> None:
    events: list[StatusEvent] = []
    unsubscribe = controller.subscribe(events.append)
    unsubscribe()
    unsubscribe()

    controller.play()

    assert events == []


def test_close_stops_and_detaches(
    controller: PlaybackController, engine: FakeEngine, catalog: VoiceCatalog, statuses: list[StatusEvent]
) -> None:
    controller.play()
    controller.close()
    count: int = len(statuses)

    assert engine.commands[-1] == "cancel"
    catalog.refresh()
    assert controller.parameters.voice_name == ""
    controller.play()
    assert len(statuses) == count
