from __future__ import annotations

import asyncio
import contextlib
import math
from dataclasses import dataclass, field
from functools import partial
from io import BytesIO
from typing import TYPE_CHECKING, Any, Final

import numpy as np
import pyaudio
import soundfile
from gtts import gTTS, gTTSError
from gtts.lang import tts_langs
from numpy import dtype

from core.tts.interface import EngineError, SpeechEngine
from models.playback_models import EngineEvent, EngineEventType
from models.voice_models import Voice
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from core.tts.interface import EngineEventListener
    from models.config_models import EngineConfig
    from models.playback_models import SpeechRequest


__all__: list[str] = ["GoogleSpeechEngine"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

DEFAULT_LANGUAGE: Final[str] = "en"
DEFAULT_TLD: Final[str] = "com"
DEFAULT_TIMEOUT: Final[float] = 10.0
# 0.2 seconds of audio per callback, never less than 2048 frames
BUFFER_SECONDS: Final[float] = 0.2
MIN_BUFFER_FRAMES: Final[int] = 2048

type PCMArray = np.ndarray[Any, dtype[np.float32]]


def _ensure_float32_array(arr: Any, label: str = "audio data") -> PCMArray:
    """Validate that ``arr`` is a float32 ndarray.

    Raises:
        TypeError: If not ndarray or wrong dtype.
    """
    if not isinstance(arr, np.ndarray):
        msg: str = f"Expected ndarray for {label}, got {type(arr)}"
        raise TypeError(msg)
    if arr.dtype != np.float32:
        msg = f"Expected float32 for {label}, got {arr.dtype}"
        raise TypeError(msg)
    return arr


@dataclass
class _AudioData:
    raw_pcm: PCMArray
    samplerate: int

    def __post_init__(self) -> None:
        if not isinstance(self.raw_pcm, np.ndarray):
            msg: str = f"Expected ndarray for raw_pcm, got {type(self.raw_pcm)}"
            raise TypeError(msg)
        if not isinstance(self.samplerate, int):
            msg = f"Expected int for samplerate, got {type(self.samplerate)}"
            raise TypeError(msg)
        if self.raw_pcm.ndim == 1:
            self.raw_pcm = self.raw_pcm.reshape(-1, 1)

    @property
    def channels(self) -> int:
        return int(self.raw_pcm.shape[1])


@dataclass
class _Utterance:
    """Playback position and control flags of the utterance in flight.

    ``paused`` and ``cancelled`` are written on the event loop and read by the audio thread.
    """

    request: SpeechRequest
    audio: _AudioData | None = None
    position: int = 0
    paused: bool = False
    cancelled: bool = False
    task: asyncio.Task[None] | None = field(default=None, repr=False)


def _change_rate(pcm: PCMArray, rate: float) -> PCMArray:
    """Resample ``pcm`` so that it plays ``rate`` times faster at the same sample rate.

    Linear interpolation; the pitch moves with the speed.
    """
    if math.isclose(rate, 1.0):
        return pcm
    frames: int = pcm.shape[0]
    if frames < 2:  # noqa: PLR2004
        return pcm
    new_frames: int = max(1, round(frames / rate))
    source_positions = np.linspace(0, frames - 1, new_frames)
    frame_index = np.arange(frames)
    resampled: PCMArray = np.empty((new_frames, pcm.shape[1]), dtype=np.float32)
    for channel in range(pcm.shape[1]):
        resampled[:, channel] = np.interp(source_positions, frame_index, pcm[:, channel])
    return resampled


def _stream_callback_logic(
    in_data,
    frame_count,
    time_info,
    status,
    /,
    utterance: _Utterance,
    loop: asyncio.AbstractEventLoop,
    done_event: asyncio.Event,
) -> tuple[bytes | None, int]:
    """Callback function for the PyAudio stream.

    Runs on the PortAudio thread. Fills the buffer from the utterance's PCM data,
    outputs silence while paused and hands completion back to the event loop.

    Returns:
        tuple[bytes | None, int]: Audio data and playback status.
    """
    # The first four are position-only arguments.
    # The order of definitions cannot be changed.
    _ = in_data, time_info, status
    audio: _AudioData | None = utterance.audio
    try:
        if utterance.cancelled or audio is None:
            loop.call_soon_threadsafe(done_event.set)
            return (None, pyaudio.paAbort)

        if utterance.paused:
            silence: PCMArray = np.zeros((frame_count, audio.channels), dtype=np.float32)
            return (silence.tobytes(), pyaudio.paContinue)

        start: int = utterance.position
        chunk: PCMArray = audio.raw_pcm[start : start + frame_count]
        utterance.position = start + chunk.shape[0]
        # Considered complete when there is no more data to play back
        if chunk.shape[0] < frame_count:
            padding: PCMArray = np.zeros((frame_count - chunk.shape[0], audio.channels), dtype=np.float32)
            loop.call_soon_threadsafe(done_event.set)
            return (np.concatenate((chunk, padding)).tobytes(), pyaudio.paComplete)

    except RuntimeError as err:
        # Event loop already closed
        logger.critical("Runtime error in audio callback: %s", err)
        return (None, pyaudio.paAbort)

    return (np.ascontiguousarray(chunk).tobytes(), pyaudio.paContinue)


class GoogleSpeechEngine(SpeechEngine):
    """Speech engine built on Google Text-to-Speech.

    Voices are the languages gTTS supports. Synthesis fetches an MP3 stream from
    Google in a worker thread, decodes it to float32 PCM with soundfile and adjusts
    rate and volume with NumPy. Playback uses a PyAudio callback stream; pausing
    feeds silence, so ``resume`` continues at the same position.

    gTTS has no pitch control, so the pitch parameter is accepted and ignored.
    """

    def __init__(self) -> None:
        logger.debug("%s initializing", self.__class__.__name__)
        super().__init__()
        self._tld: str = DEFAULT_TLD
        self._timeout: float = DEFAULT_TIMEOUT
        self._voices: tuple[Voice, ...] = ()
        self._utterance: _Utterance | None = None
        self._pyaudio: pyaudio.PyAudio | None = None

    @staticmethod
    def fetch_engine_name() -> str:
        return "gtts"

    def initialize_engine(self, engine_config: EngineConfig) -> bool:
        self._tld = engine_config.TLD or DEFAULT_TLD
        try:
            self._timeout = float(engine_config.TIMEOUT)
        except (TypeError, ValueError):
            logger.warning("Invalid timeout setting; using default value %s", DEFAULT_TIMEOUT)
            self._timeout = DEFAULT_TIMEOUT
        return True

    async def async_init(self) -> None:
        """Load the voice list in a worker thread and notify listeners."""
        languages: dict[str, str] = await asyncio.to_thread(tts_langs)
        self._voices = tuple(
            Voice(name=description, language_tag=code, handle=code) for code, description in sorted(languages.items())
        )
        logger.info("%d gTTS voices loaded", len(self._voices))
        self.notify_voices_changed()

    async def close(self) -> None:
        """Cancel the utterance, wait for its stream to close, then terminate PyAudio."""
        task: asyncio.Task[None] | None = self._utterance.task if self._utterance is not None else None
        self.cancel()
        if task is not None and not task.done():
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self.release_pyaudio()
        await super().close()

    def list_voices(self) -> tuple[Voice, ...]:
        return self._voices

    def speak(self, request: SpeechRequest, listener: EngineEventListener) -> None:
        if self.is_speaking:
            logger.warning("Utterance still active; cancelling it before session %d", request.session_id)
            self.cancel()

        utterance = _Utterance(request=request)
        utterance.task = asyncio.get_running_loop().create_task(
            self._utter(utterance, listener), name=f"utterance_{request.session_id}"
        )
        self._utterance = utterance

    def pause(self) -> None:
        if self._utterance is not None:
            self._utterance.paused = True

    def resume(self) -> None:
        if self._utterance is not None:
            self._utterance.paused = False

    def cancel(self) -> None:
        utterance: _Utterance | None = self._utterance
        self._utterance = None
        if utterance is None:
            return
        utterance.cancelled = True
        if utterance.task is not None and not utterance.task.done():
            utterance.task.cancel()
        logger.debug("Utterance of session %d cancelled", utterance.request.session_id)

    @property
    def is_speaking(self) -> bool:
        utterance: _Utterance | None = self._utterance
        return utterance is not None and utterance.task is not None and not utterance.task.done()

    @property
    def is_paused(self) -> bool:
        return self.is_speaking and self._utterance is not None and self._utterance.paused

    async def _utter(self, utterance: _Utterance, listener: EngineEventListener) -> None:
        session_id: int = utterance.request.session_id
        try:
            utterance.audio = await self._synthesize(utterance.request)
            self._emit(listener, EngineEvent(EngineEventType.START, session_id))
            await self._play(utterance)
        except asyncio.CancelledError:
            logger.info("Utterance of session %d was cancelled", session_id)
            raise
        except gTTSError as err:
            logger.error("gTTS Internal Error: %s", err)
            self._emit(listener, EngineEvent(EngineEventType.ERROR, session_id, EngineError(str(err))))
        except (soundfile.LibsndfileError, soundfile.SoundFileRuntimeError) as err:
            logger.error("SoundFile Error: %s", err)
            self._emit(listener, EngineEvent(EngineEventType.ERROR, session_id, EngineError(str(err))))
        except (AssertionError, OSError, AttributeError, TypeError, ValueError) as err:
            # gTTS asserts when the text holds nothing speakable, e.g. "..."
            logger.error("An error occurred in the TTS process: %s", err)
            self._emit(listener, EngineEvent(EngineEventType.ERROR, session_id, EngineError(str(err))))
        except Exception as err:  # noqa: BLE001
            logger.error("Unexpected error in utterance of session %d: %r", session_id, err)
            self._emit(listener, EngineEvent(EngineEventType.ERROR, session_id, EngineError(repr(err))))
        else:
            logger.info("Utterance of session %d completed", session_id)
            self._emit(listener, EngineEvent(EngineEventType.END, session_id))
        finally:
            if self._utterance is utterance:
                self._utterance = None

    async def _synthesize(self, request: SpeechRequest) -> _AudioData:
        """Synthesize ``request`` to float32 PCM with rate and volume applied."""
        if not request.text.strip():
            msg = "Nothing to synthesize"
            raise ValueError(msg)

        lang: str = str(request.voice.handle or request.voice.language_tag) if request.voice else DEFAULT_LANGUAGE
        if not math.isclose(request.pitch, 1.0):
            logger.debug("Pitch %s ignored; gTTS does not support pitch", request.pitch)

        mp3_data = BytesIO()
        tts: gTTS = gTTS(request.text, lang=lang, tld=self._tld, timeout=self._timeout)
        await asyncio.to_thread(tts.write_to_fp, mp3_data)
        # The file pointer is at the end after writing; rewind before decoding.
        # https://github.com/bastibe/python-soundfile/issues/333
        mp3_data.seek(0)

        raw_pcm, samplerate = soundfile.read(mp3_data, dtype="float32", always_2d=True)
        audiodata = _AudioData(raw_pcm=_ensure_float32_array(raw_pcm, "mp3 audio data"), samplerate=samplerate)
        logger.debug("sampling rate=%d, frames=%d", audiodata.samplerate, audiodata.raw_pcm.shape[0])

        audiodata.raw_pcm = _change_rate(audiodata.raw_pcm, request.rate)
        # Skip volume conversion at full volume
        if not math.isclose(request.volume, 1.0):
            # Broadcasting keeps float32; PyAudio does not accept float64.
            audiodata.raw_pcm = audiodata.raw_pcm * np.float32(request.volume)
        return audiodata

    async def _play(self, utterance: _Utterance) -> None:
        """Play the synthesized audio and wait until it finishes or is aborted."""
        audio: _AudioData | None = utterance.audio
        if audio is None:
            msg = "No audio to play"
            raise ValueError(msg)

        loop: asyncio.AbstractEventLoop = asyncio.get_running_loop()
        done_event = asyncio.Event()
        callback_fn: partial[tuple[bytes | None, int]] = partial(
            _stream_callback_logic,
            utterance=utterance,
            loop=loop,
            done_event=done_event,
        )
        frame_buffer_size: int = max(MIN_BUFFER_FRAMES, int(audio.samplerate * BUFFER_SECONDS))
        logger.debug(
            "Audio properties - Channels: %s, Sampling rate: %s, Buffer size: %s",
            audio.channels,
            audio.samplerate,
            frame_buffer_size,
        )

        stream: pyaudio.Stream | None = None
        try:
            stream = self.pyaudio.open(
                format=pyaudio.paFloat32,
                channels=audio.channels,
                rate=audio.samplerate,
                output=True,
                frames_per_buffer=frame_buffer_size,
                stream_callback=callback_fn,
            )
            stream.start_stream()
            await done_event.wait()
        finally:
            if stream is not None:
                with contextlib.suppress(Exception):
                    stream.stop_stream()
                with contextlib.suppress(Exception):
                    stream.close()

    @staticmethod
    def _emit(listener: EngineEventListener, event: EngineEvent) -> None:
        try:
            listener(event)
        except Exception as err:  # noqa: BLE001
            logger.error("Engine event listener failed for %s: %r", event.kind.value, err)

    @property
    def pyaudio(self) -> pyaudio.PyAudio:
        """Gets the PyAudio instance, creating it on first use."""
        if self._pyaudio is None:
            self._pyaudio = pyaudio.PyAudio()
            logger.info("PyAudio instance created")
        return self._pyaudio

    def release_pyaudio(self) -> None:
        if self._pyaudio is not None:
            self._pyaudio.terminate()
            self._pyaudio = None
            logger.info("PyAudio resources released")
