"""Speech engine implementations.

Importing this package registers every engine with ``SpeechEngine`` so that the
engine named in the configuration can be looked up by name.

Modules:
- GoogleSpeechEngine: Google Text-to-Speech synthesis with PyAudio playback.
"""

from core.tts.engines.g_tts import GoogleSpeechEngine

__all__: list[str] = ["GoogleSpeechEngine"]
