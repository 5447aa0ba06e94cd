"""Voice capture, speech engines and reply audio playback."""

from voice_module.audio import AudioClips, AudioPlayback
from voice_module.session import VoiceSession
from voice_module.speech_input import SpeechInput

__all__ = ["AudioClips", "AudioPlayback", "SpeechInput", "VoiceSession"]
