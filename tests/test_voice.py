"""Tests for the voice session, realtime event handling and reply audio."""

from unittest.mock import Mock

import pytest

from command_controller.errors import InputUnsupported
from voice_module.audio import AudioClips, AudioPlayback
from voice_module.realtime_speech import RealtimeSpeechInput
from voice_module.session import LISTENING_TEXT, MIC_ERROR_TEXT, UNSUPPORTED_TEXT, VoiceSession


class TestVoiceSession:
    def test_start_sets_listening_and_toast(self, speech, toast):
        session = VoiceSession(speech, toast, on_utterance=Mock())

        assert session.start() is True
        assert session.listening is True
        assert toast.text == LISTENING_TEXT

    def test_final_result_is_submitted(self, speech, toast):
        heard = Mock()
        session = VoiceSession(speech, toast, on_utterance=heard)
        session.start()

        speech.on_result("what is th", [])
        assert session.interim == "what is th"
        speech.say(" what is this ")

        heard.assert_called_once_with("what is this")
        assert session.interim == ""

    def test_engine_end_restarts_while_wanted(self, speech, toast):
        session = VoiceSession(speech, toast, on_utterance=Mock())
        session.start()

        speech.running = False
        speech.on_end()

        assert speech.starts == 2
        assert session.listening is True

    def test_stop_does_not_restart(self, speech, toast):
        session = VoiceSession(speech, toast, on_utterance=Mock())
        session.start()

        session.stop()

        assert speech.starts == 1
        assert session.listening is False
        assert toast.text == ""

    def test_missing_engine_toasts_every_attempt(self, toast, capsys):
        session = VoiceSession(None, toast, on_utterance=Mock())

        assert session.start() is False
        toast.clear()
        assert session.start() is False

        assert toast.text == UNSUPPORTED_TEXT
        assert capsys.readouterr().out.count("[VOICE][WARN]") == 1

    def test_unsupported_engine(self, speech, toast):
        speech.fail_with = InputUnsupported("no mic")
        session = VoiceSession(speech, toast, Mock())

        assert session.start() is False
        assert session.listening is False
        assert toast.text == UNSUPPORTED_TEXT

    def test_engine_error_shows_mic_error(self, speech, toast):
        session = VoiceSession(speech, toast, on_utterance=Mock())
        session.start()

        speech.on_error("not-allowed")

        assert session.listening is False
        assert toast.text == MIC_ERROR_TEXT

    def test_engine_error_then_end_does_not_restart(self, speech, toast):
        session = VoiceSession(speech, toast, on_utterance=Mock())
        session.start()

        speech.on_error("network")
        speech.running = False
        speech.on_end()

        assert speech.starts == 1
        assert session.listening is False
        assert toast.text == MIC_ERROR_TEXT

    def test_toggle_after_engine_error_starts_once(self, speech, toast):
        session = VoiceSession(speech, toast, on_utterance=Mock())
        session.start()
        speech.on_error("network")
        speech.running = False
        speech.on_end()

        assert session.toggle() is True

        assert speech.starts == 2
        assert session.listening is True
        assert toast.text == LISTENING_TEXT

    def test_toggle(self, speech, toast):
        session = VoiceSession(speech, toast, on_utterance=Mock())
        assert session.toggle() is True
        assert session.toggle() is False
        assert session.listening is False


class TestRealtimeEvents:
    def _engine(self):
        engine = RealtimeSpeechInput(lambda: [], api_key="sk-test")
        results = []
        engine.bind(
            on_start=Mock(),
            on_end=Mock(),
            on_error=Mock(),
            on_result=lambda interim, finals: results.append((interim, finals)),
        )
        return engine, results

    def test_deltas_then_completion(self):
        engine, results = self._engine()

        engine.handle_event({"type": "conversation.item.input_audio_transcription.delta", "delta": "hel"})
        engine.handle_event({"type": "conversation.item.input_audio_transcription.delta", "delta": "lo"})
        engine.handle_event(
            {"type": "conversation.item.input_audio_transcription.completed", "transcript": " hello "}
        )

        assert results == [("hel", []), ("hello", []), ("", ["hello"])]

    def test_error_event_raises(self):
        engine, _ = self._engine()
        with pytest.raises(RuntimeError, match="bad audio"):
            engine.handle_event({"type": "error", "error": {"message": "bad audio"}})

    def test_start_without_source_is_unsupported(self):
        with pytest.raises(InputUnsupported):
            RealtimeSpeechInput(None, api_key="sk-test").start()

    def test_start_without_key_is_unsupported(self):
        with pytest.raises(InputUnsupported):
            RealtimeSpeechInput(lambda: [], api_key="").start()

    def test_session_update_requests_transcription(self):
        update = RealtimeSpeechInput(lambda: [], api_key="k", language="de").session_update()
        assert update["session"]["input_audio_transcription"]["language"] == "de"
        assert update["session"]["turn_detection"] == {"type": "server_vad"}


class TestAudio:
    def test_replacing_clip_revokes_previous(self, tmp_path):
        clips = AudioClips(tmp_path)
        player = Mock()
        playback = AudioPlayback(clips, player)
        first = clips.create_url(b"one")
        second = clips.create_url(b"two", "audio/wav")

        playback.play(first)
        playback.play(second)

        assert not clips.is_live(first)
        assert clips.is_live(second)
        assert second.endswith(".wav")
        assert player.call_count == 2

    def test_stop_revokes_current(self, tmp_path):
        clips = AudioClips(tmp_path)
        playback = AudioPlayback(clips)
        url = clips.create_url(b"x")
        playback.play(url)

        playback.stop()

        assert len(clips) == 0
        assert playback.current_url is None

    def test_revoke_all_removes_files(self, tmp_path):
        clips = AudioClips(tmp_path)
        clips.create_url(b"a")
        clips.create_url(b"b")

        clips.revoke_all()

        assert list(tmp_path.iterdir()) == []
