"""Continuous speech input backed by OpenAI Realtime transcription."""

from __future__ import annotations

import asyncio
import base64
import json
import os
from collections.abc import AsyncIterable, Callable, Iterable

import websockets

from command_controller.errors import InputUnsupported
from utils.log_utils import log
from voice_module.speech_input import SpeechInput

AudioSource = Callable[[], AsyncIterable[bytes] | Iterable[bytes]]


class RealtimeSpeechInput(SpeechInput):
    """Streams PCM16 microphone chunks to OpenAI Realtime and reports transcripts.

    ``audio_source`` is called on every start and must yield raw PCM16 chunks
    until the session is stopped. Server-side VAD splits speech into turns;
    each completed turn is delivered as a final result, deltas as interim text.
    """

    def __init__(
        self,
        audio_source: AudioSource | None,
        *,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        transcription_model: str | None = None,
        language: str | None = None,
        sample_rate: int = 24000,
    ) -> None:
        super().__init__()
        self.audio_source = audio_source
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.model = model or os.getenv("OPENAI_REALTIME_MODEL", "gpt-4o-realtime-preview")
        self.base_url = base_url or os.getenv(
            "OPENAI_REALTIME_URL", "wss://api.openai.com/v1/realtime"
        )
        self.transcription_model = transcription_model or os.getenv(
            "OPENAI_TRANSCRIPTION_MODEL", "whisper-1"
        )
        self.language = language or os.getenv("OPENAI_TRANSCRIPTION_LANGUAGE", "en")
        self.sample_rate = sample_rate
        self.debug = os.getenv("OPENAI_REALTIME_DEBUG", "0").lower() in {"1", "true", "yes", "on"}
        self._task: asyncio.Task | None = None
        self._interim: list[str] = []

    def start(self) -> None:
        if self.audio_source is None:
            raise InputUnsupported("No microphone source configured")
        if not self.api_key:
            raise InputUnsupported("OPENAI_API_KEY is required for realtime speech")
        if self._task and not self._task.done():
            return
        self._interim = []
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()

    async def _run(self) -> None:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "OpenAI-Beta": "realtime=v1",
        }
        project_id = os.getenv("OPENAI_PROJECT_ID")
        if project_id:
            headers["OpenAI-Project"] = project_id
        url = f"{self.base_url}?model={self.model}"
        try:
            async with websockets.connect(
                url, additional_headers=headers, max_size=None, compression=None
            ) as websocket:
                await websocket.send(json.dumps(self.session_update()))
                self._emit_start()
                sender = asyncio.ensure_future(self._pump_audio(websocket))
                try:
                    async for raw in websocket:
                        self.handle_event(json.loads(raw))
                finally:
                    sender.cancel()
        except asyncio.CancelledError:
            pass
        except (OSError, websockets.WebSocketException, RuntimeError) as exc:
            self._emit_error(str(exc))
        finally:
            self._task = None
            self._emit_end()

    async def _pump_audio(self, websocket) -> None:
        async for chunk in _to_async_iter(self.audio_source()):
            if not chunk:
                continue
            await websocket.send(
                json.dumps(
                    {
                        "type": "input_audio_buffer.append",
                        "audio": base64.b64encode(chunk).decode("ascii"),
                    }
                )
            )

    def session_update(self) -> dict:
        return {
            "type": "session.update",
            "session": {
                "input_audio_format": "pcm16",
                "input_audio_transcription": {
                    "model": self.transcription_model,
                    "language": self.language,
                },
                "turn_detection": {"type": "server_vad"},
                "modalities": ["text"],
            },
        }

    def handle_event(self, event: dict) -> None:
        """Translate one realtime event into interim/final results."""
        event_type = event.get("type") or ""
        if self.debug:
            log("VOICE", f"event: {event_type} payload={event}", "DEBUG")

        if event_type == "error" or event_type.endswith(".failed"):
            error = event.get("error") or {}
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise RuntimeError(f"Realtime speech error: {event_type} {message or ''}".strip())

        if event_type == "conversation.item.input_audio_transcription.delta":
            self._interim.append(event.get("delta") or "")
            self._emit_result("".join(self._interim), [])
            return

        if event_type == "conversation.item.input_audio_transcription.completed":
            transcript = (event.get("transcript") or "".join(self._interim)).strip()
            self._interim = []
            if transcript:
                self._emit_result("", [transcript])


async def _to_async_iter(stream: AsyncIterable[bytes] | Iterable[bytes]) -> AsyncIterable[bytes]:
    """Normalize sync or async iterables to an async iterator of audio chunks."""
    if hasattr(stream, "__aiter__"):
        async for item in stream:  # type: ignore[union-attr]
            yield item
    else:
        for item in stream:
            yield item
