"""Assistant bridge: text and voice replies from the proxy API.

``AssistantBridge`` speaks HTTP and classifies failures into the
``command_controller.errors`` taxonomy. ``AssistantSession`` is the
controller-side boundary: it fences requests by id so only the latest one
may touch the message log or start playback, and turns failures into
messages with retry actions.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import os
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from functools import partial
from typing import Any, TypeVar

import httpx

from command_controller.errors import (
    NetworkFailure,
    OrbError,
    RequestAborted,
    UpstreamAuthError,
    UpstreamGenericError,
)
from command_controller.logger import CommandLogger
from command_controller.messages import ASSISTANT, Message, MessageLog
from utils.notify import Toast
from utils.secure_store import KeyStore
from voice_module.audio import AudioClips, AudioPlayback

PROMPT_LIMIT = 2000
TEXT_LIMIT = 1000
SELECTION_LIMIT = 1000
IMAGE_LIMIT = 5
DEFAULT_TIMEOUT_SECS = 15.0
DEFAULT_API_BASE = "http://127.0.0.1:8787"
REPLY_PATH = "/api/assistant-reply"
VOICE_PATH = "/api/assistant-voice"
OPENAI_KEY_NAME = "openai"

AUTH_TOAST = "🔑 Add your OpenAI key in Settings"
ERROR_TOAST_MS = 2500

T = TypeVar("T")


def _allowed_image(url: str) -> bool:
    return url.startswith(("http://", "https://", "data:image/"))


@dataclass(frozen=True)
class ContextBundle:
    post_id: str | None = None
    title: str = ""
    text: str = ""
    selection: str = ""
    images: tuple[str, ...] = ()

    @classmethod
    def build(
        cls,
        post_id: str | None = None,
        title: str | None = "",
        text: str | None = "",
        selection: str | None = "",
        images: Sequence[str] = (),
    ) -> "ContextBundle":
        kept = [url for url in images if isinstance(url, str) and _allowed_image(url)]
        return cls(
            post_id=str(post_id) if post_id is not None else None,
            title=(title or "").strip(),
            text=(text or "").strip()[:TEXT_LIMIT],
            selection=(selection or "").strip()[:SELECTION_LIMIT],
            images=tuple(kept[:IMAGE_LIMIT]),
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"postId": self.post_id, "title": self.title, "text": self.text}
        if self.selection:
            payload["selection"] = self.selection
        if self.images:
            payload["images"] = list(self.images)
        return payload


@dataclass(frozen=True)
class AssistantRequest:
    prompt: str
    ctx: ContextBundle | None = None
    model: str | None = None

    @classmethod
    def build(
        cls, prompt: str, ctx: ContextBundle | None = None, model: str | None = None
    ) -> "AssistantRequest":
        text = (prompt or "").strip()[:PROMPT_LIMIT]
        if not text:
            raise ValueError("prompt is empty")
        return cls(prompt=text, ctx=ctx, model=(model or "").strip() or None)

    @property
    def post_id(self) -> str | None:
        return self.ctx.post_id if self.ctx else None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"prompt": self.prompt}
        if self.ctx is not None:
            payload["ctx"] = self.ctx.to_payload()
        if self.model:
            payload["model"] = self.model
        return payload


@dataclass(frozen=True)
class VoiceReply:
    text: str
    url: str
    mime: str = "audio/mpeg"


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text.strip() or "request failed"
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, str) and error:
        return error
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return "request failed"


class AssistantBridge:
    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        keys: KeyStore | None = None,
        clips: AudioClips | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: CommandLogger | None = None,
    ) -> None:
        self.base_url = base_url or os.getenv("ORB_API_BASE", DEFAULT_API_BASE)
        self.timeout = float(timeout or os.getenv("ORB_REQUEST_TIMEOUT", DEFAULT_TIMEOUT_SECS))
        self.keys = keys
        self.clips = clips or AudioClips()
        self.logger = logger or CommandLogger("ASSIST")
        self.client = httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=transport
        )

    async def ask_text(self, request: AssistantRequest) -> str:
        """Return the reply text for ``request``."""

        async def read(response: httpx.Response) -> str:
            await response.aread()
            try:
                data = response.json()
            except ValueError:
                data = None
            if not isinstance(data, dict) or not isinstance(data.get("text"), str):
                raise UpstreamGenericError("invalid response", status=response.status_code)
            return data["text"]

        return await self._call(REPLY_PATH, request.to_payload(), read)

    async def ask_voice(self, request: AssistantRequest) -> VoiceReply:
        """Return the spoken reply as a playable clip URL.

        The proxy answers either with raw ``audio/*`` bytes or with JSON
        ``{ok, audio, text, type}`` carrying base64 audio.
        """
        key = self.keys.get_key(OPENAI_KEY_NAME) if self.keys else ""
        if not key:
            raise UpstreamAuthError()
        payload = request.to_payload()
        payload["apiKey"] = key

        async def read(response: httpx.Response) -> VoiceReply:
            content_type = response.headers.get("content-type", "")
            if content_type.startswith("audio/"):
                chunks = [chunk async for chunk in response.aiter_bytes()]
                audio, text, mime = b"".join(chunks), "", content_type.split(";")[0].strip()
            else:
                await response.aread()
                audio, text, mime = self._decode_json_audio(response)
            if not audio:
                raise UpstreamGenericError("no audio stream", status=response.status_code)
            return VoiceReply(text=text, url=self.clips.create_url(audio, mime), mime=mime)

        headers = {"Authorization": f"Bearer {key}"}
        return await self._call(VOICE_PATH, payload, read, headers)

    async def aclose(self) -> None:
        await self.client.aclose()

    def _decode_json_audio(self, response: httpx.Response) -> tuple[bytes, str, str]:
        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamGenericError(response.text.strip() or "invalid content-type") from exc
        if not isinstance(data, dict):
            raise UpstreamGenericError("Missing audio")
        if data.get("error"):
            raise UpstreamGenericError(_error_message(response))
        if not data.get("audio"):
            raise UpstreamGenericError("Missing audio")
        try:
            audio = base64.b64decode(data["audio"], validate=True)
        except (binascii.Error, ValueError, TypeError) as exc:
            raise UpstreamGenericError("invalid audio payload") from exc
        return audio, str(data.get("text") or ""), str(data.get("type") or "audio/mpeg")

    async def _call(
        self,
        path: str,
        payload: dict[str, Any],
        read: Callable[[httpx.Response], Awaitable[T]],
        headers: dict[str, str] | None = None,
    ) -> T:
        try:
            return await asyncio.wait_for(self._exchange(path, payload, read, headers), self.timeout)
        except asyncio.TimeoutError as exc:
            raise RequestAborted("request timeout") from exc
        except httpx.TimeoutException as exc:
            raise RequestAborted("request timeout") from exc
        except httpx.TransportError as exc:
            raise NetworkFailure(str(exc) or "network error") from exc

    async def _exchange(
        self,
        path: str,
        payload: dict[str, Any],
        read: Callable[[httpx.Response], Awaitable[T]],
        headers: dict[str, str] | None,
    ) -> T:
        request = self.client.build_request("POST", path, json=payload, headers=headers)
        response = await self.client.send(request, stream=True)
        try:
            if response.status_code == 401:
                raise UpstreamAuthError()
            if response.is_error:
                await response.aread()
                message = _error_message(response)
                self.logger.error(f"{path} -> {response.status_code}: {message}")
                raise UpstreamGenericError(message, status=response.status_code)
            return await read(response)
        finally:
            await response.aclose()


class RequestFence:
    """Monotonic request ids; only the latest issued id is current."""

    def __init__(self) -> None:
        self._latest = 0

    @property
    def latest(self) -> int:
        return self._latest

    def issue(self) -> int:
        self._latest += 1
        return self._latest

    def is_current(self, request_id: int) -> bool:
        return request_id == self._latest


class AssistantSession:
    def __init__(
        self,
        bridge: AssistantBridge,
        messages: MessageLog,
        *,
        toast: Toast | None = None,
        playback: AudioPlayback | None = None,
        model: Callable[[], str | None] | None = None,
        logger: CommandLogger | None = None,
    ) -> None:
        self.bridge = bridge
        self.messages = messages
        self.toast = toast
        self.playback = playback or AudioPlayback(bridge.clips)
        self.model = model
        self.logger = logger or CommandLogger("ASSIST")
        self.fence = RequestFence()

    def build_request(self, prompt: str, ctx: ContextBundle | None = None) -> AssistantRequest:
        return AssistantRequest.build(prompt, ctx, self.model() if self.model else None)

    async def ask(self, prompt: str, ctx: ContextBundle | None = None) -> Message | None:
        return await self.dispatch(self.build_request(prompt, ctx), voice=False)

    async def ask_voice(self, prompt: str, ctx: ContextBundle | None = None) -> Message | None:
        return await self.dispatch(self.build_request(prompt, ctx), voice=True)

    async def dispatch(
        self,
        request: AssistantRequest,
        *,
        voice: bool = False,
        failed_id: str | None = None,
    ) -> Message | None:
        """Send ``request``; None when it failed to apply because it went stale."""
        request_id = self.fence.issue()
        try:
            if voice:
                reply = await self.bridge.ask_voice(request)
            else:
                reply = await self.bridge.ask_text(request)
        except OrbError as exc:
            if not self.fence.is_current(request_id):
                self.logger.info(f"Dropped stale failure #{request_id}: {exc.code}")
                return None
            self._drop_failed(failed_id)
            return self._fail(exc, request, voice)

        if not self.fence.is_current(request_id):
            if isinstance(reply, VoiceReply):
                self.bridge.clips.revoke(reply.url)
            self.logger.info(f"Dropped stale reply #{request_id}")
            return None

        self._drop_failed(failed_id)
        if isinstance(reply, VoiceReply):
            self.playback.play(reply.url)
            text = reply.text
        else:
            text = reply
        return self.messages.append(ASSISTANT, text, post_id=request.post_id)

    def teardown(self) -> None:
        # Any reply still in flight becomes stale.
        self.fence.issue()
        self.playback.stop()

    def _fail(self, exc: OrbError, request: AssistantRequest, voice: bool) -> Message:
        self.logger.error(f"Assistant request failed ({exc.code}): {exc.message}")
        message = self.messages.append(ASSISTANT, exc.message, post_id=request.post_id)
        if exc.retryable:
            message.retry = partial(self.dispatch, request, voice=voice, failed_id=message.id)
        if self.toast is not None:
            text = AUTH_TOAST if isinstance(exc, UpstreamAuthError) else f"⚠️ {exc.message}"
            self.toast.show(text, ERROR_TOAST_MS)
        return message

    def _drop_failed(self, failed_id: str | None) -> None:
        if failed_id:
            self.messages.discard(failed_id)
