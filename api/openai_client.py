"""Thin async client for the upstream OpenAI REST API used by the proxy."""

from __future__ import annotations

import os
from typing import Any

import httpx

from command_controller.errors import NetworkFailure, RequestAborted, UpstreamGenericError

DEFAULT_BASE_URL = "https://api.openai.com/v1"


def upstream_message(data: Any) -> str:
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str) and error:
        return error
    return "Failed"


def chat_text(data: dict) -> str:
    """Text of the first chat-completions choice."""
    choices = data.get("choices") or []
    if not choices:
        return ""
    message = choices[0].get("message") or {}
    return str(message.get("content") or "")


def responses_output(data: dict) -> tuple[str, str]:
    """Concatenated text and the last base64 audio chunk of a responses payload."""
    text = ""
    audio = ""
    for part in data.get("output") or []:
        content = part.get("content") if isinstance(part, dict) else None
        if not isinstance(content, list):
            continue
        for item in content:
            kind = item.get("type")
            if kind in ("text", "output_text") and isinstance(item.get("text"), str):
                text += item["text"]
            elif kind == "audio" and isinstance(item.get("audio"), dict) and item["audio"].get("data"):
                audio = item["audio"]["data"]
    return text, audio


class OpenAIUpstream:
    def __init__(
        self,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or os.getenv("OPENAI_BASE_URL", DEFAULT_BASE_URL)
        self.transport = transport

    async def post(self, path: str, api_key: str, payload: dict, timeout: float | None) -> dict:
        return await self._send("POST", path, api_key, timeout, payload)

    async def get(self, path: str, api_key: str, timeout: float | None = None) -> dict:
        return await self._send("GET", path, api_key, timeout)

    async def _send(
        self,
        method: str,
        path: str,
        api_key: str,
        timeout: float | None,
        payload: dict | None = None,
    ) -> dict:
        headers = {"Authorization": f"Bearer {api_key}"}
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=self.transport
        ) as client:
            try:
                response = await client.request(method, path, json=payload, headers=headers)
            except httpx.TimeoutException as exc:
                raise RequestAborted("This operation was aborted", status=500) from exc
            except httpx.TransportError as exc:
                raise NetworkFailure(str(exc) or "Network error", status=500) from exc
        try:
            data = response.json()
        except ValueError:
            data = {}
        if response.is_error:
            raise UpstreamGenericError(upstream_message(data), status=response.status_code)
        return data if isinstance(data, dict) else {}


_upstream = OpenAIUpstream()


def get_upstream() -> OpenAIUpstream:
    return _upstream
