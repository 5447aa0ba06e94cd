"""FastAPI proxy between the orb and the OpenAI API."""

from __future__ import annotations

import os
from typing import Any, Optional, Union

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.openai_client import OpenAIUpstream, chat_text, get_upstream, responses_output
from command_controller.errors import OrbError
from feed_module.placeholders import PLAYERS, demo_posts
from feed_module.store import FeedStore
from utils.log_utils import log

COOKIE_NAME = "sn-openai-key"
COOKIE_MAX_AGE = 31536000
SYSTEM_PROMPT = "You are the SuperNOVA assistant orb. Reply in one or two concise sentences. No markdown."
REPLY_PROMPT_LIMIT = 2000
VOICE_PROMPT_LIMIT = 4000
CTX_TEXT_LIMIT = 1000
CTX_IMAGE_LIMIT = 5

app = FastAPI(title="Assistant Orb API", version="0.1.0")

# Allow local dev origins (Vite, webview shells, etc.)
_origins = ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ApiError(Exception):
    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse({"ok": False, "error": message}, status_code=status)


@app.exception_handler(ApiError)
async def _api_error(_request: Request, exc: ApiError) -> JSONResponse:
    return _error(exc.status, exc.message)


@app.exception_handler(OrbError)
async def _upstream_error(request: Request, exc: OrbError) -> JSONResponse:
    log("API", f"{request.url.path} upstream failure ({exc.code}): {exc.message}", "ERROR")
    return _error(exc.status or 500, exc.message)


@app.exception_handler(StarletteHTTPException)
async def _http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 405:
        return _error(405, "Method not allowed")
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def _validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(400, "Invalid request body")


class PostContext(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[Union[str, int]] = None
    title: Optional[str] = None
    text: Optional[str] = None


class AssistantContext(BaseModel):
    model_config = ConfigDict(extra="ignore")

    postId: Optional[Union[str, int]] = None
    title: Optional[str] = None
    text: Optional[str] = None
    selection: Optional[str] = None
    images: list[Any] = Field(default_factory=list)
    post: Optional[PostContext] = None

    def resolved(self) -> tuple[Any, Optional[str], str]:
        post = self.post or PostContext()
        post_id = self.postId if self.postId is not None else post.id
        title = self.title if self.title is not None else post.title
        text = self.text if self.text is not None else post.text
        return post_id, title, (text or "")[:CTX_TEXT_LIMIT]


class AssistantBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    prompt: Optional[str] = None
    q: Optional[str] = None
    model: Optional[str] = None
    apiKey: Optional[str] = None
    ctx: Optional[AssistantContext] = None

    def prompt_text(self, limit: int) -> str:
        raw = self.prompt if self.prompt is not None else self.q
        return (raw or "").strip()[:limit]

    def model_or(self, default: str) -> str:
        return (self.model or "").strip() or default


class VoiceBody(AssistantBody):
    voice: Optional[str] = None
    speed: Optional[float] = None


class KeyBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    apiKey: Optional[str] = None


def _is_production() -> bool:
    return bool(os.getenv("VERCEL")) or os.getenv("APP_ENV", "").lower() == "production"


def _bearer(request: Request) -> str:
    header = request.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    return ""


def _first_key(*candidates: Optional[str]) -> str:
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()
    return ""


def _require_prompt(body: AssistantBody, limit: int) -> str:
    prompt = body.prompt_text(limit)
    if not prompt:
        raise ApiError(400, "Missing prompt")
    return prompt


def _allowed_image(url: str) -> bool:
    lower = url.lower()
    return lower.startswith(("http://", "https://")) or (
        lower.startswith("data:image/") and ";base64," in lower
    )


def context_messages(ctx: Optional[AssistantContext], *, images_as_text: bool = False) -> list[dict]:
    """System messages describing the post, selection and images the user points at."""
    if ctx is None:
        return []
    messages: list[dict] = []
    post_id, title, text = ctx.resolved()
    parts = []
    if post_id:
        parts.append(f"ID {post_id}")
    if title:
        parts.append(f'title "{title}"')
    if text:
        parts.append(f"content: {text}")
    if parts:
        messages.append(
            {"role": "system", "content": f"Context from hovered post — {' — '.join(parts)}"}
        )
    selection = (ctx.selection or "")[:CTX_TEXT_LIMIT]
    if selection:
        messages.append({"role": "system", "content": f"User selected text: {selection}"})
    images = context_images(ctx)
    if images_as_text and images:
        messages.append({"role": "system", "content": f"Image URLs: {', '.join(images)}"})
    return messages


def context_images(ctx: Optional[AssistantContext]) -> list[str]:
    if ctx is None:
        return []
    urls = [url for url in ctx.images if isinstance(url, str) and _allowed_image(url)]
    return urls[:CTX_IMAGE_LIMIT]


def _as_input(messages: list[dict]) -> list[dict]:
    return [
        {"role": m["role"], "content": [{"type": "input_text", "text": m["content"]}]}
        for m in messages
    ]


@app.post("/api/assistant-reply")
async def assistant_reply(
    request: Request,
    body: Optional[AssistantBody] = None,
    upstream: OpenAIUpstream = Depends(get_upstream),
):
    body = body or AssistantBody()
    env_key = os.getenv("OPENAI_API_KEY", "")
    if _is_production():
        api_key = _first_key(env_key, request.cookies.get(COOKIE_NAME))
    else:
        api_key = _first_key(env_key, body.apiKey, request.cookies.get(COOKIE_NAME))
    if not api_key:
        raise ApiError(
            401,
            "Unauthorized: missing OPENAI_API_KEY on the server. "
            "Set it in the server environment or store a key in Settings.",
        )
    prompt = _require_prompt(body, REPLY_PROMPT_LIMIT)
    messages = [{"role": "system", "content": SYSTEM_PROMPT}]
    messages.extend(context_messages(body.ctx))
    messages.append({"role": "user", "content": prompt})
    data = await upstream.post(
        "/chat/completions",
        api_key,
        {"model": body.model_or("gpt-4o-mini"), "temperature": 0.3, "messages": messages},
        timeout=10.0,
    )
    return {"ok": True, "text": chat_text(data).strip()}


@app.post("/api/assistant-voice")
async def assistant_voice(
    request: Request,
    body: Optional[VoiceBody] = None,
    upstream: OpenAIUpstream = Depends(get_upstream),
):
    body = body or VoiceBody()
    api_key = _first_key(
        _bearer(request),
        body.apiKey,
        request.cookies.get(COOKIE_NAME),
        os.getenv("OPENAI_API_KEY"),
    )
    if not api_key:
        raise ApiError(
            401,
            "Unauthorized: missing OpenAI API key. "
            "Provide one in the request or set OPENAI_API_KEY on the server.",
        )
    prompt = _require_prompt(body, VOICE_PROMPT_LIMIT)
    messages = [{"role": "system", "content": SYSTEM_PROMPT}]
    messages.extend(context_messages(body.ctx, images_as_text=True))
    messages.append({"role": "user", "content": prompt})
    audio: dict[str, Any] = {"voice": (body.voice or "").strip() or "alloy", "format": "mp3"}
    if body.speed:
        audio["speed"] = body.speed
    data = await upstream.post(
        "/responses",
        api_key,
        {
            "model": body.model_or("gpt-4o-mini-tts"),
            "modalities": ["text", "audio"],
            "input": _as_input(messages),
            "audio": audio,
            "temperature": 0.3,
        },
        timeout=45.0,
    )
    text, audio_b64 = responses_output(data)
    if not audio_b64:
        raise ApiError(500, "Missing audio")
    return JSONResponse(
        {"ok": True, "audio": audio_b64, "text": text, "type": "audio/mpeg"},
        headers={"Cache-Control": "no-store"},
    )


@app.post("/api/assistant")
async def assistant(
    request: Request,
    body: Optional[AssistantBody] = None,
    upstream: OpenAIUpstream = Depends(get_upstream),
):
    body = body or AssistantBody()
    api_key = _first_key(
        _bearer(request),
        body.apiKey,
        request.cookies.get(COOKIE_NAME),
        os.getenv("OPENAI_API_KEY"),
    )
    if not api_key:
        raise ApiError(
            401,
            "Unauthorized: missing OpenAI API key. "
            "Provide one in the request or set OPENAI_API_KEY on the server.",
        )
    prompt = _require_prompt(body, VOICE_PROMPT_LIMIT)
    messages = [{"role": "system", "content": SYSTEM_PROMPT}]
    messages.extend(context_messages(body.ctx))
    messages.append({"role": "user", "content": prompt})
    inputs = _as_input(messages)
    images = context_images(body.ctx)
    if images:
        inputs.append(
            {"role": "user", "content": [{"type": "input_image", "image_url": url} for url in images]}
        )
    data = await upstream.post(
        "/responses",
        api_key,
        {"model": body.model_or("gpt-4.1-mini"), "input": inputs, "temperature": 0.3},
        timeout=20.0,
    )
    text, _ = responses_output(data)
    return {"ok": True, "text": text}


def _check_key(request: Request, body: Optional[KeyBody]) -> str:
    api_key = _first_key(
        body.apiKey if body else None,
        _bearer(request),
        request.cookies.get(COOKIE_NAME),
        os.getenv("OPENAI_API_KEY"),
    )
    if not api_key:
        raise ApiError(400, "Missing apiKey")
    return api_key


@app.post("/api/openai-ping")
async def openai_ping(
    request: Request,
    body: Optional[KeyBody] = None,
    upstream: OpenAIUpstream = Depends(get_upstream),
):
    api_key = _check_key(request, body)
    data = await upstream.get("/models?limit=1", api_key)
    models = data.get("data") or []
    sample = models[0].get("id") if models and isinstance(models[0], dict) else None
    return {"ok": True, "sampleModel": sample or "ok"}


@app.post("/api/openai-quick-chat")
async def openai_quick_chat(
    request: Request,
    body: Optional[KeyBody] = None,
    upstream: OpenAIUpstream = Depends(get_upstream),
):
    api_key = _check_key(request, body)
    data = await upstream.post(
        "/chat/completions",
        api_key,
        {
            "model": "gpt-4o-mini",
            "messages": [
                {"role": "system", "content": "You are an API check. Reply with exactly PONG."},
                {"role": "user", "content": "say PONG"},
            ],
            "temperature": 0,
        },
        timeout=None,
    )
    return {"ok": True, "text": chat_text(data)}


@app.post("/api/openai-key")
def store_openai_key(body: Optional[KeyBody] = None):
    api_key = (body.apiKey or "").strip() if body else ""
    if not api_key:
        raise ApiError(400, "Missing apiKey")
    response = JSONResponse({"ok": True})
    response.set_cookie(
        COOKIE_NAME, api_key, max_age=COOKIE_MAX_AGE, path="/", httponly=True, samesite="lax"
    )
    return response


@app.delete("/api/openai-key")
def clear_openai_key():
    response = JSONResponse({"ok": True})
    response.delete_cookie(COOKIE_NAME, path="/", httponly=True, samesite="lax")
    return response


@app.get("/api/players")
def players():
    return {"ok": True, "players": PLAYERS}


@app.get("/api/posts")
def posts(page: int = 1, size: int = 12):
    feed = FeedStore(demo_posts())
    items = feed.paginate(page, size)
    return {"ok": True, "posts": [post.to_dict() for post in items], "page": page}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.server:app", host="0.0.0.0", port=8787, reload=True)
