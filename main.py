"""Entry point for the assistant orb: proxy API server or text console."""

import asyncio
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from utils.log_utils import log, tprint
from utils.settings_store import get_settings, refresh_settings


def _ensure_python_version() -> None:
    """Raise early if Python is older than 3.10."""
    if (ver := sys.version_info)[:2] < (3, 10):
        raise RuntimeError(f"Python 3.10+ required (found {ver.major}.{ver.minor}).")


def _is_enabled(name: str, default: bool = True) -> bool:
    """Read a boolean-like environment variable (1/0/true/false)."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _load_env_files() -> None:
    """Load .env files from common locations (repo, home)."""
    candidates: list[Path] = []
    cwd = Path.cwd()
    candidates.extend([cwd / "env/.env", cwd / ".env"])

    module_root = Path(__file__).resolve().parent
    candidates.extend([module_root / "env/.env", module_root / ".env"])

    home = Path.home()
    candidates.extend([home / ".orb.env", home / ".env.orb"])

    for path in candidates:
        if path.exists():
            load_dotenv(dotenv_path=str(path), override=False)


def run_api() -> None:
    import uvicorn

    host = os.getenv("ORB_API_HOST", "127.0.0.1")
    port = int(os.getenv("ORB_API_PORT", "8787"))
    log("MAIN", f"Serving proxy API on http://{host}:{port}")
    uvicorn.run("api.server:app", host=host, port=port, reload=_is_enabled("ORB_API_RELOAD", False))


def _print_last(messages) -> None:
    if messages:
        tprint(f"[{messages[-1].role.upper()}] {messages[-1].text}")


async def run_console() -> None:
    """Type commands into the orb; replies come from the proxy at ORB_API_BASE."""
    from gesture_module.geometry import Viewport
    from gesture_module.workflow import OrbWorkflow
    from utils.local_store import LocalStore
    from utils.timers import LoopScheduler

    settings = get_settings()
    viewport = Viewport(
        float(settings.get("viewport_width", 1280)),
        float(settings.get("viewport_height", 800)),
    )
    workflow = OrbWorkflow(scheduler=LoopScheduler(), viewport=viewport, store=LocalStore())
    workflow.messages.subscribe(_print_last)
    workflow.toast.subscribe(lambda text: text and tprint(f"[TOAST] {text}"))
    if workflow.feed.posts:
        workflow.bind_post(workflow.feed.posts[0].id)

    loop = asyncio.get_running_loop()
    try:
        while True:
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line:
                break
            task = workflow.submit(line)
            if task is not None:
                await task
    finally:
        workflow.teardown()
        await workflow.bridge.aclose()


def bootstrap() -> None:
    """Load configuration and start the selected mode."""
    _load_env_files()
    _ensure_python_version()
    refresh_settings()

    mode = os.getenv("ORB_MODE", "api").strip().lower()
    try:
        if mode == "console":
            asyncio.run(run_console())
        else:
            run_api()
    except KeyboardInterrupt:
        print("[MAIN] Received interrupt. Shutting down...")


if __name__ == "__main__":
    bootstrap()
