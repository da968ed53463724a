"""reqview executor - request lifecycle: preview, dispatch, post-processing.

Everything runs on one asyncio event loop. ``submit`` builds the preview and
either finishes right away (dry run) or schedules curl as a task and returns;
the completion continuation then parses, formats, runs the script and
renders. A new request never cancels one in flight: whichever finishes last
owns the results surface.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from reqview import command, parser
from reqview.core import Variables, load_pre_script
from reqview.errors import InvocationError, ScriptError, TransferFailed
from reqview.formatters import build_registry, format_body
from reqview.models import ParsedResponse, RawResult, RequestSpec
from reqview.render import render
from reqview.script import run_script
from reqview.statistics import normalize_statistics
from reqview.surface import SurfaceHost
from reqview.transport import CurlTransport

logger = logging.getLogger(__name__)

REQUEST_STARTED = "request_started"
REQUEST_STOPPED = "request_stopped"


class RequestState(Enum):
    IDLE = "idle"
    PREVIEW_BUILT = "preview_built"
    DRY_RUN_DONE = "dry_run_done"
    DISPATCHED = "dispatched"
    COMPLETED = "completed"
    FAILED = "failed"


class EventBus:
    """Lifecycle notifications: request_started / request_stopped."""

    def __init__(self):
        self._listeners: dict[str, list[Callable[[dict], None]]] = {}

    def subscribe(self, event: str, listener: Callable[[dict], None]) -> None:
        self._listeners.setdefault(event, []).append(listener)

    def emit(self, event: str, payload: dict) -> None:
        for listener in self._listeners.get(event, []):
            listener(payload)


class RequestHandle:
    """Tracks one request through the executor."""

    def __init__(self, spec: RequestSpec):
        self.spec = spec
        self.state = RequestState.IDLE
        self.argv: list[str] = []
        self.preview: str = ""
        self.headers_path: str = ""
        self.body_path: str | None = None
        self.task: asyncio.Task | None = None
        self.raw: RawResult | None = None
        self.response: ParsedResponse | None = None
        self.error: Exception | None = None
        self.context: dict[str, Any] = {}

    async def wait(self) -> "RequestHandle":
        """Wait for the live transfer and its continuation, if any."""
        if self.task is not None:
            await self.task
        return self


class RequestExecutor:
    def __init__(
        self,
        host: SurfaceHost,
        config: dict,
        variables: Variables | None = None,
        transport: CurlTransport | None = None,
        events: EventBus | None = None,
    ):
        self.host = host
        self.config = config
        self.variables = variables or Variables()
        self.transport = transport or CurlTransport()
        self.events = events or EventBus()

        result_cfg = config.get("result", {})
        self.formatters = build_registry(result_cfg.get("formatters"))
        self.statistics = normalize_statistics(result_cfg.get("show_statistics"))
        self.pre_script = load_pre_script(config)

    def notify(self, message: str, level: str = "info") -> None:
        self.host.echo(message, level)

    # ── Synchronous path ────────────────────────────────────────────────

    def submit(self, spec: RequestSpec) -> RequestHandle:
        """Start a request. Never blocks on the transfer.

        Live requests need a running event loop; await ``handle.wait()`` to
        observe completion.
        """
        spec = self._run_pre_script(spec)
        handle = RequestHandle(spec)

        handle.headers_path = self.transport.new_headers_path()
        if isinstance(spec.body, bytes):
            handle.body_path = self.transport.write_body(spec.body)
        handle.argv, handle.preview = command.build(
            spec,
            handle.headers_path,
            self.statistics,
            handle.body_path,
        )
        handle.state = RequestState.PREVIEW_BUILT

        self.events.emit(REQUEST_STARTED, {"spec": spec})

        if spec.dry_run:
            if self.config.get("yank_dry_run"):
                self.host.set_clipboard(handle.preview)
            self.notify(f"[reqview] Request preview:\n{handle.preview}")
            self.events.emit(REQUEST_STOPPED, {"spec": spec})
            _remove(handle.body_path)
            handle.state = RequestState.DRY_RUN_DONE
            return handle

        loop = asyncio.get_running_loop()
        handle.task = loop.create_task(self._dispatch(handle))
        handle.state = RequestState.DISPATCHED
        return handle

    def _run_pre_script(self, spec: RequestSpec) -> RequestSpec:
        hook = self.pre_script
        if spec.pre_script:
            hook = load_pre_script(self.config, spec.pre_script)
        if hook is None:
            return spec
        replacement = hook(spec, self.variables.get_all())
        if isinstance(replacement, RequestSpec):
            return replacement
        return spec

    # ── Continuations ───────────────────────────────────────────────────

    async def _dispatch(self, handle: RequestHandle) -> None:
        try:
            raw = await self.transport.fetch(handle.argv, handle.headers_path)
        except OSError as e:
            self._on_error(handle, e)
        else:
            self._on_success(handle, raw)
        finally:
            _remove(handle.body_path)

    def _on_error(self, handle: RequestHandle, error: Exception) -> None:
        handle.state = RequestState.FAILED
        handle.error = error
        self.events.emit(REQUEST_STOPPED, {"spec": handle.spec, "error": error})
        logger.error("request %s failed: %s", handle.spec.request_line, error)
        raise InvocationError(str(error)) from error

    def _on_success(self, handle: RequestHandle, raw: RawResult) -> None:
        handle.raw = raw
        self.events.emit(REQUEST_STOPPED, {"spec": handle.spec, "result": raw})

        try:
            response = parser.parse(raw, self.statistics)
        except TransferFailed as e:
            logger.error("[reqview] %s", e)
            self.notify(f"[reqview] {e}", "error")
            handle.state = RequestState.FAILED
            handle.error = e
            return
        handle.response = response

        response.body = format_body(
            response.body,
            response.content_type,
            self.formatters,
            self.notify,
        )

        try:
            run_script(
                handle.spec.post_script,
                response,
                self.variables,
                handle.context,
                self.notify,
            )
        except ScriptError as e:
            handle.state = RequestState.FAILED
            handle.error = e
            raise

        render(
            self.host,
            response,
            handle.preview,
            handle.spec.request_line,
            self.config,
        )
        handle.state = RequestState.COMPLETED


def _remove(path: str | None) -> None:
    if path:
        Path(path).unlink(missing_ok=True)
