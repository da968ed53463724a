"""reqview script - user post-processing scripts run against a response.

Scripts are plain Python. They see a single ``context`` object plus a small
set of builtins; nothing from the surrounding module namespace leaks in.

    token = context.json_decode(context.result.body)["token"]
    context.set_env("token", token)
"""

from __future__ import annotations

import builtins
import json
import logging
import pprint
from typing import Any, Callable

from reqview.errors import ScriptError
from reqview.models import ParsedResponse

logger = logging.getLogger(__name__)

SAFE_BUILTINS = (
    "abs", "all", "any", "bool", "dict", "enumerate", "filter", "float",
    "int", "isinstance", "len", "list", "map", "max", "min", "range",
    "repr", "reversed", "round", "set", "sorted", "str", "sum", "tuple",
    "zip", "Exception", "KeyError", "ValueError", "TypeError", "IndexError",
)


class ScriptContext:
    """Capabilities handed to a script as ``context``."""

    def __init__(
        self,
        result: ParsedResponse,
        variables,
        request_context: dict[str, Any],
        notify: Callable[[str, str], None] | None = None,
    ):
        self.result = result
        self._variables = variables
        self._request_context = request_context
        self._notify = notify

    def pretty_print(self, value: Any) -> None:
        text = pprint.pformat(value)
        if self._notify is not None:
            self._notify(text, "info")

    def json_decode(self, text: str | bytes) -> Any:
        return json.loads(text)

    def set_env(self, key: str, value: Any) -> None:
        """Persist a variable for later requests."""
        self._variables.set(key, str(value))

    def set(self, key: str, value: Any) -> None:
        """Store a value in the request-scoped context."""
        self._request_context[key] = value


def _script_globals(context: ScriptContext) -> dict[str, Any]:
    allowed = {name: getattr(builtins, name) for name in SAFE_BUILTINS}
    return {"__builtins__": allowed, "context": context}


def run_script(
    source: str | None,
    result: ParsedResponse,
    variables,
    request_context: dict[str, Any],
    notify: Callable[[str, str], None] | None = None,
) -> None:
    """Execute ``source`` against ``result``. No-op for empty source.

    Any failure, including a syntax error, is raised as ScriptError.
    """
    if not source or not source.strip():
        return

    context = ScriptContext(result, variables, request_context, notify)
    try:
        code = compile(source, "<reqview-script>", "exec")
        exec(code, _script_globals(context))
    except Exception as e:
        logger.error("post-processing script failed: %s", e)
        raise ScriptError(f"{type(e).__name__}: {e}") from e
