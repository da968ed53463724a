"""reqview formatters - content-type keyed response body formatting.

A formatter is either an in-process transform (``InProcess``) or an external
executable fed the body on stdin (``External``). The kind is decided once,
when the registry is built from configuration.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Callable

from reqview.errors import ConfigError, FormatterFailed

logger = logging.getLogger(__name__)

Notify = Callable[[str, str], None]


@dataclass(frozen=True)
class InProcess:
    transform: Callable[[str], str | None]
    name: str = "<function>"


@dataclass(frozen=True)
class External:
    argv: tuple[str, ...]


Formatter = InProcess | External


# ── Built-in transforms ─────────────────────────────────────────────────


def format_json(body: str) -> str:
    return json.dumps(json.loads(body), indent=2, ensure_ascii=False)


def format_xml(body: str) -> str:
    root = ET.fromstring(body)
    ET.indent(root)
    return ET.tostring(root, encoding="unicode")


BUILTIN_FORMATTERS: dict[str, Callable[[str], str]] = {
    "json": format_json,
    "xml": format_xml,
}


# ── Registry ────────────────────────────────────────────────────────────


def resolve_formatter(value: Any) -> Formatter | None:
    """Resolve one configured formatter value.

    Accepted: a callable, a built-in name, an executable name, or an argv
    list. Returns None for disabled entries and executables missing from
    PATH.
    """
    if value is None or value is False:
        return None
    if isinstance(value, InProcess | External):
        return value
    if callable(value):
        return InProcess(value, getattr(value, "__name__", "<function>"))
    if isinstance(value, str):
        if value in BUILTIN_FORMATTERS:
            return InProcess(BUILTIN_FORMATTERS[value], value)
        argv: tuple[str, ...] = (value,)
    elif isinstance(value, list | tuple) and value:
        argv = tuple(str(v) for v in value)
    else:
        raise ConfigError(f"Invalid formatter: {value!r}")

    if shutil.which(argv[0]) is None:
        logger.debug("formatter %s not found on PATH, skipping", argv[0])
        return None
    return External(argv)


def build_registry(formatters: dict[str, Any] | None) -> dict[str, Formatter]:
    """Build the sub-type → Formatter mapping from ``result.formatters``."""
    registry: dict[str, Formatter] = {}
    for subtype, value in (formatters or {}).items():
        formatter = resolve_formatter(value)
        if formatter is not None:
            registry[subtype] = formatter
    return registry


# ── Formatting ──────────────────────────────────────────────────────────


def _run_external(argv: tuple[str, ...], body: str) -> str:
    try:
        proc = subprocess.run(
            list(argv),
            input=body.encode("utf-8"),
            capture_output=True,
        )
    except (OSError, subprocess.SubprocessError) as e:
        raise FormatterFailed(None, f"could not run {argv[0]}: {e}") from e
    if proc.returncode != 0:
        detail = _decode(proc.stderr).strip() or _decode(proc.stdout).strip()
        raise FormatterFailed(None, f"{' '.join(argv)} exited {proc.returncode}: {detail}")
    out = _decode(proc.stdout)
    if out.endswith("\n"):
        out = out[:-1]
    return out


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def apply_formatter(formatter: Formatter, body: str) -> str:
    """Run a formatter, raising FormatterFailed on any failure."""
    if isinstance(formatter, External):
        return _run_external(formatter.argv, body)

    try:
        out = formatter.transform(body)
    except Exception as e:
        raise FormatterFailed(None, f"{type(e).__name__}: {e}") from e
    if out is None:
        raise FormatterFailed(None, f"{formatter.name} returned no value")
    if not isinstance(out, str):
        raise FormatterFailed(None, f"{formatter.name} returned {type(out).__name__}, not text")
    return out


def format_body(
    body: str,
    subtype: str | None,
    registry: dict[str, Formatter],
    notify: Notify | None = None,
) -> str:
    """Format ``body`` with the formatter registered for ``subtype``.

    Never raises: on failure the original body is returned and a warning is
    passed to ``notify``.
    """
    if subtype is None:
        return body
    formatter = registry.get(subtype)
    if formatter is None:
        return body

    try:
        return apply_formatter(formatter, body)
    except FormatterFailed as e:
        failure = FormatterFailed(subtype, e.detail)
        logger.warning("%s", failure)
        if notify is not None:
            notify(str(failure), "error")
        return body
