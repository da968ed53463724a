"""reqview models - request specs, raw results and parsed responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class RequestSpec:
    """One HTTP request as handed to the executor.

    ``options`` holds extra curl flags in insertion order. A value of
    ``None`` or ``True`` emits the bare flag; anything else is passed as the
    flag's argument. Specs are never mutated: a pre-request hook returns a
    replacement built with ``dataclasses.replace``.
    """

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: str | bytes | None = None
    options: dict[str, Any] = field(default_factory=dict)
    dry_run: bool = False
    pre_script: str | None = None
    post_script: str | None = None

    @property
    def request_line(self) -> str:
        return f"{self.method.upper()} {self.url}"


@dataclass
class RawResult:
    """What curl produced: exit code, raw header lines, final status, body."""

    exit: int
    headers: list[str] = field(default_factory=list)
    status: int = 0
    body: bytes | str = b""


@dataclass
class ParsedResponse:
    """Structured view of a RawResult.

    ``headers`` keeps keys as received (last occurrence wins) and
    ``header_blocks`` keeps one list of display lines per hop of a redirect
    chain, oldest first. ``body`` is rewritten in place by formatters and
    statistics extraction.
    """

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    header_blocks: list[list[str]] = field(default_factory=list)
    content_type: str | None = None
    body: str = ""
    statistics: list[str] | None = None

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        if name in self.headers:
            return self.headers[name]
        lower = name.lower()
        for k, v in self.headers.items():
            if k.lower() == lower:
                return v
        return None
