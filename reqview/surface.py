"""reqview surface - the output surface host.

``SurfaceHost`` is the in-memory host: it owns named surfaces, the split
layout, the clipboard and user notifications. Editor integrations subclass
it; the CLI uses ``reqview.cli.TerminalHost``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from reqview.errors import SurfaceError


@dataclass
class Surface:
    name: str
    lines: list[str] = field(default_factory=list)
    writable: bool = True
    scratch: bool = True
    content_type: str | None = None
    syntax: str | None = None
    syntax_start: int = 0
    cursor: int = 1


@dataclass
class Window:
    surface: str
    vertical: bool
    below: bool


class SurfaceHost:
    def __init__(self):
        self.surfaces: dict[str, Surface] = {}
        self.windows: list[Window] = []
        self.current_window: int | None = None
        self.clipboard: str | None = None
        self.messages: list[tuple[str, str]] = []

    # ── Surfaces ────────────────────────────────────────────────────────

    def find_surface(self, name: str) -> Surface | None:
        return self.surfaces.get(name)

    def create_surface(self, name: str) -> Surface:
        surface = Surface(name=name)
        self.surfaces[name] = surface
        return surface

    def set_writable(self, surface: Surface, writable: bool) -> None:
        surface.writable = writable

    def set_scratch(self, surface: Surface, scratch: bool) -> None:
        surface.scratch = scratch

    def clear(self, surface: Surface) -> None:
        if not surface.writable:
            raise SurfaceError(f"surface {surface.name} is read-only")
        surface.lines = []
        surface.syntax = None
        surface.syntax_start = 0

    def append_lines(self, surface: Surface, lines: list[str]) -> None:
        """Append all of ``lines`` or nothing."""
        if not surface.writable:
            raise SurfaceError(f"surface {surface.name} is read-only")
        surface.lines.extend(str(line) for line in lines)

    def set_content_type(self, surface: Surface, content_type: str) -> None:
        surface.content_type = content_type

    def move_cursor(self, surface: Surface, line: int) -> None:
        surface.cursor = max(1, min(line, max(len(surface.lines), 1)))

    # ── Layout ──────────────────────────────────────────────────────────

    def is_visible(self, surface: Surface) -> bool:
        return any(w.surface == surface.name for w in self.windows)

    def open_in_split(
        self,
        surface: Surface,
        vertical: bool = True,
        below: bool = False,
        keep_focus: bool = False,
    ) -> None:
        previous = self.current_window
        self.windows.append(Window(surface.name, vertical, below))
        self.current_window = previous if keep_focus else len(self.windows) - 1

    # ── Syntax ──────────────────────────────────────────────────────────

    def has_syntax(self, subtype: str) -> bool:
        try:
            get_lexer_by_name(subtype)
        except ClassNotFound:
            return False
        return True

    def attach_syntax(self, surface: Surface, subtype: str, start_line: int = 0) -> None:
        surface.syntax = subtype
        surface.syntax_start = start_line

    # ── User-facing ─────────────────────────────────────────────────────

    def set_clipboard(self, text: str) -> None:
        self.clipboard = text

    def echo(self, message: str, level: str = "info") -> None:
        self.messages.append((level, message))
