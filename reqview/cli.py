"""reqview CLI - run an HTTP request through curl and show the rendered result."""

import asyncio
import contextlib
import json
import logging
import shutil
import subprocess
import sys
from datetime import datetime
from pathlib import Path

import click
from pygments import highlight
from pygments.formatters import TerminalFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from reqview.surface import Surface, SurfaceHost

HISTORY_FILE = Path.home() / ".reqview_history.json"
MAX_HISTORY = 50

# Tried in order when copying a dry-run preview.
CLIPBOARD_COMMANDS = [
    ["wl-copy"],
    ["xclip", "-selection", "clipboard"],
    ["xsel", "--clipboard", "--input"],
    ["pbcopy"],
]

TOOL_HELP = """\
reqview — curl-backed HTTP requests with a readable result view.

Runs the request with curl, then renders the request line, status, every
header block of the redirect chain, optional timing statistics and the
formatted body.

\b
USAGE
─────
  reqview GET http://localhost:3000/api/users
  reqview POST http://localhost:3000/api/users -b '{"name":"test"}' \\
      -H 'Content-Type: application/json'
  reqview GET /api/users                  # with base_url in .reqview.yaml
  reqview GET http://x --dry-run          # print the curl command only
  reqview GET http://x --option=--max-time=5 --option=--insecure

\b
PLACEHOLDERS
────────────
  {{VAR}}         Variable from the environment / env_file
  {{uuid}}        Random UUID v4
  {{timestamp}}   Unix timestamp (seconds)
  {{date}}        ISO 8601 datetime string

\b
POST-PROCESSING SCRIPTS (--script FILE)
───────────────────────────────────────
  The script sees a single `context` object:
  \b
  context.result         parsed response (status, headers, body)
  context.json_decode    parse JSON text
  context.pretty_print   print a value
  context.set_env(k, v)  persist a variable for later requests
  context.set(k, v)      store a request-scoped value

\b
CONFIG FILE FORMAT (.reqview.yaml)
──────────────────────────────────
  Config resolution order:
    1. -c/--config flag (explicit path)
    2. .reqview.yaml / .reqview.yml / reqview.yaml / reqview.yml in CWD
    3. ~/.reqview/config.yaml (global)

  \b
  base_url: ${API_BASE_URL}
  env_file: .env
  yank_dry_run: false
  result:
    show_url: true
    show_curl_command: false
    show_http_info: true
    show_headers: true
    show_statistics: [time_total, size_download]
    formatters:
      json: json                    # built-in
      html: [tidy, -i, -q, -]       # external, body on stdin
  request:
    pre_script: hooks.py            # defines pre_request(spec, variables)

\b
HISTORY
───────
  reqview --history          Show recent requests
  reqview --replay 0         Replay request at index 0
"""


class TerminalHost(SurfaceHost):
    """SurfaceHost for the terminal: messages go to stderr."""

    def echo(self, message: str, level: str = "info") -> None:
        super().echo(message, level)
        if level == "error":
            click.echo(click.style(message, fg="red"), err=True)
        else:
            click.echo(message, err=True)

    def set_clipboard(self, text: str) -> None:
        super().set_clipboard(text)
        for argv in CLIPBOARD_COMMANDS:
            if shutil.which(argv[0]) is None:
                continue
            with contextlib.suppress(OSError, subprocess.SubprocessError):
                subprocess.run(argv, input=text, text=True, check=True)
                return
        logging.getLogger(__name__).warning("no clipboard command found")

    def render_text(self, surface: Surface, color: bool = False) -> str:
        """The surface content, body highlighted when a syntax is attached."""
        lines = surface.lines
        if not color or not surface.syntax:
            return "\n".join(lines)
        try:
            lexer = get_lexer_by_name(surface.syntax)
        except ClassNotFound:
            return "\n".join(lines)
        head = "\n".join(lines[: surface.syntax_start])
        body = highlight("\n".join(lines[surface.syntax_start :]), lexer, TerminalFormatter())
        body = body.rstrip("\n")
        return f"{head}\n{body}" if head else body


@click.command(
    cls=click.Command,
    help=TOOL_HELP,
    context_settings={"max_content_width": 88},
)
@click.argument("method", required=False)
@click.argument("url", required=False)
@click.option(
    "-c",
    "--config",
    "config_file",
    default=None,
    help="Config file path. Default: .reqview.yaml in CWD, then ~/.reqview/config.yaml.",
)
@click.option(
    "-H",
    "--header",
    multiple=True,
    help="HTTP header as 'Name: Value'. Repeatable.",
)
@click.option("-b", "--body", default=None, help="Request body.")
@click.option(
    "-o",
    "--option",
    "curl_options",
    multiple=True,
    help="Extra curl option as FLAG or FLAG=VALUE, e.g. --option=--max-time=5. Repeatable.",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Print the curl command instead of running it.",
)
@click.option(
    "--script",
    "script_file",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="Post-processing script run against the parsed response.",
)
@click.option(
    "--show-command",
    is_flag=True,
    default=False,
    help="Include the curl command in the result.",
)
@click.option(
    "--statistics/--no-statistics",
    default=None,
    help="Include curl timing statistics. Default: result.show_statistics.",
)
@click.option(
    "--no-headers",
    is_flag=True,
    default=False,
    help="Hide response headers.",
)
@click.option(
    "--color/--no-color",
    default=None,
    help="Highlight the response body. Default: on when stdout is a terminal.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Diagnostic log level (stderr).",
)
@click.option("--history", is_flag=True, default=False, help="Show request history.")
@click.option(
    "--replay",
    type=int,
    default=None,
    metavar="INDEX",
    help="Replay a request from history by index.",
)
@click.option(
    "--init",
    "do_init",
    is_flag=True,
    default=False,
    help="Scaffold .reqview.yaml in CWD.",
)
def main(
    method,
    url,
    config_file,
    header,
    body,
    curl_options,
    dry_run,
    script_file,
    show_command,
    statistics,
    no_headers,
    color,
    log_level,
    history,
    replay,
    do_init,
):
    """Run an HTTP request through curl and render the response."""
    from reqview.core import load_config, load_variables, resolve_config_path
    from reqview.errors import ReqviewError

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(levelname)s %(name)s: %(message)s",
    )

    if do_init:
        _cmd_init()
        return

    if history:
        _cmd_history()
        return

    try:
        config = load_config(resolve_config_path(config_file))
    except ReqviewError as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)

    _apply_overrides(config, show_command, statistics, no_headers)
    variables = load_variables(config)
    if color is None:
        color = sys.stdout.isatty()

    if replay is not None:
        spec = _spec_from_history(replay)
    elif method and url:
        post_script = Path(script_file).read_text() if script_file else None
        spec = _build_spec(
            method,
            url,
            header,
            body,
            curl_options,
            dry_run,
            post_script,
            config,
            variables.get_all(),
        )
    else:
        ctx = click.get_current_context()
        click.echo(ctx.get_help())
        ctx.exit(1)

    _cmd_request(spec, config, variables, color)


# ── Subcommand implementations ──────────────────────────────────────────


def _cmd_request(spec, config, variables, color):
    from reqview.errors import ReqviewError
    from reqview.executor import RequestExecutor, RequestState

    host = TerminalHost()

    async def _run():
        executor = RequestExecutor(host, config, variables)
        handle = executor.submit(spec)
        return await handle.wait()

    try:
        handle = asyncio.run(_run())
    except ReqviewError as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)

    if spec.dry_run:
        return

    _save_to_history(spec)

    if handle.state is not RequestState.COMPLETED:
        sys.exit(1)

    from reqview.render import RESULTS_SURFACE

    surface = host.find_surface(RESULTS_SURFACE)
    click.echo(host.render_text(surface, color=color))


def _cmd_history():
    hist = _load_history()
    if not hist:
        click.echo("No request history.")
        return
    click.echo("Request history:\n")
    for i, entry in enumerate(hist):
        ts = entry.get("timestamp", "")
        m = entry.get("method", "?")
        u = entry.get("url", "?")
        click.echo(f"  [{i}] {m:<6} {u}  ({ts})")


def _spec_from_history(index):
    from reqview.models import RequestSpec

    hist = _load_history()
    if index < 0 or index >= len(hist):
        click.echo(f"Invalid index {index}. Use --history to list.", err=True)
        sys.exit(1)
    entry = hist[index]
    return RequestSpec(
        method=entry["method"],
        url=entry["url"],
        headers=entry.get("headers") or {},
        body=entry.get("body"),
        options=entry.get("options") or {},
    )


def _cmd_init():
    """Scaffold .reqview.yaml in CWD."""
    config_file = Path(".reqview.yaml")
    if config_file.exists():
        click.echo(f"  {config_file} (skipped, already exists)")
        return
    config_file.write_text(_generate_config())
    click.echo(f"  {config_file} (created)")
    click.echo("\nProject initialized. Run 'reqview --help' to get started.")


# ── Helpers ──────────────────────────────────────────────────────────────


def _parse_headers(header_tuples):
    """Parse -H 'Name: Value' tuples into a dict."""
    headers = {}
    for h in header_tuples:
        if ":" in h:
            k, v = h.split(":", 1)
            headers[k.strip()] = v.strip()
    return headers


def _parse_options(option_strings):
    """Parse FLAG / FLAG=VALUE strings into an ordered curl option dict."""
    options = {}
    for opt in option_strings:
        opt = opt.strip()
        if not opt:
            continue
        if "=" in opt:
            flag, value = opt.split("=", 1)
            options[flag.strip()] = value
        else:
            options[opt] = None
    return options


def _apply_overrides(config, show_command, statistics, no_headers):
    result = config.setdefault("result", {})
    if show_command:
        result["show_curl_command"] = True
    if statistics is not None:
        result["show_statistics"] = statistics
    if no_headers:
        result["show_headers"] = False


def _build_spec(method, url, header, body, curl_options, dry_run, post_script, config, env):
    from reqview.core import resolve_placeholders, resolve_value
    from reqview.models import RequestSpec

    base_url = resolve_value(config.get("base_url"), env) or ""
    if not url.startswith(("http://", "https://")):
        url = base_url.rstrip("/") + url if base_url else url

    headers = {
        k: resolve_placeholders(v, env) for k, v in _parse_headers(header).items()
    }

    return RequestSpec(
        method=method.upper(),
        url=resolve_placeholders(url, env),
        headers=headers,
        body=resolve_placeholders(body, env) if body is not None else None,
        options=_parse_options(curl_options),
        dry_run=dry_run,
        post_script=post_script,
    )


def _generate_config() -> str:
    """Return .reqview.yaml content string."""
    return """\
# reqview configuration
# See: reqview --help

# base_url: http://localhost:3000
# env_file: .env
yank_dry_run: false
result_split_horizontal: false
result_split_in_place: false
stay_in_current_window_after_split: false

result:
  show_url: true
  show_curl_command: false
  show_http_info: true
  show_headers: true
  show_statistics: false
  formatters:
    json: json
    xml: xml
    # html: [tidy, -i, -q, -]

# request:
#   pre_script: hooks.py
"""


def _load_history():
    try:
        if HISTORY_FILE.exists():
            return json.loads(HISTORY_FILE.read_text())
    except (OSError, ValueError):
        pass
    return []


def _save_to_history(spec):
    hist = _load_history()
    entry = {
        "method": spec.method.upper(),
        "url": spec.url,
        "timestamp": datetime.now().isoformat(),
    }
    if spec.body:
        body = spec.body
        entry["body"] = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
    safe = {k: v for k, v in spec.headers.items() if k.lower() != "authorization"}
    if safe:
        entry["headers"] = safe
    if spec.options:
        entry["options"] = spec.options
    hist.insert(0, entry)
    with contextlib.suppress(OSError):
        HISTORY_FILE.write_text(json.dumps(hist[:MAX_HISTORY], indent=2))
