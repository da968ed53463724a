"""reqview core - config loading, variable environment, placeholders."""

import copy
import datetime
import importlib
import importlib.util
import os
import re
import time as _time
import uuid
from pathlib import Path
from typing import Any, Callable

import yaml
from dotenv import dotenv_values, set_key

from reqview.errors import ConfigError

GLOBAL_DIR = Path.home() / ".reqview"
GLOBAL_CONFIG = GLOBAL_DIR / "config.yaml"

CWD_CONFIG_CANDIDATES = [
    ".reqview.yaml",
    ".reqview.yml",
    "reqview.yaml",
    "reqview.yml",
]

DEFAULT_CONFIG: dict[str, Any] = {
    "result": {
        "show_url": True,
        "show_curl_command": False,
        "show_http_info": True,
        "show_headers": True,
        "show_statistics": False,
        "formatters": {
            "json": "json",
        },
    },
    "result_split_horizontal": False,
    "result_split_in_place": False,
    "stay_in_current_window_after_split": False,
    "yank_dry_run": False,
    "request": {
        "pre_script": None,
    },
    "env_file": None,
}


def resolve_path(
    candidates: list[Path],
    default: Path | None = None,
) -> Path | None:
    """Return the first existing path from candidates, else default."""
    for p in candidates:
        if p.exists():
            return p.resolve()
    return default


def resolve_config_path(config_file: str | None) -> Path | None:
    """Find the config file to use.

    Resolution order:
      1. Explicit -c flag (no fallthrough if missing)
      2. .reqview.yaml (variants) in CWD
      3. ~/.reqview/config.yaml
    """
    if config_file:
        return resolve_path([Path(config_file)])
    return resolve_path([Path(c) for c in CWD_CONFIG_CANDIDATES] + [GLOBAL_CONFIG])


def _deep_merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: str | Path | None) -> dict:
    """Load the YAML config over DEFAULT_CONFIG.

    Stores '_config_dir' so relative paths (env_file, pre_script) resolve
    against the config file's directory.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    config["_config_dir"] = None
    if config_path is None:
        return config
    path = Path(config_path)
    if not path.exists():
        return config
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")
    config = _deep_merge(config, data)
    config["_config_dir"] = path.resolve().parent
    return config


def config_relative(config: dict, value: str) -> Path:
    p = Path(value)
    config_dir = config.get("_config_dir")
    if not p.is_absolute() and config_dir:
        p = Path(config_dir) / p
    return p


# ── Variable environment ─────────────────────────────────────────────────


class Variables:
    """Shared variable environment: os.environ overlaid with an env file.

    ``set`` updates the process environment and, when an env file is
    configured, persists the key there so later invocations see it.
    """

    def __init__(self, env_file: str | Path | None = None):
        self.env_file = Path(env_file) if env_file else None
        self._values: dict[str, str] = dict(os.environ)
        if self.env_file and self.env_file.exists():
            dotenv_vars = dotenv_values(str(self.env_file))
            self._values.update({k: v for k, v in dotenv_vars.items() if v is not None})

    def get_all(self) -> dict[str, str]:
        return dict(self._values)

    def get(self, key: str, default: str | None = None) -> str | None:
        return self._values.get(key, default)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value
        os.environ[key] = value
        if self.env_file is not None:
            self.env_file.parent.mkdir(parents=True, exist_ok=True)
            self.env_file.touch(exist_ok=True)
            set_key(str(self.env_file), key, value, quote_mode="never")


def load_variables(config: dict) -> Variables:
    env_file = config.get("env_file")
    if not env_file:
        return Variables()
    return Variables(config_relative(config, env_file))


def resolve_value(value: str | None, env: dict[str, str]) -> str | None:
    """Resolve $VAR and ${VAR} references in a string value."""
    if value is None:
        return None
    if not isinstance(value, str):
        return value

    def _replace(m: re.Match) -> str:
        var_name = m.group(1) or m.group(2)
        return env.get(var_name, os.environ.get(var_name, m.group(0)))

    return re.sub(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)", _replace, value)


def resolve_placeholders(text: str, variables: dict[str, str]) -> str:
    """Resolve {{...}} placeholders in text.

    Supported:
    - {{uuid}} -> random UUID v4
    - {{timestamp}} -> unix timestamp seconds
    - {{date}} -> ISO date string
    - {{VAR}} -> variable environment lookup
    Unknown names are left as-is.
    """
    if not isinstance(text, str):
        return text

    def _replace(m: re.Match) -> str:
        key = m.group(1).strip()
        if key == "uuid":
            return str(uuid.uuid4())
        if key == "timestamp":
            return str(int(_time.time()))
        if key == "date":
            return datetime.datetime.now(datetime.timezone.utc).isoformat()
        if key in variables:
            return str(variables[key])
        return m.group(0)

    return re.sub(r"\{\{(.+?)\}\}", _replace, text)


# ── Pre-request hook ─────────────────────────────────────────────────────


def load_pre_script(config: dict, reference: Any = None) -> Callable | None:
    """Load a pre-request hook, by default ``request.pre_script``.

    Either ``package.module:function`` or a path to a Python file that
    defines ``pre_request(spec, variables)``.
    """
    if reference is None:
        reference = (config.get("request") or {}).get("pre_script")
    if not reference:
        return None
    if callable(reference):
        return reference
    if not isinstance(reference, str):
        raise ConfigError(f"request.pre_script must be a string, got {reference!r}")

    if reference.endswith(".py"):
        path = config_relative(config, reference)
        if not path.exists():
            raise ConfigError(f"pre_script file not found: {path}")
        spec = importlib.util.spec_from_file_location("reqview_pre_script", path)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        attr = "pre_request"
    else:
        module_name, _, attr = reference.partition(":")
        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            raise ConfigError(f"cannot import pre_script module {module_name}: {e}") from e
        attr = attr or "pre_request"

    hook = getattr(module, attr, None)
    if not callable(hook):
        raise ConfigError(f"pre_script {reference} has no callable {attr}")
    return hook
