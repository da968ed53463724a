"""Tests for config resolution, variables, placeholders and the pre-request hook."""

import os

import pytest
import yaml

from reqview import core
from reqview.errors import ConfigError


@pytest.fixture
def tmp_project(tmp_path):
    """Create a temporary project directory and cd into it."""
    original = os.getcwd()
    os.chdir(tmp_path)
    yield tmp_path
    os.chdir(original)


def _write_config(path, **data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.dump(data or {"yank_dry_run": False}))


# ── resolve_config_path ─────────────────────────────────────────────────


class TestResolveConfigPath:
    def test_explicit_flag_takes_priority(self, tmp_project, global_reqview_dir):
        explicit = tmp_project / "custom" / "my.yaml"
        _write_config(explicit)
        _write_config(tmp_project / ".reqview.yaml")
        _write_config(global_reqview_dir / "config.yaml")

        assert core.resolve_config_path(str(explicit)) == explicit.resolve()

    def test_explicit_flag_nonexistent_returns_none(self, tmp_project, global_reqview_dir):
        _write_config(tmp_project / ".reqview.yaml")
        assert core.resolve_config_path("/nonexistent/config.yaml") is None

    def test_cwd_config_priority_order(self, tmp_project, global_reqview_dir):
        _write_config(tmp_project / "reqview.yml")
        _write_config(tmp_project / ".reqview.yml")
        assert core.resolve_config_path(None) == (tmp_project / ".reqview.yml").resolve()

    def test_global_config_fallback(self, tmp_project, global_reqview_dir):
        _write_config(global_reqview_dir / "config.yaml")
        assert core.resolve_config_path(None) == (global_reqview_dir / "config.yaml").resolve()

    def test_no_config_anywhere(self, tmp_project, global_reqview_dir):
        assert core.resolve_config_path(None) is None


# ── load_config ──────────────────────────────────────────────────────────


class TestLoadConfig:
    def test_none_path_returns_defaults(self):
        config = core.load_config(None)
        assert config["result"]["show_headers"] is True
        assert config["result"]["formatters"] == {"json": "json"}
        assert config["_config_dir"] is None

    def test_defaults_not_shared(self):
        core.load_config(None)["result"]["show_url"] = False
        assert core.load_config(None)["result"]["show_url"] is True

    def test_nested_keys_merge(self, tmp_path):
        path = tmp_path / "c.yaml"
        _write_config(path, result={"show_statistics": True, "formatters": {"xml": "xml"}})
        config = core.load_config(path)
        assert config["result"]["show_statistics"] is True
        assert config["result"]["show_headers"] is True
        assert config["result"]["formatters"] == {"json": "json", "xml": "xml"}
        assert config["_config_dir"] == tmp_path.resolve()

    def test_empty_yaml_returns_defaults(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("")
        assert core.load_config(path)["yank_dry_run"] is False

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            core.load_config(path)


# ── Variables ────────────────────────────────────────────────────────────


class TestVariables:
    def test_env_file_relative_to_config(self, tmp_path, monkeypatch):
        monkeypatch.delenv("REQVIEW_API_KEY", raising=False)
        (tmp_path / ".env").write_text("REQVIEW_API_KEY=k1\n")
        path = tmp_path / "c.yaml"
        _write_config(path, env_file=".env")
        variables = core.load_variables(core.load_config(path))
        assert variables.get("REQVIEW_API_KEY") == "k1"

    def test_env_file_overrides_process_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("REQVIEW_API_KEY", "from-env")
        (tmp_path / ".env").write_text("REQVIEW_API_KEY=from-file\n")
        assert core.Variables(tmp_path / ".env").get("REQVIEW_API_KEY") == "from-file"

    def test_set_creates_env_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("REQVIEW_API_KEY", "")
        env_file = tmp_path / "nested" / ".env"
        core.Variables(env_file).set("REQVIEW_API_KEY", "new")
        assert env_file.read_text().strip() == "REQVIEW_API_KEY=new"
        assert core.Variables(env_file).get("REQVIEW_API_KEY") == "new"

    def test_set_without_env_file(self, monkeypatch):
        monkeypatch.setenv("REQVIEW_API_KEY", "")
        variables = core.Variables()
        variables.set("REQVIEW_API_KEY", "mem")
        assert variables.get("REQVIEW_API_KEY") == "mem"
        assert os.environ["REQVIEW_API_KEY"] == "mem"


# ── Placeholders ─────────────────────────────────────────────────────────


class TestPlaceholders:
    def test_variable(self):
        assert core.resolve_placeholders("Bearer {{TOKEN}}", {"TOKEN": "t"}) == "Bearer t"

    def test_unknown_left_as_is(self):
        assert core.resolve_placeholders("{{nope}}", {}) == "{{nope}}"

    def test_uuid_and_timestamp(self):
        out = core.resolve_placeholders("{{uuid}} {{timestamp}}", {})
        uid, ts = out.split(" ")
        assert len(uid) == 36
        assert ts.isdigit()

    def test_resolve_value_forms(self):
        env = {"HOST": "api.local"}
        assert core.resolve_value("http://$HOST/x", env) == "http://api.local/x"
        assert core.resolve_value("http://${HOST}:80", env) == "http://api.local:80"
        assert core.resolve_value(None, env) is None


# ── load_pre_script ──────────────────────────────────────────────────────


class TestLoadPreScript:
    def test_unset_returns_none(self):
        assert core.load_pre_script(core.load_config(None)) is None

    def test_file_relative_to_config(self, tmp_path):
        (tmp_path / "hooks.py").write_text("def pre_request(spec, variables):\n    return spec\n")
        path = tmp_path / "c.yaml"
        _write_config(path, request={"pre_script": "hooks.py"})
        hook = core.load_pre_script(core.load_config(path))
        assert hook("spec", {}) == "spec"

    def test_module_reference(self):
        hook = core.load_pre_script(core.load_config(None), "os.path:basename")
        assert hook("/a/b") == "b"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            core.load_pre_script(core.load_config(None), str(tmp_path / "missing.py"))

    def test_missing_function(self, tmp_path):
        hooks = tmp_path / "hooks.py"
        hooks.write_text("x = 1\n")
        with pytest.raises(ConfigError, match="no callable pre_request"):
            core.load_pre_script(core.load_config(None), str(hooks))

    def test_bad_module(self):
        with pytest.raises(ConfigError, match="cannot import"):
            core.load_pre_script(core.load_config(None), "definitely_not_a_module_xyz:f")

    def test_wrong_type(self):
        with pytest.raises(ConfigError):
            core.load_pre_script(core.load_config(None), 42)
