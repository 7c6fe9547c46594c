"""Tests for templating configuration and scope files."""

from pathlib import Path

import pytest

from layoutel.config import TemplatingConfig, load_scope_file
from layoutel.el import resolve_value

SCOPE_YAML = """\
attributes:
  user: admin
  count: 3
session:
  theme: dark
pageSession:
  step: two
requestParameters:
  q: search
templateParams:
  label: Save
resourceBundles:
  msgs:
    greeting: "Hello {0}"
"""


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("LAYOUTEL_MAX_MERGE_DEPTH", "LAYOUTEL_SCOPE_FILE", "LAYOUTEL_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def scope_file(tmp_path):
    path = tmp_path / "scope.yaml"
    path.write_text(SCOPE_YAML)
    return path


class TestTemplatingConfig:
    def test_defaults(self, clean_env):
        config = TemplatingConfig.from_env()
        assert config.max_merge_depth == 32
        assert config.scope_file is None
        assert config.log_level == "WARNING"

    def test_from_env(self, clean_env, monkeypatch):
        monkeypatch.setenv("LAYOUTEL_MAX_MERGE_DEPTH", "8")
        monkeypatch.setenv("LAYOUTEL_SCOPE_FILE", "/tmp/scope.yaml")
        monkeypatch.setenv("LAYOUTEL_LOG_LEVEL", "debug")
        config = TemplatingConfig.from_env()
        assert config.max_merge_depth == 8
        assert config.scope_file == Path("/tmp/scope.yaml")
        assert config.log_level == "DEBUG"

    def test_invalid_depth(self, clean_env, monkeypatch):
        monkeypatch.setenv("LAYOUTEL_MAX_MERGE_DEPTH", "deep")
        with pytest.raises(ValueError, match="must be an integer"):
            TemplatingConfig.from_env()

    def test_create_context_without_scope_file(self):
        context = TemplatingConfig(max_merge_depth=5).create_context()
        assert context.max_merge_depth == 5
        assert context.attributes == {}

    def test_create_context_from_scope_file(self, scope_file):
        context = TemplatingConfig(max_merge_depth=6, scope_file=scope_file).create_context()
        assert context.attributes["user"] == "admin"
        assert context.max_merge_depth == 6


class TestLoadScopeFile:
    def test_loads_all_sections(self, scope_file):
        context = load_scope_file(scope_file)
        assert context.attributes == {"user": "admin", "count": 3}
        assert context.session == {"theme": "dark"}
        assert context.page_session == {"step": "two"}
        assert context.request_parameters == {"q": "search"}
        assert context.template_params == {"label": "Save"}
        assert context.resource_bundles == {"msgs": {"greeting": "Hello {0}"}}

    def test_context_resolves(self, scope_file):
        context = load_scope_file(str(scope_file))
        assert resolve_value(context, "$resource{msgs.greeting,$attribute{user}}") == "Hello admin"
        assert resolve_value(context, "#{label}") == "Save"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_scope_file(path).attributes == {}

    def test_empty_section(self, tmp_path):
        path = tmp_path / "scope.yaml"
        path.write_text("session:\n")
        assert load_scope_file(path).session == {}

    def test_unknown_section(self, tmp_path):
        path = tmp_path / "scope.yaml"
        path.write_text("cookies:\n  a: b\n")
        with pytest.raises(ValueError, match="Unknown section 'cookies'"):
            load_scope_file(path)

    def test_section_must_be_mapping(self, tmp_path):
        path = tmp_path / "scope.yaml"
        path.write_text("attributes:\n  - a\n  - b\n")
        with pytest.raises(ValueError, match="must be a mapping"):
            load_scope_file(path)

    def test_document_must_be_mapping(self, tmp_path):
        path = tmp_path / "scope.yaml"
        path.write_text("- a\n")
        with pytest.raises(ValueError, match="must contain a mapping"):
            load_scope_file(path)
