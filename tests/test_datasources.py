"""Tests for the data source registry and built-in data sources."""

import logging

import pytest

from layoutel.el import (
    BUILTIN_DATA_SOURCES,
    DataSourceRegistry,
    ResolutionContext,
    default_data_sources,
    resolve_variables,
)
from layoutel.el.datasources import format_message, resource_source


@pytest.fixture
def context():
    return ResolutionContext(
        attributes={"a": "attr"},
        session={"s": "sess"},
        application={"app": "application"},
        page_session={"p": "page"},
        request_parameters={"q": "param"},
        template_params={"t": "tmpl"},
        resource_bundles={
            "msgs": {
                "title": "Home",
                "greeting": "Hello {0}, you have {1} items",
            },
            "broken": "not a bundle",
        },
    )


class TestDataSourceRegistry:
    """Tests for DataSourceRegistry."""

    def test_register_and_get(self):
        registry = DataSourceRegistry()
        source = lambda context, key: key  # noqa: E731
        registry.register("echo", source)
        assert registry.get("echo") is source
        assert registry.is_registered("echo")
        assert "echo" in registry

    def test_get_unknown(self):
        assert DataSourceRegistry().get("missing") is None

    def test_unregister(self):
        registry = default_data_sources()
        registry.unregister("escape")
        assert not registry.is_registered("escape")
        registry.unregister("escape")

    def test_copy_is_independent(self):
        registry = default_data_sources()
        copied = registry.copy()
        copied.unregister("session")
        assert registry.is_registered("session")

    def test_list_registered(self):
        assert default_data_sources().list_registered() == sorted(BUILTIN_DATA_SOURCES)

    def test_source_must_be_callable(self):
        with pytest.raises(TypeError, match="not callable"):
            DataSourceRegistry().register("bad", "nope")


class TestScopeSources:
    """Tests for the scope-backed sources."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("${a}", "attr"),
            ("$attribute{a}", "attr"),
            ("$session{s}", "sess"),
            ("$application{app}", "application"),
            ("$pageSession{p}", "page"),
            ("$requestParameter{q}", "param"),
            ("$templateParam{t}", "tmpl"),
        ],
    )
    def test_scope(self, context, text, expected):
        assert resolve_variables(context, text) == expected

    def test_scopes_are_separate(self, context):
        assert resolve_variables(context, "$session{a}") is None


class TestConversionSources:
    """Tests for escape, eval, boolean, int and stackTrace."""

    def test_escape(self, context):
        assert resolve_variables(context, "$escape{#{raw}}") == "#{raw}"

    def test_eval(self, context):
        assert resolve_variables(context, "$eval{$attribute{a}=attr}") is True
        assert resolve_variables(context, "$eval{!true}") is False

    @pytest.mark.parametrize("key,expected", [("true", True), ("TRUE", True), ("yes", False)])
    def test_boolean(self, context, key, expected):
        assert resolve_variables(context, f"$boolean{{{key}}}") is expected

    def test_int(self, context):
        assert resolve_variables(context, "$int{-12}") == -12

    def test_int_invalid(self, context):
        with pytest.raises(ValueError):
            resolve_variables(context, "$int{abc}")

    def test_stack_trace(self, context):
        trace = resolve_variables(context, "$stackTrace{here}")
        assert trace.startswith("here\n")
        assert "File " in trace


class TestResourceSource:
    """Tests for resource bundle lookups."""

    def test_message(self, context):
        assert resolve_variables(context, "$resource{msgs.title}") == "Home"

    def test_message_arguments(self, context):
        text = "$resource{msgs.greeting, Ann, 3}"
        assert resolve_variables(context, text) == "Hello Ann, you have 3 items"

    def test_missing_bundle_returns_key(self, context):
        assert resolve_variables(context, "$resource{other.title}") == "other.title"

    def test_missing_key_returns_key(self, context, caplog):
        with caplog.at_level(logging.WARNING, logger="layoutel.el.datasources"):
            assert resource_source(context, "msgs.nokey") == "msgs.nokey"
        assert "nokey" in caplog.text

    def test_not_a_bundle_raises(self, context):
        with pytest.raises(ValueError, match="did not resolve to a resource bundle"):
            resource_source(context, "broken.title")

    def test_key_without_bundle_raises(self, context):
        with pytest.raises(ValueError, match="bundleID"):
            resource_source(context, "title")

    def test_format_message_leaves_unknown_indexes(self):
        assert format_message("{0} and {2}", ["a"]) == "a and {2}"
