"""
Tests for the templating adapter.
"""

from types import MappingProxyType

import pytest

from ansilite.engine.templating import TemplateEngine, get_template_engine, left_unrendered, render


class TestRender:
    """Test variable substitution."""

    def test_simple_variable(self):
        assert render("Hello {{ name }}", {"name": "world"}) == "Hello world"

    def test_nested_variable(self):
        variables = {"app": {"port": 8080, "hosts": ["a", "b"]}}
        assert render("{{ app.port }} {{ app.hosts[1] }}", variables) == "8080 b"

    def test_read_only_mapping(self):
        """Playbook vars are a mapping proxy."""
        variables = MappingProxyType({"x": 1})
        assert render("{{ x }}", variables) == "1"

    def test_no_markers_fast_path(self):
        assert render("plain text", {}) == "plain text"

    def test_filters(self):
        variables = {"name": "Web", "items": [1, 2]}
        assert render("{{ name | lower }}", variables) == "web"
        assert render("{{ items | join('-') }}", variables) == "1-2"
        assert render("{{ missing | default('fallback') }}", {}) == "fallback"

    def test_trailing_newline_kept(self):
        assert render("echo {{ x }}\n", {"x": 1}) == "echo 1\n"

    def test_block_syntax(self):
        template = "{% for i in items %}{{ i }};{% endfor %}"
        assert render(template, {"items": [1, 2, 3]}) == "1;2;3;"

    def test_non_string_returned_as_is(self):
        assert render(42, {}) == 42


class TestRenderFallback:
    """A template that cannot render is returned literally."""

    def test_undefined_variable_returns_literal(self):
        assert render("{{ missing_field }}", {}) == "{{ missing_field }}"

    def test_go_style_template_returns_literal(self):
        assert render("{{.missing_field}}", {}) == "{{.missing_field}}"

    def test_syntax_error_returns_literal(self):
        assert render("{{ unclosed", {"unclosed": 1}) == "{{ unclosed"

    def test_filter_error_returns_literal(self):
        assert render("{{ x | int }}", {"x": "abc"}) == "{{ x | int }}"

    def test_partial_failure_returns_whole_literal(self):
        template = "{{ known }} and {{ unknown }}"
        assert render(template, {"known": "k"}) == template


class TestEngine:
    """Test the engine object."""

    def test_singleton(self):
        assert get_template_engine() is get_template_engine()

    def test_independent_engine(self):
        engine = TemplateEngine()
        assert engine.render("{{ a }}{{ b }}", {"a": 1, "b": 2}) == "12"


class TestLeftUnrendered:
    """Detect ``{{.field}}`` templates that pass through untouched."""

    def test_dot_syntax_is_flagged(self):
        assert left_unrendered("echo {{.app}}", {"app": "demo"})

    def test_jinja_syntax_is_not_flagged(self):
        assert not left_unrendered("echo {{ app }}", {"app": "demo"})

    def test_undefined_jinja_variable_is_not_flagged(self):
        assert not left_unrendered("echo {{ missing }}", {})

    def test_non_string(self):
        assert not left_unrendered(644, {})
