"""
Ansilite Templating Engine

Jinja2-based templating with a minimal filter set for variable expansion.

Rendering never raises: a template with a syntax error or an undefined
reference is returned literally, so a bad template in one task field
cannot crash the run.
"""

import base64
import json
import os
import re
from typing import Any, Callable, Dict, Mapping, Optional

from jinja2 import Environment, StrictUndefined, Undefined


def _filter_default(value: Any, default: Any = '') -> Any:
    """Return default if value is undefined or None."""
    if value is None or isinstance(value, Undefined):
        return default
    return value


def _filter_bool(value: Any) -> bool:
    """Convert value to boolean."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() in ('true', 'yes', '1', 'on')
    return bool(value)


def _filter_to_yaml(value: Any) -> str:
    """Convert value to YAML string."""
    import yaml
    return yaml.dump(value, default_flow_style=False)


def _filter_regex_replace(value: str, pattern: str, replacement: str) -> str:
    """Regex replacement in string."""
    return re.sub(pattern, replacement, str(value))


def _filter_b64encode(value: Any) -> str:
    """Encode string to base64."""
    if isinstance(value, bytes):
        return base64.b64encode(value).decode('utf-8')
    return base64.b64encode(str(value).encode('utf-8')).decode('utf-8')


CUSTOM_FILTERS: Dict[str, Callable[..., Any]] = {
    'default': _filter_default,
    'd': _filter_default,
    'lower': lambda x: str(x).lower(),
    'upper': lambda x: str(x).upper(),
    'replace': lambda s, old, new: str(s).replace(old, new),
    'to_json': lambda x: json.dumps(x),
    'to_yaml': _filter_to_yaml,
    'bool': _filter_bool,
    'int': lambda x: int(x),
    'string': lambda x: str(x),
    'trim': lambda x: str(x).strip(),
    'join': lambda x, sep=',': sep.join(str(i) for i in x),
    'basename': lambda p: os.path.basename(str(p)),
    'dirname': lambda p: os.path.dirname(str(p)),
    'regex_replace': _filter_regex_replace,
    'b64encode': _filter_b64encode,
}


class TemplateEngine:
    """
    Jinja2 templating engine.

    Provides:
    - Variable interpolation in strings with ``{{ }}`` markers
    - Minimal filter set: default, lower, upper, replace, to_json, bool, ...
    - Literal passthrough on any render failure
    """

    def __init__(self):
        self.env = Environment(
            undefined=StrictUndefined,
            # Don't auto-escape (we're not rendering HTML)
            autoescape=False,
            # Scripts often end with a newline that bash does not mind
            keep_trailing_newline=True,
        )

        for name, func in CUSTOM_FILTERS.items():
            self.env.filters[name] = func

    def render(self, template_str: str, variables: Mapping[str, Any]) -> str:
        """
        Render a template string with variables.

        Args:
            template_str: String potentially containing {{ }} expressions
            variables: Mapping of variables for rendering

        Returns:
            Rendered string, or ``template_str`` unchanged when it cannot
            be rendered (syntax error, undefined variable, filter error)
        """
        if not isinstance(template_str, str):
            return template_str

        # Fast path: no template markers
        if '{{' not in template_str and '{%' not in template_str:
            return template_str

        try:
            template = self.env.from_string(template_str)
            return template.render(dict(variables))
        except Exception:
            return template_str


_engine: Optional[TemplateEngine] = None


def get_template_engine() -> TemplateEngine:
    """Get the shared template engine instance."""
    global _engine
    if _engine is None:
        _engine = TemplateEngine()
    return _engine


def render(template_str: str, variables: Mapping[str, Any]) -> str:
    """Convenience function to render a template."""
    return get_template_engine().render(template_str, variables)


# Field-access syntax from other template languages; Jinja2 cannot parse it
FOREIGN_MARKER = '{{.'


def left_unrendered(template_str: Any, variables: Mapping[str, Any]) -> bool:
    """True if ``template_str`` uses ``{{.field}}`` syntax and rendered back unchanged."""
    if not isinstance(template_str, str) or FOREIGN_MARKER not in template_str:
        return False
    return render(template_str, variables) == template_str
