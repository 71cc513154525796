"""
Content template renderer.

Renders an injectable value's ``content`` against the values resolved from
its Connection or DataSet. Pipeline:

    Template source
          ↓
    Preprocessing rules (security, dot-path syntax)
          ↓
    Jinja2 parse (TemplateParseError on failure)
          ↓
    Top-level key check (MissingKeyError)
          ↓
    Sandboxed Jinja2 render with StrictUndefined (MissingKeyError)

Data is a map of strings, or of string maps for DataSet-backed values
(``{"metadata": {...}, "connection": {...}}``). Mapping keys always win over
mapping attributes, so a credential named ``items`` or ``keys`` renders its
value, never a dict method.

Example:
    renderer = ContentRenderer()
    renderer.render("{{.user}}:{{.password}}", {"user": "app", "password": "s3cret"})
    # 'app:s3cret'
"""

import base64
import logging
import re
import shlex
from collections.abc import Mapping
from typing import Any

from jinja2 import (
    StrictUndefined,
    TemplateError,
    TemplateSyntaxError,
    UndefinedError,
    meta,
    nodes,
)
from jinja2.sandbox import SandboxedEnvironment

from .exceptions import MissingKeyError, RenderError, TemplateParseError
from .rules import RuleContext, TransformRule, apply_rules
from .syntax_rules import ForbiddenAttributeRule, LeadingDotRule

logger = logging.getLogger(__name__)

_NO_ATTRIBUTE = re.compile(r"has no (?:attribute|element) '(?P<key>.+)'$")
_UNDEFINED_NAME = re.compile(r"^'(?P<key>.+)' is undefined$")


class _ContentEnvironment(SandboxedEnvironment):
    """Sandboxed environment where dotted access on a mapping is key access only."""

    def getattr(self, obj: Any, attribute: str) -> Any:
        if isinstance(obj, Mapping):
            if attribute in obj:
                return obj[attribute]
            return self.undefined(obj=obj, name=attribute)
        return super().getattr(obj, attribute)


class ContentRenderer:
    """
    Strict renderer for injectable value content templates.

    Missing keys are errors, never empty substitutions. The renderer keeps
    no per-render state and may be shared.
    """

    def __init__(self, rules: list[TransformRule] | None = None):
        """
        Args:
            rules: Optional extra preprocessing rules, merged with the defaults
        """
        self.rules = self._initialize_rules(rules)

        self.env = _ContentEnvironment(
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )
        self.env.filters.update(
            {
                "quote": shlex.quote,
                "b64encode": lambda x: base64.b64encode(str(x).encode()).decode(),
                "b64decode": lambda x: base64.b64decode(x).decode(),
            }
        )

    @staticmethod
    def _initialize_rules(custom_rules: list[TransformRule] | None) -> list[TransformRule]:
        default_rules: list[TransformRule] = [ForbiddenAttributeRule(), LeadingDotRule()]
        return sorted(default_rules + (custom_rules or []), key=lambda r: r.priority)

    def preprocess(self, template: str, data: dict[str, Any] | None = None) -> str:
        """Return the Jinja2 source a content template compiles to."""
        context = apply_rules(self.rules, RuleContext(source=template, data=data or {}))
        return context.source

    def render(self, template: str, data: dict[str, Any]) -> str:
        """
        Render a content template.

        Args:
            template: Content template (dot-path or plain Jinja2 syntax)
            data: Resolved values, possibly nested one level

        Returns:
            Rendered string

        Raises:
            TemplateParseError: Template is syntactically invalid
            MissingKeyError: Template references a key absent from ``data``
            RenderError: Any other rendering failure
        """
        source = self.preprocess(template, data)

        try:
            ast = self.env.parse(source)
        except TemplateSyntaxError as e:
            raise TemplateParseError(template, e.message or str(e)) from e

        missing = self._first_missing_name(ast, data)
        if missing is not None:
            raise MissingKeyError(missing)

        try:
            return self.env.from_string(source).render(**data)
        except UndefinedError as e:
            raise MissingKeyError(self._undefined_key(e)) from e
        except TemplateSyntaxError as e:
            raise TemplateParseError(template, e.message or str(e)) from e
        except (TemplateError, TypeError, ValueError) as e:
            raise RenderError(f"Failed to render content template {template!r}: {e}") from e

    def _first_missing_name(self, ast: nodes.Template, data: Mapping[str, Any]) -> str | None:
        """First top-level name, in source order, that neither data nor globals provide."""
        undeclared = meta.find_undeclared_variables(ast)
        for node in ast.find_all(nodes.Name):
            name = node.name
            if name in undeclared and name not in data and name not in self.env.globals:
                return name
        return None

    @staticmethod
    def _undefined_key(error: UndefinedError) -> str:
        message = error.message or ""
        match = _NO_ATTRIBUTE.search(message) or _UNDEFINED_NAME.search(message)
        if match is None:
            logger.debug(f"Unrecognized undefined error: {message}")
            return message
        return match.group("key")
