"""
Content template rendering package.

Injectable value content is written in a dot-path interpolation style
(``{{.user}}``, ``{{.metadata.host}}``) and rendered strictly: a reference to
a key the data does not provide is an error, never an empty substitution.

Public API:
    - ContentRenderer: Renderer with a rule-based preprocessing pipeline
    - TransformRule: Base class for custom preprocessing rules
    - RenderError, TemplateParseError, MissingKeyError: Render failures
"""

from .exceptions import MissingKeyError, RenderError, TemplateParseError
from .renderer import ContentRenderer
from .rules import RuleContext, RuleType, TransformRule
from .syntax_rules import ForbiddenAttributeRule, LeadingDotRule

__all__ = [
    "ContentRenderer",
    "TransformRule",
    "RuleType",
    "RuleContext",
    "ForbiddenAttributeRule",
    "LeadingDotRule",
    "RenderError",
    "TemplateParseError",
    "MissingKeyError",
]
