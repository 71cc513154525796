"""
Syntax preprocessing rules for content templates.

Rules:
    - ForbiddenAttributeRule: Reject dunder attribute access
    - LeadingDotRule: Strip the leading dot of dot-path references
"""

import re

from .exceptions import TemplateParseError
from .rules import RuleContext, RuleType, TransformRule

# One {{ ... }} expression block, including whitespace-control markers
_EXPRESSION_BLOCK = re.compile(r"\{\{.*?\}\}", re.DOTALL)

# A quoted string literal, or a dot that starts a path (after the block
# opener, whitespace, "(", "," or "["). Literals are matched first so their
# contents are never rewritten.
_LEADING_DOT = re.compile(
    r"""(?P<literal>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')"""
    r"|(?P<prefix>^\{\{-?|[\s(,\[])\.(?=[A-Za-z_])"
)


class ForbiddenAttributeRule(TransformRule):
    """
    Reject templates that reach for Python internals.

    The sandboxed environment already refuses unsafe attribute access at
    render time; this rule fails such templates before compilation so they
    surface as parse errors at the template author's end.
    """

    rule_type = RuleType.SECURITY
    priority = 1

    def applies_to(self, context: RuleContext) -> bool:
        return "__" in context.source

    def transform(self, context: RuleContext) -> RuleContext:
        for block in _EXPRESSION_BLOCK.findall(context.source):
            if "__" in block:
                raise TemplateParseError(context.source, f"forbidden attribute access in {block}")
        return context

    @property
    def description(self) -> str:
        return "Reject double-underscore attribute access"


class LeadingDotRule(TransformRule):
    """
    Convert dot-path references to plain Jinja2 names.

    Transforms: {{.user}} -> {{user}}
                {{ .metadata.host }} -> {{ metadata.host }}
                {{- .a ~ ":" ~ .b -}} -> {{- a ~ ":" ~ b -}}

    Only expression blocks are rewritten; literal text between them and
    string literals inside them are left untouched.
    """

    rule_type = RuleType.SYNTAX
    priority = 10

    def applies_to(self, context: RuleContext) -> bool:
        return "{{" in context.source and "." in context.source

    def transform(self, context: RuleContext) -> RuleContext:
        def strip_dot(match: re.Match[str]) -> str:
            if match.group("literal") is not None:
                return match.group("literal")
            return match.group("prefix")

        def strip_dots(match: re.Match[str]) -> str:
            return _LEADING_DOT.sub(strip_dot, match.group(0))

        context.source = _EXPRESSION_BLOCK.sub(strip_dots, context.source)
        return context

    @property
    def description(self) -> str:
        return "Strip the leading dot of dot-path references"
