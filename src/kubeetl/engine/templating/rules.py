"""
Rule system for content template preprocessing.

Content templates are written by users in a dot-path interpolation style
(``{{.user}}``, ``{{.metadata.host}}``). Before a template is compiled by
Jinja2 it passes through an ordered pipeline of rules that rewrite the
source into plain Jinja2 syntax.

Rule Types:
    - SECURITY: Reject constructs that must never be compiled
    - SYNTAX: Source syntax transformations

Example:
    class UpperCaseKeysRule(TransformRule):
        rule_type = RuleType.SYNTAX
        priority = 30

        def applies_to(self, context: RuleContext) -> bool:
            return "KEY" in context.source

        def transform(self, context: RuleContext) -> RuleContext:
            context.source = context.source.replace("KEY", "key")
            return context

        @property
        def description(self) -> str:
            return "Lower-case KEY references"
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class RuleType(Enum):
    """Types of preprocessing rules."""

    SECURITY = "security"
    SYNTAX = "syntax"


@dataclass
class RuleContext:
    """
    Context passed to rules for processing.

    Attributes:
        source: Template source to transform
        data: Data the template will be rendered against
        metadata: Rule-specific metadata for downstream processing
    """

    source: str
    data: dict[str, Any]
    metadata: dict[str, Any] = field(default_factory=dict)


class TransformRule(ABC):
    """
    Base class for preprocessing rules.

    Rules are applied in priority order (lower = higher priority). Security
    rules use priorities 1-9, syntax rules 10 and above.
    """

    rule_type: RuleType
    priority: int = 0

    @abstractmethod
    def applies_to(self, context: RuleContext) -> bool:
        """Check if rule should be applied to this context."""
        pass

    @abstractmethod
    def transform(self, context: RuleContext) -> RuleContext:
        """Apply the transformation and return the (possibly modified) context."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what this rule does."""
        pass


def apply_rules(rules: list[TransformRule], context: RuleContext) -> RuleContext:
    """Run every applicable rule over ``context`` in priority order."""
    for rule in sorted(rules, key=lambda r: r.priority):
        if rule.applies_to(context):
            context = rule.transform(context)
    return context
