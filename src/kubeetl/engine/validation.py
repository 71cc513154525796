"""Field validation for Connection credentials and DataSet metadata.

Checks a map of declared field values against a FieldSchema and returns
every violation found. Nothing here raises for content problems: callers
(admission, CLI, MCP tools) decide how to surface the list.

Rules, per declared field (declaration order):
- unknown field and extra fields disallowed -> ExtraFieldDisallowed
- value not exactly one of literal/valueFrom, or valueFrom not exactly one
  reference -> InvalidValueSource
- sensitive field not sourced only from a secretKeyRef -> SensitiveFieldViolation
- literal value: TooShort / TooLong / RegexMismatch (independent checks),
  or InternalValidationError for a malformed or non-RE2 pattern
Then, in schema order, required fields that were not declared ->
RequiredFieldMissing.

Values that come from a backing store are not content-validated here; their
content is unknown at admission time.
"""

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .schema import CredentialFieldSpec, FieldSchema, Value, ValueValidation

REDACTION_MARKER = "***REDACTED***"


class FieldErrorType(str, Enum):
    TOO_SHORT = "TooShort"
    TOO_LONG = "TooLong"
    REGEX_MISMATCH = "RegexMismatch"
    INTERNAL_VALIDATION_ERROR = "InternalValidationError"
    EXTRA_FIELD_DISALLOWED = "ExtraFieldDisallowed"
    SENSITIVE_FIELD_VIOLATION = "SensitiveFieldViolation"
    REQUIRED_FIELD_MISSING = "RequiredFieldMissing"
    INVALID_VALUE_SOURCE = "InvalidValueSource"
    UNKNOWN_TYPE = "UnknownType"


@dataclass(frozen=True)
class FieldError:
    """
    One validation failure.

    Attributes:
        type: Error category
        field: Dotted path of the offending field (e.g. "credentials.username")
        bad_value: The offending value, already redacted where sensitive
        detail: Human-readable explanation

    ``str(error)`` gives "<path>: Invalid value: <value>: <detail>".
    """

    type: FieldErrorType
    field: str
    bad_value: Any
    detail: str

    def __str__(self) -> str:
        return f"{self.field}: Invalid value: {format_bad_value(self.bad_value)}: {self.detail}"

    def with_prefix(self, prefix: str) -> "FieldError":
        """Return a copy whose path is nested under ``prefix``."""
        return FieldError(self.type, f"{prefix}.{self.field}", self.bad_value, self.detail)


def format_bad_value(value: Any) -> str:
    """Render a value for an error message deterministically."""
    if isinstance(value, Value):
        if value.is_literal and value.value_from is None:
            return json.dumps(value.value)
        return json.dumps(value.model_dump(by_alias=True, exclude_defaults=True), sort_keys=True)
    if isinstance(value, str):
        return json.dumps(value)
    return json.dumps(value, sort_keys=True, default=str)


# Group openers with no linear-time (RE2) equivalent
_UNSUPPORTED_GROUPS = (
    ("(?=", "lookahead is not supported"),
    ("(?!", "negative lookahead is not supported"),
    ("(?<=", "lookbehind is not supported"),
    ("(?<!", "negative lookbehind is not supported"),
    ("(?>", "atomic groups are not supported"),
    ("(?(", "conditional groups are not supported"),
    ("(?P=", "backreferences are not supported"),
)


def _unsupported_construct(pattern: str) -> str | None:
    """Return why a pattern falls outside RE2 syntax, or None if it does not."""
    position = 0
    in_class = False
    while position < len(pattern):
        char = pattern[position]
        if char == "\\":
            escaped = pattern[position + 1 : position + 2]
            if not in_class and escaped and escaped in "123456789g":
                return "backreferences are not supported"
            position += 2
            continue
        if in_class:
            if char == "]":
                in_class = False
        elif char == "[":
            in_class = True
            position += 1
            # "]" directly after "[" or "[^" is a literal member
            if pattern.startswith("^", position):
                position += 1
            if pattern.startswith("]", position):
                position += 1
            continue
        elif char == "(":
            for opener, reason in _UNSUPPORTED_GROUPS:
                if pattern.startswith(opener, position):
                    return reason
        elif char in "*+?}" and pattern.startswith("+", position + 1):
            return "possessive quantifiers are not supported"
        position += 1
    return None


def compile_pattern(regex: str) -> re.Pattern[str]:
    """
    Compile a validation pattern restricted to RE2 syntax.

    Backreferences, lookarounds, atomic groups and possessive quantifiers
    are refused so matching stays linear in the length of the value.

    Raises:
        re.error: Pattern is malformed or uses an unsupported construct
    """
    reason = _unsupported_construct(regex)
    if reason is not None:
        raise re.error(reason, pattern=regex)
    return re.compile(regex)


def validate_value(value: str, path: str, validation: ValueValidation) -> list[FieldError]:
    """
    Validate a literal string against length and regex rules.

    Each rule is checked independently, so one value can produce several
    errors. A pattern that does not compile yields InternalValidationError
    instead of a mismatch.

    Args:
        value: The literal string
        path: Field path used in the errors
        validation: Rules to apply

    Returns:
        List of FieldError (empty when the value is valid)

    Examples:
        >>> rules = ValueValidation(min_length=3, regex="^[0-9]*$")
        >>> [e.type.value for e in validate_value("1a", "credentials.pin", rules)]
        ['TooShort', 'RegexMismatch']
    """
    errors: list[FieldError] = []
    length = len(value)

    if validation.min_length is not None and length < validation.min_length:
        errors.append(
            FieldError(
                FieldErrorType.TOO_SHORT,
                path,
                value,
                f"value below minimum length of {validation.min_length}",
            )
        )

    if validation.max_length is not None and length > validation.max_length:
        errors.append(
            FieldError(
                FieldErrorType.TOO_LONG,
                path,
                value,
                f"value above maximum length of {validation.max_length}",
            )
        )

    if validation.regex is not None:
        try:
            pattern = compile_pattern(validation.regex)
        except re.error as e:
            errors.append(
                FieldError(
                    FieldErrorType.INTERNAL_VALIDATION_ERROR,
                    path,
                    validation.regex,
                    f"invalid regex pattern: {e}",
                )
            )
        else:
            if pattern.fullmatch(value) is None:
                errors.append(
                    FieldError(
                        FieldErrorType.REGEX_MISMATCH,
                        path,
                        value,
                        f"value does not match regex pattern {validation.regex}",
                    )
                )

    return errors


def validate_value_source(value: Value, path: str) -> list[FieldError]:
    """Check that a Value carries exactly one source, and a ValueSource exactly one ref."""
    has_literal = value.is_literal
    has_reference = value.value_from is not None

    if has_literal and has_reference:
        return [
            FieldError(
                FieldErrorType.INVALID_VALUE_SOURCE,
                path,
                value,
                "value and valueFrom are mutually exclusive",
            )
        ]
    if not has_literal and not has_reference:
        return [
            FieldError(
                FieldErrorType.INVALID_VALUE_SOURCE,
                path,
                value,
                "one of value or valueFrom must be set",
            )
        ]

    source = value.value_from
    if source is not None:
        refs = [ref for ref in (source.config_map_key_ref, source.secret_key_ref) if ref]
        if len(refs) != 1:
            return [
                FieldError(
                    FieldErrorType.INVALID_VALUE_SOURCE,
                    path,
                    value,
                    "valueFrom must set exactly one of configMapKeyRef or secretKeyRef",
                )
            ]
    return []


def _check_sensitive(value: Value, path: str) -> list[FieldError]:
    source = value.value_from
    if (
        value.is_literal
        or source is None
        or source.secret_key_ref is None
        or source.config_map_key_ref is not None
    ):
        return [
            FieldError(
                FieldErrorType.SENSITIVE_FIELD_VIOLATION,
                path,
                REDACTION_MARKER if value.is_literal else value,
                "sensitive field must be sourced from a secretKeyRef only",
            )
        ]
    return []


def _validate_declared_field(
    value: Value, field_spec: CredentialFieldSpec, path: str
) -> list[FieldError]:
    if field_spec.sensitive:
        return _check_sensitive(value, path)

    source_errors = validate_value_source(value, path)
    if source_errors:
        return source_errors

    if value.is_literal and field_spec.validation is not None:
        return validate_value(value.value, path, field_spec.validation)
    return []


def validate_fields(
    values: dict[str, Value],
    schema: FieldSchema,
    root: str = "credentials",
    type_name: str = "type",
) -> list[FieldError]:
    """
    Validate declared field values against a schema.

    Args:
        values: Field name -> declared Value
        schema: Field declarations and extra-fields policy
        root: Path prefix for errors ("credentials" or "metadata")
        type_name: Schema name used in the extra-field message

    Returns:
        All violations, in field declaration order, followed by missing
        required fields in schema order.

    Example:
        >>> schema = FieldSchema(fields=[CredentialFieldSpec(name="user")])
        >>> [str(e) for e in validate_fields({"host": Value.literal("db")}, schema)]
        ['credentials.host: Invalid value: "db": type does not allow extra fields']
    """
    errors: list[FieldError] = []
    declared = schema.fields_by_name

    for name, value in values.items():
        path = f"{root}.{name}"
        field_spec = declared.get(name)
        if field_spec is None:
            if not schema.allow_extra_fields:
                errors.append(
                    FieldError(
                        FieldErrorType.EXTRA_FIELD_DISALLOWED,
                        path,
                        value,
                        f"{type_name} does not allow extra fields",
                    )
                )
            else:
                errors.extend(validate_value_source(value, path))
            continue

        errors.extend(_validate_declared_field(value, field_spec, path))

    for field_spec in schema.fields:
        if field_spec.required and field_spec.name not in values:
            errors.append(
                FieldError(
                    FieldErrorType.REQUIRED_FIELD_MISSING,
                    f"{root}.{field_spec.name}",
                    None,
                    "required field is missing",
                )
            )

    return errors


__all__ = [
    "FieldError",
    "FieldErrorType",
    "REDACTION_MARKER",
    "compile_pattern",
    "format_bad_value",
    "validate_fields",
    "validate_value",
    "validate_value_source",
]
