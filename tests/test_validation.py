"""Tests for credential/metadata field validation."""

import pytest

from kubeetl.engine import FieldErrorType, Value, validate_fields, validate_value
from kubeetl.engine.schema import (
    CredentialFieldSpec,
    FieldSchema,
    KeySelector,
    ValueSource,
    ValueValidation,
)
from kubeetl.engine.validation import REDACTION_MARKER, format_bad_value


def schema(*fields: CredentialFieldSpec, allow_extra_fields: bool = False) -> FieldSchema:
    return FieldSchema(fields=list(fields), allow_extra_fields=allow_extra_fields)


class TestValidateValue:
    """Length and regex rules on literal values."""

    def test_too_short(self) -> None:
        errors = validate_value("abc", "credentials.username", ValueValidation(min_length=5))

        assert len(errors) == 1
        assert errors[0].type == FieldErrorType.TOO_SHORT
        assert errors[0].field == "credentials.username"
        assert str(errors[0]) == (
            'credentials.username: Invalid value: "abc": value below minimum length of 5'
        )

    def test_too_long(self) -> None:
        errors = validate_value("abcdef", "credentials.pin", ValueValidation(max_length=4))

        assert [e.type for e in errors] == [FieldErrorType.TOO_LONG]
        assert "value above maximum length of 4" in str(errors[0])

    def test_length_bounds_are_inclusive(self) -> None:
        rules = ValueValidation(min_length=3, max_length=3)
        assert validate_value("abc", "credentials.code", rules) == []

    def test_regex_must_match_whole_value(self) -> None:
        rules = ValueValidation(regex="[a-z]+")

        assert validate_value("abc", "credentials.user", rules) == []
        errors = validate_value("abc1", "credentials.user", rules)
        assert [e.type for e in errors] == [FieldErrorType.REGEX_MISMATCH]

    def test_rules_are_checked_independently(self) -> None:
        rules = ValueValidation(min_length=3, regex="^[0-9]*$")

        errors = validate_value("1a", "credentials.pin", rules)

        assert [e.type for e in errors] == [
            FieldErrorType.TOO_SHORT,
            FieldErrorType.REGEX_MISMATCH,
        ]

    def test_invalid_pattern_is_internal_error(self) -> None:
        errors = validate_value("abc", "credentials.user", ValueValidation(regex="([a-z"))

        assert len(errors) == 1
        assert errors[0].type == FieldErrorType.INTERNAL_VALIDATION_ERROR
        assert errors[0].bad_value == "([a-z"

    @pytest.mark.parametrize(
        ("regex", "reason"),
        [
            (r"(a)\1", "backreferences are not supported"),
            (r"(?P<x>a)(?P=x)", "backreferences are not supported"),
            (r"a(?=b)", "lookahead is not supported"),
            (r"a(?!b)", "negative lookahead is not supported"),
            (r"(?<=a)b", "lookbehind is not supported"),
            (r"(?<!a)b", "negative lookbehind is not supported"),
            (r"(?>a+)b", "atomic groups are not supported"),
            (r"a*+", "possessive quantifiers are not supported"),
        ],
    )
    def test_non_re2_constructs_are_internal_errors(self, regex: str, reason: str) -> None:
        errors = validate_value("aa", "credentials.user", ValueValidation(regex=regex))

        assert [e.type for e in errors] == [FieldErrorType.INTERNAL_VALIDATION_ERROR]
        assert errors[0].detail == f"invalid regex pattern: {reason}"

    @pytest.mark.parametrize(
        "regex",
        [r"\\1[a-z]+", r"[(?=]+", r"[*+]+", r"\(?=a\)", r"[a-z]+?", r"(?:ab)+", r"(?P<x>a)b"],
    )
    def test_re2_compatible_patterns_compile(self, regex: str) -> None:
        errors = validate_value("zz", "credentials.user", ValueValidation(regex=regex))

        assert FieldErrorType.INTERNAL_VALIDATION_ERROR not in [e.type for e in errors]


class TestValidateFields:
    """Schema-level checks over a credentials/metadata map."""

    def test_valid_credentials(self) -> None:
        field_schema = schema(
            CredentialFieldSpec(name="host", required=True),
            CredentialFieldSpec(name="password", sensitive=True),
        )
        values = {
            "host": Value.literal("db.internal"),
            "password": Value.from_secret("pg-secret", "pw"),
        }

        assert validate_fields(values, field_schema) == []

    def test_extra_field_disallowed(self) -> None:
        errors = validate_fields(
            {"host": Value.literal("db")},
            schema(CredentialFieldSpec(name="user")),
            type_name="ConnectionType",
        )

        assert len(errors) == 1
        assert errors[0].type == FieldErrorType.EXTRA_FIELD_DISALLOWED
        assert str(errors[0]) == (
            'credentials.host: Invalid value: "db": ConnectionType does not allow extra fields'
        )

    def test_extra_field_allowed(self) -> None:
        errors = validate_fields(
            {"host": Value.literal("db")},
            schema(CredentialFieldSpec(name="user"), allow_extra_fields=True),
        )
        assert errors == []

    def test_sensitive_literal_is_rejected_and_redacted(self) -> None:
        errors = validate_fields(
            {"password": Value.literal("hunter2")},
            schema(CredentialFieldSpec(name="password", sensitive=True)),
        )

        assert [e.type for e in errors] == [FieldErrorType.SENSITIVE_FIELD_VIOLATION]
        assert errors[0].bad_value == REDACTION_MARKER
        assert "hunter2" not in str(errors[0])

    def test_sensitive_config_map_reference_is_rejected(self) -> None:
        errors = validate_fields(
            {"password": Value.from_config_map("pg-cm", "pw")},
            schema(CredentialFieldSpec(name="password", sensitive=True)),
        )
        assert [e.type for e in errors] == [FieldErrorType.SENSITIVE_FIELD_VIOLATION]

    def test_sensitive_field_skips_content_rules(self) -> None:
        field_schema = schema(
            CredentialFieldSpec(
                name="password", sensitive=True, validation=ValueValidation(min_length=50)
            )
        )
        errors = validate_fields({"password": Value.from_secret("pg-secret", "pw")}, field_schema)
        assert errors == []

    def test_reference_values_are_not_content_validated(self) -> None:
        field_schema = schema(
            CredentialFieldSpec(name="username", validation=ValueValidation(min_length=5))
        )
        errors = validate_fields({"username": Value.from_config_map("pg-cm", "u")}, field_schema)
        assert errors == []

    def test_required_field_missing(self) -> None:
        errors = validate_fields(
            {},
            schema(CredentialFieldSpec(name="host", required=True)),
            root="metadata",
        )

        assert len(errors) == 1
        assert errors[0].type == FieldErrorType.REQUIRED_FIELD_MISSING
        assert errors[0].field == "metadata.host"

    def test_value_and_reference_both_set(self) -> None:
        selector = KeySelector(name="s", key="k")
        value = Value(value="x", value_from=ValueSource(secret_key_ref=selector))

        errors = validate_fields({"host": value}, schema(CredentialFieldSpec(name="host")))

        assert [e.type for e in errors] == [FieldErrorType.INVALID_VALUE_SOURCE]
        assert "mutually exclusive" in errors[0].detail

    def test_no_source_set(self) -> None:
        errors = validate_fields({"host": Value()}, schema(CredentialFieldSpec(name="host")))
        assert [e.type for e in errors] == [FieldErrorType.INVALID_VALUE_SOURCE]

    def test_reference_with_two_refs(self) -> None:
        selector = KeySelector(name="s", key="k")
        value = Value(value_from=ValueSource(config_map_key_ref=selector, secret_key_ref=selector))

        errors = validate_fields({"host": value}, schema(CredentialFieldSpec(name="host")))

        assert [e.type for e in errors] == [FieldErrorType.INVALID_VALUE_SOURCE]

    def test_all_errors_reported_in_order(self) -> None:
        field_schema = schema(
            CredentialFieldSpec(name="host", required=True),
            CredentialFieldSpec(name="username", validation=ValueValidation(min_length=5)),
        )
        values = {"username": Value.literal("abc"), "port": Value.literal("5432")}

        errors = validate_fields(values, field_schema)

        assert [(e.type, e.field) for e in errors] == [
            (FieldErrorType.TOO_SHORT, "credentials.username"),
            (FieldErrorType.EXTRA_FIELD_DISALLOWED, "credentials.port"),
            (FieldErrorType.REQUIRED_FIELD_MISSING, "credentials.host"),
        ]


class TestFieldError:
    def test_with_prefix(self) -> None:
        error = validate_value("abc", "credentials.username", ValueValidation(min_length=5))[0]

        prefixed = error.with_prefix("spec")

        assert prefixed.field == "spec.credentials.username"
        assert prefixed.type == error.type

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("abc", '"abc"'),
            (Value.literal("db"), '"db"'),
            (None, "null"),
            (
                Value.from_secret("s", "k"),
                '{"valueFrom": {"secretKeyRef": {"key": "k", "name": "s"}}}',
            ),
        ],
    )
    def test_format_bad_value(self, value: object, expected: str) -> None:
        assert format_bad_value(value) == expected
