"""Tests for admission review of Connections, DataSets and their types."""

from typing import Any

import pytest

from kubeetl.engine import AdmissionReviewer, FieldErrorType, ResourceRegistry, Workflow
from kubeetl.engine.schema import Connection, ConnectionType, DataSet


def connection(credentials: dict[str, Any], namespace: str = "default") -> Connection:
    return Connection.model_validate(
        {
            "metadata": {"name": "pg", "namespace": namespace},
            "spec": {"type": "postgres", "credentials": credentials},
        }
    )


@pytest.fixture
def reviewer(registry: ResourceRegistry) -> AdmissionReviewer:
    return AdmissionReviewer(registry)


class TestConnectionAdmission:
    def test_valid_connection(self, reviewer: AdmissionReviewer, connection: Connection) -> None:
        response = reviewer.review(connection)

        assert response.allowed
        assert response.errors == []
        assert response.message == "valid Connection resource"

    def test_too_short_username(self, reviewer: AdmissionReviewer) -> None:
        response = reviewer.review(connection({"host": "db", "username": "abc"}))

        assert not response.allowed
        assert len(response.errors) == 1
        error = response.errors[0]
        assert error.type == FieldErrorType.TOO_SHORT
        assert error.field == "spec.credentials.username"
        assert response.message == (
            "Connection pg is invalid: spec.credentials.username: "
            'Invalid value: "abc": value below minimum length of 5'
        )

    def test_every_violation_is_reported(self, reviewer: AdmissionReviewer) -> None:
        response = reviewer.review(connection({"username": "abc", "password": "hunter2"}))

        assert [(e.type, e.field) for e in response.errors] == [
            (FieldErrorType.TOO_SHORT, "spec.credentials.username"),
            (FieldErrorType.SENSITIVE_FIELD_VIOLATION, "spec.credentials.password"),
            (FieldErrorType.REQUIRED_FIELD_MISSING, "spec.credentials.host"),
        ]
        assert "hunter2" not in response.message

    def test_unknown_type(self, reviewer: AdmissionReviewer) -> None:
        resource = Connection.model_validate(
            {"metadata": {"name": "pg"}, "spec": {"type": "mysql", "credentials": {}}}
        )

        response = reviewer.review(resource)

        assert [(e.type, e.field) for e in response.errors] == [
            (FieldErrorType.UNKNOWN_TYPE, "spec.type")
        ]

    def test_types_are_namespace_scoped(self, reviewer: AdmissionReviewer) -> None:
        response = reviewer.review(connection({"host": "db"}, namespace="other"))

        assert response.errors[0].type == FieldErrorType.UNKNOWN_TYPE


class TestDataSetAdmission:
    def test_valid_data_set(self, reviewer: AdmissionReviewer, data_set: DataSet) -> None:
        assert reviewer.review(data_set).allowed

    def test_required_metadata_missing(self, reviewer: AdmissionReviewer) -> None:
        resource = DataSet.model_validate(
            {"metadata": {"name": "orders"}, "spec": {"type": "table", "metadata": {}}}
        )

        response = reviewer.review(resource)

        assert [(e.type, e.field) for e in response.errors] == [
            (FieldErrorType.REQUIRED_FIELD_MISSING, "spec.metadata.table")
        ]

    def test_extra_metadata_field(self, reviewer: AdmissionReviewer) -> None:
        resource = DataSet.model_validate(
            {
                "metadata": {"name": "orders"},
                "spec": {"type": "table", "metadata": {"table": "orders", "schema": "public"}},
            }
        )

        response = reviewer.review(resource)

        assert response.errors[0].type == FieldErrorType.EXTRA_FIELD_DISALLOWED
        assert "DataSetType does not allow extra fields" in response.message


class TestTypeAdmission:
    def test_invalid_regex_in_type(self, reviewer: AdmissionReviewer) -> None:
        resource = ConnectionType.model_validate(
            {
                "metadata": {"name": "broken"},
                "spec": {
                    "fields": [{"name": "host"}, {"name": "user", "validation": {"regex": "("}}]
                },
            }
        )

        response = reviewer.review(resource)

        assert [(e.type, e.field) for e in response.errors] == [
            (FieldErrorType.INTERNAL_VALIDATION_ERROR, "spec.fields[1].validation.regex")
        ]

    def test_backreference_in_type_is_denied(self, reviewer: AdmissionReviewer) -> None:
        resource = ConnectionType.model_validate(
            {
                "metadata": {"name": "backref"},
                "spec": {"fields": [{"name": "user", "validation": {"regex": r"(a)\1"}}]},
            }
        )

        response = reviewer.review(resource)

        assert not response.allowed
        assert [e.detail for e in response.errors] == [
            "invalid regex pattern: backreferences are not supported"
        ]

    def test_valid_type(
        self, reviewer: AdmissionReviewer, connection_type: ConnectionType
    ) -> None:
        assert reviewer.review(connection_type).allowed

    def test_workflows_are_always_allowed(
        self, reviewer: AdmissionReviewer, workflow: Workflow
    ) -> None:
        assert reviewer.review(workflow).allowed
