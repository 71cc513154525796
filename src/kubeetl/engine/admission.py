"""
Admission review for Connections, DataSets and their types.

The reviewer is the synchronous core of a validating webhook: it looks up
the type a resource declares, runs field validation and turns the result
into an allow/deny response. The HTTP/TLS transport is not part of this
package.

Paths in errors are rooted at the resource (``spec.credentials.<field>``,
``spec.metadata.<field>``), and every violation is reported at once.
"""

import logging
import re
from dataclasses import dataclass, field

from .registry import ResourceRegistry
from .schema import Connection, ConnectionType, DataSet, DataSetType, FieldSchema, Resource
from .validation import FieldError, FieldErrorType, compile_pattern, validate_fields

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdmissionResponse:
    """
    Outcome of reviewing one resource.

    Attributes:
        allowed: Whether the resource may be admitted
        errors: Every violation found (empty when allowed)
        message: Human-readable summary
    """

    allowed: bool
    errors: list[FieldError] = field(default_factory=list)
    message: str = ""

    @classmethod
    def allow(cls, resource: Resource) -> "AdmissionResponse":
        return cls(allowed=True, message=f"valid {resource.kind} resource")

    @classmethod
    def deny(cls, resource: Resource, errors: list[FieldError]) -> "AdmissionResponse":
        kind = resource.kind
        message = f"{kind} {resource.name} is invalid: " + "; ".join(str(e) for e in errors)
        return cls(allowed=False, errors=list(errors), message=message)


class AdmissionReviewer:
    """
    Validates resources against the types registered in a ResourceRegistry.

    Example:
        reviewer = AdmissionReviewer(registry)
        response = reviewer.review(connection)
        if not response.allowed:
            print(response.message)
    """

    def __init__(self, registry: ResourceRegistry):
        self.registry = registry

    def review(self, resource: Resource) -> AdmissionResponse:
        errors = self.validate(resource)
        if errors:
            response = AdmissionResponse.deny(resource, errors)
            logger.info(f"Rejected {response.message}")
            return response
        return AdmissionResponse.allow(resource)

    def validate(self, resource: Resource) -> list[FieldError]:
        """
        Return every violation of a resource; kinds without content rules
        (Workflow, CronWorkflow, WorkflowTemplate) always validate.
        """
        if isinstance(resource, Connection):
            return self._validate_connection(resource)
        if isinstance(resource, DataSet):
            return self._validate_data_set(resource)
        if isinstance(resource, ConnectionType):
            return _validate_schema_patterns(resource.spec, "spec")
        if isinstance(resource, DataSetType):
            return _validate_schema_patterns(resource.spec.metadata, "spec.metadata")
        return []

    def _validate_connection(self, connection: Connection) -> list[FieldError]:
        type_name = connection.spec.type
        connection_type = self.registry.find_connection_type(connection.namespace, type_name)
        if connection_type is None:
            return [_unknown_type("ConnectionType", type_name)]

        errors = validate_fields(
            connection.spec.credentials,
            connection_type.spec,
            root="credentials",
            type_name="ConnectionType",
        )
        return [error.with_prefix("spec") for error in errors]

    def _validate_data_set(self, data_set: DataSet) -> list[FieldError]:
        type_name = data_set.spec.type
        data_set_type = self.registry.find_data_set_type(data_set.namespace, type_name)
        if data_set_type is None:
            return [_unknown_type("DataSetType", type_name)]

        errors = validate_fields(
            data_set.spec.metadata,
            data_set_type.spec.metadata,
            root="metadata",
            type_name="DataSetType",
        )
        return [error.with_prefix("spec") for error in errors]


def _unknown_type(kind: str, type_name: str) -> FieldError:
    return FieldError(FieldErrorType.UNKNOWN_TYPE, "spec.type", type_name, f"unknown {kind}")


def _validate_schema_patterns(schema: FieldSchema, root: str) -> list[FieldError]:
    errors: list[FieldError] = []
    for position, field_spec in enumerate(schema.fields):
        if field_spec.validation is None or field_spec.validation.regex is None:
            continue
        try:
            compile_pattern(field_spec.validation.regex)
        except re.error as e:
            errors.append(
                FieldError(
                    FieldErrorType.INTERNAL_VALIDATION_ERROR,
                    f"{root}.fields[{position}].validation.regex",
                    field_spec.validation.regex,
                    f"invalid regex pattern: {e}",
                )
            )
    return errors
