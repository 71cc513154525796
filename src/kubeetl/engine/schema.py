"""
Resource schema with Pydantic v2 models.

This module defines the user-facing resources the engine reads:

- Connection / ConnectionType: credential bundles and their field schema
- DataSet / DataSetType: metadata bundles (optionally backed by a
  Connection) and their field schema
- Workflow: a task graph plus the injectable values to deliver into it
- CronWorkflow / WorkflowTemplate: the same WorkflowSpec, run on a schedule
  or stored for reuse

Resources use a Kubernetes-style wire format (apiVersion, kind, metadata,
spec) with camelCase keys; snake_case names are accepted as well.

The models validate structure only. Content rules (required, sensitive,
length, regex, extra fields) are checked by
:mod:`kubeetl.engine.validation` so that every violation can be reported at
once instead of failing on the first.
"""

import hashlib
from enum import Enum
from functools import cached_property
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator
from pydantic.alias_generators import to_camel

from .graph import TaskGraph

API_VERSION = "etl.dataworkz.nl/v1alpha1"


def artifact_name(workflow_name: str) -> str:
    """
    Stable name of the secret and volume generated for a Workflow.

    Args:
        workflow_name: Name of the owning Workflow

    Returns:
        "<workflow_name>-<first 10 hex chars of md5(workflow_name)>"

    Examples:
        >>> artifact_name("etl")
        'etl-fe8927df76'
    """
    digest = hashlib.md5(workflow_name.encode("utf-8")).hexdigest()
    return f"{workflow_name}-{digest[:10]}"


class WireModel(BaseModel):
    """Base for resource models: camelCase wire names, unknown keys rejected."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class ObjectMeta(WireModel):
    model_config = ConfigDict(extra="allow")

    name: str = Field(min_length=1, max_length=253)
    namespace: str = Field(default="default", min_length=1)
    labels: dict[str, str] = Field(default_factory=dict)


class LocalObjectReference(WireModel):
    name: str = Field(min_length=1)


class KeySelector(WireModel):
    """Selects one key of a named config or secret object in the same namespace."""

    name: str = Field(min_length=1)
    key: str = Field(min_length=1)


class ValueSource(WireModel):
    """Reference into a backing store. Exactly one reference should be set."""

    config_map_key_ref: KeySelector | None = None
    secret_key_ref: KeySelector | None = None


class Value(WireModel):
    """
    A declared field value: a literal, or a reference into a backing store.

    Exactly one of ``value`` and ``value_from`` should be set. The model
    accepts any combination so that malformed input can be reported by the
    validator with a field path; see
    :func:`kubeetl.engine.validation.validate_value_source`.

    A bare string is accepted as shorthand for ``{"value": <string>}``.
    """

    value: str = ""
    value_from: ValueSource | None = None

    @model_validator(mode="before")
    @classmethod
    def _literal_shorthand(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"value": data}
        return data

    @property
    def is_literal(self) -> bool:
        return self.value != ""

    @classmethod
    def literal(cls, value: str) -> "Value":
        return cls(value=value)

    @classmethod
    def from_secret(cls, name: str, key: str) -> "Value":
        return cls(value_from=ValueSource(secret_key_ref=KeySelector(name=name, key=key)))

    @classmethod
    def from_config_map(cls, name: str, key: str) -> "Value":
        return cls(value_from=ValueSource(config_map_key_ref=KeySelector(name=name, key=key)))


class ValueValidation(WireModel):
    """Optional content rules for a literal value. Regex must fully match."""

    min_length: int | None = Field(default=None, ge=0)
    max_length: int | None = Field(default=None, ge=0)
    regex: str | None = None


class CredentialFieldSpec(WireModel):
    """
    Declaration of one field of a ConnectionType or DataSetType.

    Attributes:
        name: Key of the field in the credentials/metadata map
        env_key: Suggested environment variable name for the field
        required: Whether the field must be declared
        sensitive: Whether the field may only come from a secretKeyRef
        validation: Optional content rules for literal values
    """

    name: str = Field(min_length=1)
    env_key: str = Field(default="", alias="envName")
    required: bool = False
    sensitive: bool = False
    validation: ValueValidation | None = None


class FieldSchema(WireModel):
    """Ordered field declarations plus the extra-fields policy."""

    fields: list[CredentialFieldSpec] = Field(default_factory=list)
    allow_extra_fields: bool = False

    @cached_property
    def fields_by_name(self) -> dict[str, CredentialFieldSpec]:
        return {field_spec.name: field_spec for field_spec in self.fields}


class Resource(WireModel):
    """Common envelope of every resource kind."""

    api_version: str = API_VERSION
    kind: str
    metadata: ObjectMeta

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace


class ConnectionTypeSpec(FieldSchema):
    pass


class ConnectionType(Resource):
    kind: Literal["ConnectionType"] = "ConnectionType"
    spec: ConnectionTypeSpec = Field(default_factory=ConnectionTypeSpec)


class ConnectionSpec(WireModel):
    type: str = ""
    credentials: dict[str, Value] = Field(default_factory=dict)


class Connection(Resource):
    kind: Literal["Connection"] = "Connection"
    spec: ConnectionSpec = Field(default_factory=ConnectionSpec)


class DataSetTypeSpec(WireModel):
    metadata: FieldSchema = Field(default_factory=FieldSchema)


class DataSetType(Resource):
    kind: Literal["DataSetType"] = "DataSetType"
    spec: DataSetTypeSpec = Field(default_factory=DataSetTypeSpec)


class StorageType(str, Enum):
    PERSISTENT = "Persistent"
    EPHEMERAL = "Ephemeral"


class DataSetSpec(WireModel):
    type: str = ""
    storage_type: StorageType = StorageType.PERSISTENT
    metadata: dict[str, Value] = Field(default_factory=dict)
    connection_ref: LocalObjectReference | None = None


class DataSet(Resource):
    kind: Literal["DataSet"] = "DataSet"
    spec: DataSetSpec = Field(default_factory=DataSetSpec)


class DeliveryKind(str, Enum):
    """How an injectable value reaches a container."""

    ENV = "Env"
    FILE = "File"


class SourceKind(str, Enum):
    """Which resource an injectable value is rendered from."""

    CONNECTION = "Connection"
    DATASET = "DataSet"


class InjectableValue(WireModel):
    """
    A named, templated piece of content delivered into task graph nodes.

    Exactly one of ``connection_ref``/``data_set_ref`` and exactly one of
    ``env_name``/``mount_path`` must be set; anything else is rejected at
    construction time.

    Attributes:
        name: Unique name within the Workflow; also the generated secret key
        connection_ref: Connection whose credentials feed the template
        data_set_ref: DataSet whose metadata (and linked Connection) feed it
        content: Template rendered against the resolved values
        env_name: Deliver as this environment variable
        mount_path: Deliver as a file mounted at this path
    """

    name: str = Field(min_length=1)
    connection_ref: LocalObjectReference | None = None
    data_set_ref: LocalObjectReference | None = None
    content: str
    env_name: str | None = None
    mount_path: str | None = None

    @model_validator(mode="after")
    def _check_exclusive_fields(self) -> "InjectableValue":
        if (self.connection_ref is None) == (self.data_set_ref is None):
            raise ValueError(
                f"injectable value '{self.name}' must set exactly one of "
                "connectionRef or dataSetRef"
            )
        if bool(self.env_name) == bool(self.mount_path):
            raise ValueError(
                f"injectable value '{self.name}' must set exactly one of envName or mountPath"
            )
        return self

    @property
    def delivery(self) -> DeliveryKind:
        return DeliveryKind.ENV if self.env_name else DeliveryKind.FILE

    @property
    def source_kind(self) -> SourceKind:
        return SourceKind.CONNECTION if self.connection_ref is not None else SourceKind.DATASET

    @property
    def source_name(self) -> str:
        if self.connection_ref is not None:
            return self.connection_ref.name
        if self.data_set_ref is not None:
            return self.data_set_ref.name
        raise ValueError(f"injectable value '{self.name}' has no connectionRef or dataSetRef")


class TemplateRef(WireModel):
    """Target node name plus the injectable values to deliver there."""

    name: str = Field(min_length=1)
    injected_values: list[str] = Field(default_factory=list, alias="inject")


class WorkflowSpec(TaskGraph):
    """
    The engine's task graph plus injection declarations.

    Graph fields (entrypoint, templates, volumes and any engine-specific
    keys) are inlined, matching the engine's own workflow spec.
    """

    injectable_values: list[InjectableValue] = Field(default_factory=list, alias="injectable")
    inject_into: list[TemplateRef] = Field(default_factory=list, alias="injectInto")
    injection_service_account: str = ""

    @model_validator(mode="after")
    def _check_unique_injectable_names(self) -> "WorkflowSpec":
        seen: set[str] = set()
        for injectable in self.injectable_values:
            if injectable.name in seen:
                raise ValueError(f"duplicate injectable value name '{injectable.name}'")
            seen.add(injectable.name)
        return self

    def task_graph(self) -> TaskGraph:
        """Return the engine graph fields as a standalone TaskGraph."""
        data = self.model_dump(
            by_alias=True,
            exclude_unset=True,
            exclude=set(type(self).model_fields) - set(TaskGraph.model_fields),
        )
        return TaskGraph.model_validate(data)


class Workflow(Resource):
    kind: Literal["Workflow"] = "Workflow"
    spec: WorkflowSpec = Field(default_factory=WorkflowSpec)

    @property
    def workflow_spec(self) -> WorkflowSpec:
        return self.spec

    @property
    def artifact_name(self) -> str:
        """Name of the generated secret and volume owned by this Workflow."""
        return artifact_name(self.name)


class WorkflowTemplateSpec(WorkflowSpec):
    """A WorkflowSpec stored for reuse; graph fields are inlined as for Workflow."""

    workflow_metadata: dict[str, Any] | None = None


class WorkflowTemplate(Resource):
    kind: Literal["WorkflowTemplate"] = "WorkflowTemplate"
    spec: WorkflowTemplateSpec = Field(default_factory=WorkflowTemplateSpec)

    @property
    def workflow_spec(self) -> WorkflowSpec:
        return self.spec

    @property
    def artifact_name(self) -> str:
        return artifact_name(self.name)


class CronWorkflowSpec(WireModel):
    """
    A WorkflowSpec run on a cron schedule.

    Only ``workflow_spec`` is rewritten by the planner; the scheduling fields
    are passed through to the engine unchanged.
    """

    workflow_spec: WorkflowSpec
    schedule: str = Field(min_length=1)
    concurrency_policy: Literal["Allow", "Forbid", "Replace"] | None = None
    suspend: bool = False
    starting_deadline_seconds: int | None = Field(default=None, ge=0)
    successful_jobs_history_limit: int | None = Field(default=None, ge=0)
    failed_jobs_history_limit: int | None = Field(default=None, ge=0)
    timezone: str = ""
    workflow_metadata: dict[str, Any] | None = None


class CronWorkflow(Resource):
    kind: Literal["CronWorkflow"] = "CronWorkflow"
    spec: CronWorkflowSpec

    @property
    def workflow_spec(self) -> WorkflowSpec:
        return self.spec.workflow_spec

    @property
    def artifact_name(self) -> str:
        return artifact_name(self.name)


# Resources that carry a WorkflowSpec the planner can rewrite
WorkflowResource = Workflow | CronWorkflow | WorkflowTemplate

# Lookup order when a workflow resource is named without a kind
WORKFLOW_KINDS: tuple[str, ...] = ("Workflow", "CronWorkflow", "WorkflowTemplate")

AnyResource = Annotated[
    Connection
    | ConnectionType
    | DataSet
    | DataSetType
    | Workflow
    | CronWorkflow
    | WorkflowTemplate,
    Field(discriminator="kind"),
]

RESOURCE_ADAPTER: TypeAdapter[Any] = TypeAdapter(AnyResource)

RESOURCE_KINDS: tuple[str, ...] = (
    "Connection",
    "ConnectionType",
    "DataSet",
    "DataSetType",
    *WORKFLOW_KINDS,
)
