"""Credential resolution and workflow injection engine.

Key Components:

- Resource models (Connection, ConnectionType, DataSet, DataSetType,
  Workflow, CronWorkflow, WorkflowTemplate): Pydantic v2 schema for YAML
  manifests
- TaskGraph / GraphIndex: Models of the external engine's graph plus an
  O(1) name index over its templates
- validate_fields: Schema Validator (required/extra/sensitive/length/regex)
- AdmissionReviewer: Allow/deny responses built on the validator
- CredentialValueResolver: Value -> string from literal, config or secret store
- ContentRenderer: Strict dot-path content template renderer
- InjectionPlanner: Rewrites task graphs to deliver injectable values
- SecretMaterializer: Renders all injectable values into the generated secret
- ResourceRegistry: Registry of loaded manifests
- LoadResult: Error monad for loader/registry file operations

Data flow:
- Admission gates Connections/DataSets through the validator
- Planning rewrites a Workflow's graph once per generation (idempotent)
- The run-injection node later runs the materializer, strictly before any
  node that consumes the generated secret
"""

from .admission import AdmissionResponse, AdmissionReviewer
from .exceptions import (
    CyclicTemplateError,
    InjectionError,
    MaterializationError,
    MissingTemplateError,
    ResourceNotFoundError,
    TemplateNameConflictError,
    UnknownInjectableValueError,
)
from .graph import GraphIndex, TaskGraph, Template, TemplateKind
from .load_result import LoadResult, LoadStatus
from .loader import load_manifests_from_file, load_manifests_from_yaml, parse_resource
from .materializer import SecretMaterializer, ensure_placeholder_secret
from .planner import (
    RUN_INJECTION_TEMPLATE,
    WRAPPER_TEMPLATE,
    GeneratedSecret,
    InjectionPlan,
    InjectionPlanner,
    PlannerConfig,
    add_env_var,
    add_volume_mount,
)
from .registry import ResourceRegistry
from .schema import (
    WORKFLOW_KINDS,
    Connection,
    ConnectionType,
    CronWorkflow,
    DataSet,
    DataSetType,
    DeliveryKind,
    InjectableValue,
    TemplateRef,
    Value,
    Workflow,
    WorkflowResource,
    WorkflowTemplate,
    artifact_name,
)
from .templating import ContentRenderer, MissingKeyError, TemplateParseError
from .validation import FieldError, FieldErrorType, validate_fields, validate_value

__all__ = [
    # Resources
    "Connection",
    "ConnectionType",
    "DataSet",
    "DataSetType",
    "Workflow",
    "CronWorkflow",
    "WorkflowTemplate",
    "WorkflowResource",
    "WORKFLOW_KINDS",
    "Value",
    "InjectableValue",
    "TemplateRef",
    "DeliveryKind",
    "artifact_name",
    # Graph
    "TaskGraph",
    "Template",
    "TemplateKind",
    "GraphIndex",
    # Validation and admission
    "FieldError",
    "FieldErrorType",
    "validate_fields",
    "validate_value",
    "AdmissionReviewer",
    "AdmissionResponse",
    # Rendering
    "ContentRenderer",
    "MissingKeyError",
    "TemplateParseError",
    # Planning
    "InjectionPlanner",
    "PlannerConfig",
    "InjectionPlan",
    "GeneratedSecret",
    "add_env_var",
    "add_volume_mount",
    "RUN_INJECTION_TEMPLATE",
    "WRAPPER_TEMPLATE",
    # Materialization
    "SecretMaterializer",
    "ensure_placeholder_secret",
    # Loading
    "ResourceRegistry",
    "LoadResult",
    "LoadStatus",
    "load_manifests_from_file",
    "load_manifests_from_yaml",
    "parse_resource",
    # Exceptions
    "InjectionError",
    "UnknownInjectableValueError",
    "MissingTemplateError",
    "CyclicTemplateError",
    "TemplateNameConflictError",
    "ResourceNotFoundError",
    "MaterializationError",
]
