"""
Task graph models for the external execution engine.

The execution engine owns the shape of a workflow graph; this module only
models the parts the injection planner reads or rewrites:

- Container and Script leaves (env vars, volume mounts)
- Steps composites (ordered list of parallel groups)
- DAG composites (tasks referencing other templates)
- Suspend/Resource leaves (carried through untouched)

Every model allows extra fields so that rewriting a graph never drops data
the engine understands but this package does not.

ARCHITECTURAL DECISION: graph lookups go through GraphIndex (the template
list as an arena plus a name -> position map), never by rescanning the list.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .exceptions import MissingTemplateError, TemplateNameConflictError


class GraphModel(BaseModel):
    """Base for engine-owned structures: camelCase wire names, extras kept."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    def to_manifest(self) -> dict[str, Any]:
        """Serialize to the engine's wire format.

        Only fields that were present on input (or set by the planner) are
        emitted, so an untouched graph round-trips unchanged.
        """
        return self.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)


class TemplateKind(str, Enum):
    """Node kinds of the task graph, in the engine's detection order."""

    CONTAINER = "Container"
    STEPS = "Steps"
    DAG = "DAG"
    SCRIPT = "Script"
    RESOURCE = "Resource"
    SUSPEND = "Suspend"
    UNKNOWN = "Unknown"


class SecretKeySelector(GraphModel):
    name: str
    key: str


class EnvVarSource(GraphModel):
    secret_key_ref: SecretKeySelector | None = None


class EnvVar(GraphModel):
    name: str
    value: str | None = None
    value_from: EnvVarSource | None = None


class VolumeMount(GraphModel):
    name: str
    mount_path: str
    sub_path: str | None = None
    read_only: bool | None = None


class Container(GraphModel):
    image: str | None = None
    command: list[str] = Field(default_factory=list)
    args: list[str] = Field(default_factory=list)
    env: list[EnvVar] = Field(default_factory=list)
    volume_mounts: list[VolumeMount] = Field(default_factory=list)


class ScriptTemplate(Container):
    """A container with an inline source program."""

    source: str = ""


class WorkflowStep(GraphModel):
    name: str
    template: str


class DAGTask(GraphModel):
    name: str
    template: str
    dependencies: list[str] = Field(default_factory=list)


class DAGTemplate(GraphModel):
    tasks: list[DAGTask] = Field(default_factory=list)


class SecretVolumeSource(GraphModel):
    secret_name: str


class Volume(GraphModel):
    name: str
    secret: SecretVolumeSource | None = None


class Template(GraphModel):
    """
    One node of the task graph.

    Exactly one of the kind fields is expected to be set; ``kind`` reports
    the first one found in the engine's detection order, or UNKNOWN.

    Attributes:
        name: Unique node name within the graph
        container: Container leaf
        script: Script leaf (wraps a container)
        steps: Ordered parallel groups of step references
        dag: DAG of task references
        suspend: Suspend leaf (opaque)
        resource: Resource leaf (opaque)
        daemon: Run concurrently with, and independently of, dependents
        service_account_name: Service account the node runs as
    """

    name: str = Field(min_length=1)
    container: Container | None = None
    script: ScriptTemplate | None = None
    steps: list[list[WorkflowStep]] | None = None
    dag: DAGTemplate | None = None
    suspend: dict[str, Any] | None = None
    resource: dict[str, Any] | None = None
    daemon: bool | None = None
    service_account_name: str | None = None

    @property
    def kind(self) -> TemplateKind:
        if self.container is not None:
            return TemplateKind.CONTAINER
        if self.steps is not None:
            return TemplateKind.STEPS
        if self.dag is not None:
            return TemplateKind.DAG
        if self.script is not None:
            return TemplateKind.SCRIPT
        if self.resource is not None:
            return TemplateKind.RESOURCE
        if self.suspend is not None:
            return TemplateKind.SUSPEND
        return TemplateKind.UNKNOWN

    def referenced_templates(self) -> list[str]:
        """Names of the templates this composite node refers to, in order."""
        if self.kind == TemplateKind.STEPS and self.steps is not None:
            return [step.template for group in self.steps for step in group]
        if self.kind == TemplateKind.DAG and self.dag is not None:
            return [task.template for task in self.dag.tasks]
        return []


class TaskGraph(GraphModel):
    """The engine's workflow definition: entrypoint, templates and volumes."""

    entrypoint: str = ""
    templates: list[Template] = Field(default_factory=list)
    volumes: list[Volume] = Field(default_factory=list)


class GraphIndex:
    """
    Name index over a graph's templates.

    The template list is the arena; the index maps each name to its position
    so that every lookup is O(1). The index writes through to the list it
    was built from.

    Example:
        index = GraphIndex(graph.templates)
        main = index.require("main")
        index.add(Template(name="extra", suspend={}))
    """

    def __init__(self, templates: list[Template]):
        self._templates = templates
        self._positions: dict[str, int] = {}

        for position, template in enumerate(templates):
            if template.name in self._positions:
                raise TemplateNameConflictError(
                    template.name, "template name is declared more than once"
                )
            self._positions[template.name] = position

    def __contains__(self, name: object) -> bool:
        return name in self._positions

    def __len__(self) -> int:
        return len(self._templates)

    def get(self, name: str) -> Template | None:
        position = self._positions.get(name)
        if position is None:
            return None
        return self._templates[position]

    def require(self, name: str, referenced_by: str | None = None) -> Template:
        """Get a template by name or raise MissingTemplateError."""
        template = self.get(name)
        if template is None:
            raise MissingTemplateError(name, referenced_by=referenced_by)
        return template

    def add(self, template: Template) -> None:
        if template.name in self._positions:
            raise TemplateNameConflictError(template.name, "template already exists")
        self._positions[template.name] = len(self._templates)
        self._templates.append(template)

    def replace(self, template: Template) -> None:
        position = self._positions.get(template.name)
        if position is None:
            raise MissingTemplateError(template.name)
        self._templates[position] = template
