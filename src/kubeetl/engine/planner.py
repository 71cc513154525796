"""
Workflow injection planner.

Rewrites a Workflow's task graph so that injectable values reach the nodes
that consume them:

1. A Volume backed by the Workflow's generated secret is added once.
2. A ``run-injection`` daemon node is synthesized; the execution engine runs
   it to populate the generated secret (see
   :mod:`kubeetl.engine.materializer`).
3. A ``injection-entrypoint`` Steps node wraps the original entrypoint:
   group 1 runs ``run-injection``, group 2 runs the original entrypoint.
   This sequencing is what guarantees the secret is populated before any
   consumer starts.
4. Every TemplateRef target is injected: Container/Script leaves receive env
   vars or volume mounts, Steps/DAG composites are walked recursively,
   Suspend/Resource/unknown leaves are left alone.

Planning is a pure function over in-memory models. The input graph is never
modified; any error discards the working copy so no partial graph escapes.
Planning an already planned graph converges to the same graph.

Example:
    planner = InjectionPlanner(PlannerConfig(injection_image="kubeetl/provider:1.0"))
    plan = planner.plan(workflow)
    plan.graph.entrypoint
    # 'injection-entrypoint'
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from .exceptions import (
    CyclicTemplateError,
    TemplateNameConflictError,
    UnknownInjectableValueError,
)
from .graph import (
    Container,
    EnvVar,
    EnvVarSource,
    GraphIndex,
    SecretKeySelector,
    SecretVolumeSource,
    TaskGraph,
    Template,
    TemplateKind,
    Volume,
    VolumeMount,
    WorkflowStep,
)
from .schema import InjectableValue, TemplateRef, WorkflowResource, artifact_name

logger = logging.getLogger(__name__)

RUN_INJECTION_TEMPLATE = "run-injection"
WRAPPER_TEMPLATE = "injection-entrypoint"
DEFAULT_INJECTION_IMAGE = "kubeetl/connection-provider:latest"


@dataclass(frozen=True)
class PlannerConfig:
    """
    Planner settings.

    Attributes:
        injection_image: Image of the synthesized run-injection node
    """

    injection_image: str = DEFAULT_INJECTION_IMAGE


@dataclass(frozen=True)
class GeneratedSecret:
    """The placeholder secret a planned Workflow owns; populated later."""

    name: str
    namespace: str
    data: dict[str, str] = field(default_factory=dict)

    def to_manifest(self) -> dict[str, Any]:
        return {
            "apiVersion": "v1",
            "kind": "Secret",
            "metadata": {"name": self.name, "namespace": self.namespace},
            "data": dict(self.data),
        }


@dataclass(frozen=True)
class InjectionPlan:
    """Result of planning a Workflow: the rewritten graph plus its secret."""

    graph: TaskGraph
    secret: GeneratedSecret

    @property
    def entrypoint(self) -> str:
        return self.graph.entrypoint


def add_env_var(env: list[EnvVar], env_var: EnvVar) -> list[EnvVar]:
    """Return a new env list with ``env_var`` appended unless its name is taken."""
    if any(existing.name == env_var.name for existing in env):
        return list(env)
    return [*env, env_var]


def add_volume_mount(mounts: list[VolumeMount], mount: VolumeMount) -> list[VolumeMount]:
    """Return a new mount list with ``mount`` appended unless its path is taken."""
    # Keyed by path: every injected mount shares the generated volume's name
    if any(existing.mount_path == mount.mount_path for existing in mounts):
        return list(mounts)
    return [*mounts, mount]


@dataclass
class _InjectionTarget:
    """Values to deliver for one TemplateRef, plus traversal bookkeeping."""

    values: list[InjectableValue]
    secret_name: str
    path: list[str] = field(default_factory=list)
    visited: set[str] = field(default_factory=set)


class InjectionPlanner:
    """
    Rewrites task graphs to deliver injectable values.

    The planner holds configuration only and is safe to share across
    Workflows.
    """

    def __init__(self, config: PlannerConfig | None = None):
        self.config = config or PlannerConfig()

    def plan(self, workflow: WorkflowResource) -> InjectionPlan:
        """
        Plan a Workflow: rewrite its graph and describe its generated secret.

        CronWorkflows and WorkflowTemplates are planned the same way; only
        their WorkflowSpec is rewritten.

        Raises:
            UnknownInjectableValueError: A TemplateRef names an undeclared value
            MissingTemplateError: A referenced node does not exist
            CyclicTemplateError: Steps/DAG references loop back
            TemplateNameConflictError: A user node uses a reserved name
        """
        spec = workflow.workflow_spec
        graph, _ = self.inject(
            spec.task_graph(),
            workflow_name=workflow.name,
            namespace=workflow.namespace,
            injectable_values=spec.injectable_values,
            inject_into=spec.inject_into,
            service_account=spec.injection_service_account,
        )
        secret = GeneratedSecret(name=workflow.artifact_name, namespace=workflow.namespace)
        return InjectionPlan(graph=graph, secret=secret)

    def inject(
        self,
        graph: TaskGraph,
        *,
        workflow_name: str,
        namespace: str,
        injectable_values: list[InjectableValue],
        inject_into: list[TemplateRef],
        service_account: str = "",
    ) -> tuple[TaskGraph, str]:
        """
        Rewrite ``graph`` for injection.

        Args:
            graph: The engine's task graph (left unmodified)
            workflow_name: Owning Workflow, used for the artifact name and
                the run-injection arguments
            namespace: Namespace of the Workflow
            injectable_values: Values declared by the Workflow
            inject_into: Targets and the values to deliver to each
            service_account: Service account of the run-injection node

        Returns:
            Tuple of (rewritten graph, new entrypoint name)
        """
        new_graph = graph.model_copy(deep=True)
        index = GraphIndex(new_graph.templates)
        secret_name = artifact_name(workflow_name)

        self._ensure_volume(new_graph, secret_name)
        self._wrap_entrypoint(new_graph, index, workflow_name, namespace, service_account)

        declared = {value.name: value for value in injectable_values}
        for ref in inject_into:
            values = []
            for value_name in ref.injected_values:
                value = declared.get(value_name)
                if value is None:
                    raise UnknownInjectableValueError(value_name, ref.name)
                values.append(value)

            target = _InjectionTarget(values=values, secret_name=secret_name)
            self._inject_template(index, ref.name, target, referenced_by=None)

        logger.info(
            f"Planned injection for workflow {namespace}/{workflow_name}: "
            f"{len(inject_into)} target(s), secret {secret_name}"
        )
        return new_graph, new_graph.entrypoint

    def _ensure_volume(self, graph: TaskGraph, secret_name: str) -> None:
        if any(volume.name == secret_name for volume in graph.volumes):
            return
        volume = Volume(name=secret_name, secret=SecretVolumeSource(secret_name=secret_name))
        graph.volumes = [*graph.volumes, volume]

    def _run_injection_template(
        self, workflow_name: str, namespace: str, service_account: str
    ) -> Template:
        settings: dict[str, Any] = {
            "name": RUN_INJECTION_TEMPLATE,
            "daemon": True,
            "container": Container(
                image=self.config.injection_image,
                args=["--workflow", workflow_name, "--namespace", namespace],
            ),
        }
        if service_account:
            settings["service_account_name"] = service_account
        return Template(**settings)

    def _wrap_entrypoint(
        self,
        graph: TaskGraph,
        index: GraphIndex,
        workflow_name: str,
        namespace: str,
        service_account: str,
    ) -> None:
        run_injection = self._run_injection_template(workflow_name, namespace, service_account)

        already_planned = (
            graph.entrypoint == WRAPPER_TEMPLATE
            and WRAPPER_TEMPLATE in index
            and RUN_INJECTION_TEMPLATE in index
        )
        if already_planned:
            index.replace(run_injection)
            logger.debug(f"Graph already wraps its entrypoint; refreshed {RUN_INJECTION_TEMPLATE}")
            return

        for reserved in (RUN_INJECTION_TEMPLATE, WRAPPER_TEMPLATE):
            if reserved in index:
                raise TemplateNameConflictError(reserved, "name is reserved for a generated node")

        original_entrypoint = index.require(graph.entrypoint).name
        wrapper = Template(
            name=WRAPPER_TEMPLATE,
            steps=[
                [WorkflowStep(name=RUN_INJECTION_TEMPLATE, template=RUN_INJECTION_TEMPLATE)],
                [WorkflowStep(name=original_entrypoint, template=original_entrypoint)],
            ],
        )
        index.add(run_injection)
        index.add(wrapper)
        # assignment marks the list as set so serialization keeps the new nodes
        graph.templates = graph.templates
        graph.entrypoint = WRAPPER_TEMPLATE

    def _inject_template(
        self,
        index: GraphIndex,
        name: str,
        target: _InjectionTarget,
        referenced_by: str | None,
    ) -> None:
        if name == RUN_INJECTION_TEMPLATE:
            return
        if name in target.path:
            cycle_start = target.path.index(name)
            raise CyclicTemplateError([*target.path[cycle_start:], name])
        if name in target.visited:
            return

        template = index.require(name, referenced_by=referenced_by)
        kind = template.kind

        if kind == TemplateKind.CONTAINER and template.container is not None:
            self._inject_container(template.container, target)
        elif kind == TemplateKind.SCRIPT and template.script is not None:
            self._inject_container(template.script, target)
        elif kind in (TemplateKind.STEPS, TemplateKind.DAG):
            target.path.append(name)
            for child in template.referenced_templates():
                self._inject_template(index, child, target, referenced_by=name)
            target.path.pop()
        else:
            logger.debug(f"Template '{name}' is a {kind.value} node; nothing to inject")

        target.visited.add(name)

    def _inject_container(self, container: Container, target: _InjectionTarget) -> None:
        env = container.env
        mounts = container.volume_mounts

        for value in target.values:
            if value.env_name:
                env_var = EnvVar(
                    name=value.env_name,
                    value_from=EnvVarSource(
                        secret_key_ref=SecretKeySelector(name=target.secret_name, key=value.name)
                    ),
                )
                env = add_env_var(env, env_var)
            elif value.mount_path:
                mount = VolumeMount(
                    name=target.secret_name,
                    mount_path=value.mount_path,
                    sub_path=value.name,
                )
                mounts = add_volume_mount(mounts, mount)

        if env != container.env:
            container.env = env
        if mounts != container.volume_mounts:
            container.volume_mounts = mounts


__all__ = [
    "InjectionPlanner",
    "PlannerConfig",
    "InjectionPlan",
    "GeneratedSecret",
    "add_env_var",
    "add_volume_mount",
    "RUN_INJECTION_TEMPLATE",
    "WRAPPER_TEMPLATE",
    "DEFAULT_INJECTION_IMAGE",
]
