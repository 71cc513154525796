"""
Secret Materializer.

Populates a Workflow's generated secret: every injectable value is rendered
from its Connection or DataSet and the results are written to the secret in
one update. This is what the ``run-injection`` node runs.

Rendering data:
    Connection-backed:  {<credential>: <value>, ...}
    DataSet-backed:     {"metadata": {<field>: <value>, ...},
                         "connection": {<credential>: <value>, ...}}

The ``connection`` map is present only when the DataSet references a
Connection. All values are rendered before anything is written, so a failure
never leaves a partially populated secret.
"""

import logging
from typing import Any

from .exceptions import MaterializationError
from .planner import InjectionPlan
from .registry import ResourceRegistry
from .schema import Connection, DataSet, InjectableValue, SourceKind, Value, WorkflowResource
from .secrets import BackingStore, CredentialValueResolver, SecretAuditLog, SecretError
from .secrets.resolver import value_origin
from .templating import ContentRenderer, RenderError

logger = logging.getLogger(__name__)


class SecretMaterializer:
    """
    Resolves, renders and writes the injectable values of one Workflow.

    Example:
        materializer = SecretMaterializer(registry, resolver, secret_store)
        keys = await materializer.populate("nightly-load", "etl")
    """

    def __init__(
        self,
        registry: ResourceRegistry,
        resolver: CredentialValueResolver,
        secret_store: BackingStore,
        renderer: ContentRenderer | None = None,
        audit_log: SecretAuditLog | None = None,
    ):
        """
        Args:
            registry: Source of Workflows, Connections and DataSets
            resolver: Resolves declared values against the backing stores
            secret_store: Store the generated secret is written to
            renderer: Content renderer (default: a new ContentRenderer)
            audit_log: Optional audit log for credential reads
        """
        self.registry = registry
        self.resolver = resolver
        self.secret_store = secret_store
        self.renderer = renderer or ContentRenderer()
        self.audit_log = audit_log

    async def populate(
        self, workflow_name: str, namespace: str, kind: str | None = None
    ) -> dict[str, str]:
        """
        Render every injectable value of a Workflow and write the secret.

        Args:
            workflow_name: Workflow to populate
            namespace: Namespace of the Workflow and its resources
            kind: Workflow, CronWorkflow or WorkflowTemplate; by default the
                first kind with a resource of that name

        Returns:
            The rendered map that was written (key = injectable value name).
            Callers must not log it.

        Raises:
            ResourceNotFoundError: The Workflow does not exist
            MaterializationError: A value could not be resolved or rendered,
                or the secret could not be written
        """
        workflow = self.registry.get_workflow_resource(namespace, workflow_name, kind)
        secret_name = workflow.artifact_name

        # resolved resources are shared between injectable values of this call
        cache: dict[tuple[str, str], dict[str, str]] = {}

        rendered: dict[str, str] = {}
        for injectable in workflow.workflow_spec.injectable_values:
            try:
                data = await self._render_data(workflow, injectable, cache)
                rendered[injectable.name] = self.renderer.render(injectable.content, data)
            except (SecretError, RenderError, LookupError) as e:
                raise MaterializationError(workflow_name, injectable.name, str(e)) from e

        try:
            existing = await self.secret_store.get(namespace, secret_name) or {}
            await self.secret_store.put(namespace, secret_name, {**existing, **rendered})
        except SecretError as e:
            raise MaterializationError(
                workflow_name, None, f"failed to write secret '{secret_name}': {e}"
            ) from e

        logger.info(
            f"Populated secret {namespace}/{secret_name} for workflow {workflow_name} "
            f"with {len(rendered)} value(s): {sorted(rendered)}"
        )
        return rendered

    async def _render_data(
        self,
        workflow: WorkflowResource,
        injectable: InjectableValue,
        cache: dict[tuple[str, str], dict[str, str]],
    ) -> dict[str, Any]:
        namespace = workflow.namespace

        if injectable.source_kind == SourceKind.CONNECTION:
            connection = self.registry.get_connection(namespace, injectable.source_name)
            return await self._resolve_connection(workflow, injectable, connection, cache)

        data_set = self.registry.get_data_set(namespace, injectable.source_name)
        data: dict[str, dict[str, str]] = {
            "metadata": await self._resolve_data_set(workflow, injectable, data_set, cache)
        }
        if data_set.spec.connection_ref is not None:
            connection = self.registry.get_connection(namespace, data_set.spec.connection_ref.name)
            data["connection"] = await self._resolve_connection(
                workflow, injectable, connection, cache
            )
        return data

    async def _resolve_connection(
        self,
        workflow: WorkflowResource,
        injectable: InjectableValue,
        connection: Connection,
        cache: dict[tuple[str, str], dict[str, str]],
    ) -> dict[str, str]:
        key = ("Connection", connection.name)
        if key not in cache:
            cache[key] = await self._resolve_fields(
                workflow,
                injectable,
                f"Connection/{connection.name}",
                connection.spec.credentials,
                connection.namespace,
            )
        return cache[key]

    async def _resolve_data_set(
        self,
        workflow: WorkflowResource,
        injectable: InjectableValue,
        data_set: DataSet,
        cache: dict[tuple[str, str], dict[str, str]],
    ) -> dict[str, str]:
        key = ("DataSet", data_set.name)
        if key not in cache:
            cache[key] = await self._resolve_fields(
                workflow,
                injectable,
                f"DataSet/{data_set.name}",
                data_set.spec.metadata,
                data_set.namespace,
            )
        return cache[key]

    async def _resolve_fields(
        self,
        workflow: WorkflowResource,
        injectable: InjectableValue,
        resource: str,
        values: dict[str, Value],
        namespace: str,
    ) -> dict[str, str]:
        resolved: dict[str, str] = {}
        for field_name, value in values.items():
            origin = value_origin(value).value
            try:
                resolved[field_name] = await self.resolver.resolve(value, namespace, field_name)
            except SecretError as e:
                await self._audit(workflow, injectable, resource, field_name, origin, False, str(e))
                raise
            await self._audit(workflow, injectable, resource, field_name, origin, True, None)
        return resolved

    async def _audit(
        self,
        workflow: WorkflowResource,
        injectable: InjectableValue,
        resource: str,
        field_name: str,
        origin: str,
        success: bool,
        error_message: str | None,
    ) -> None:
        if self.audit_log is None:
            return
        await self.audit_log.log_access(
            workflow_name=workflow.name,
            injectable_value=injectable.name,
            resource=resource,
            field=field_name,
            origin=origin,
            success=success,
            error_message=error_message,
        )


async def ensure_placeholder_secret(store: BackingStore, plan: InjectionPlan) -> bool:
    """
    Create the empty generated secret of a plan if it does not exist yet.

    Existing data is never overwritten.

    Returns:
        True if the secret was created, False if it already existed
    """
    secret = plan.secret
    if await store.get(secret.namespace, secret.name) is not None:
        logger.debug(f"Secret {secret.namespace}/{secret.name} already exists")
        return False

    await store.put(secret.namespace, secret.name, dict(secret.data))
    logger.info(f"Created placeholder secret {secret.namespace}/{secret.name}")
    return True
