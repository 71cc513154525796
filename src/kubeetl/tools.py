"""MCP tool implementations for kubeetl.

Exposes resource inspection, manifest validation, injection planning and
secret population over the MCP protocol.

- Tool functions decorated with @mcp.tool()
- Flat parameter signatures with Annotated types for validation
- Async functions for all tools
- Docstrings become tool descriptions
- Secret values never leave the server; tools return keys and names only
"""

import json
from typing import Annotated, Any, Literal

from mcp.types import ToolAnnotations
from pydantic import Field

from .context import AppContextType
from .engine import (
    InjectionError,
    MaterializationError,
    ResourceNotFoundError,
    artifact_name,
    load_manifests_from_yaml,
)
from .formatting import (
    format_admission_response,
    format_resource_list_markdown,
    resource_summary,
)
from .server import mcp

WorkflowKind = Literal["Workflow", "CronWorkflow", "WorkflowTemplate"]
ResourceKind = Literal[
    "Connection",
    "ConnectionType",
    "DataSet",
    "DataSetType",
    "Workflow",
    "CronWorkflow",
    "WorkflowTemplate",
]


@mcp.tool(
    annotations=ToolAnnotations(
        title="List Resources",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def list_resources(
    kind: Annotated[
        ResourceKind | None,
        Field(description="Only list resources of this kind"),
    ] = None,
    namespace: Annotated[
        str | None,
        Field(description="Only list resources in this namespace", max_length=253),
    ] = None,
    format: Annotated[  # noqa: A002
        Literal["json", "markdown"],
        Field(description="Output format"),
    ] = "json",
    *,
    ctx: AppContextType,
) -> str:
    """List loaded resources. Optional: kind, namespace, format (json|markdown)."""
    app_ctx = ctx.request_context.lifespan_context
    resources = app_ctx.registry.list_resources(kind=kind, namespace=namespace)

    if format == "markdown":
        return format_resource_list_markdown(resources, kind, namespace)
    return json.dumps([resource_summary(resource) for resource in resources])


@mcp.tool(
    annotations=ToolAnnotations(
        title="Validate Manifest",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def validate_manifest(
    manifest_yaml: Annotated[
        str,
        Field(description="One or more YAML documents (--- separated)", min_length=1),
    ],
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Run admission review on every resource in a YAML manifest. Required: manifest_yaml."""
    app_ctx = ctx.request_context.lifespan_context

    load_result = load_manifests_from_yaml(manifest_yaml, source="<manifest>")
    if not load_result.is_success:
        return {"valid": False, "error": load_result.error, "resources": []}

    reviewer = app_ctx.reviewer()
    results = []
    for resource in load_result.unwrap():
        results.append(format_admission_response(resource, reviewer.review(resource)))

    return {"valid": all(result["allowed"] for result in results), "resources": results}


@mcp.tool(
    annotations=ToolAnnotations(
        title="Plan Workflow",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def plan_workflow(
    workflow: Annotated[
        str,
        Field(description="Workflow name (use list_resources() to discover)", min_length=1),
    ],
    namespace: Annotated[str, Field(description="Workflow namespace", min_length=1)] = "default",
    kind: Annotated[
        WorkflowKind | None,
        Field(description="Workflow kind; default is the first match by name"),
    ] = None,
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Show the task graph a Workflow is rewritten to. Required: workflow.

    Optional: namespace, kind (Workflow, CronWorkflow or WorkflowTemplate).
    """
    app_ctx = ctx.request_context.lifespan_context

    try:
        definition = app_ctx.registry.get_workflow_resource(namespace, workflow, kind)
        plan = app_ctx.planner.plan(definition)
    except (ResourceNotFoundError, InjectionError) as e:
        return {"status": "failure", "error": str(e)}

    return {
        "status": "success",
        "entrypoint": plan.entrypoint,
        "graph": plan.graph.to_manifest(),
        "secret": {"name": plan.secret.name, "namespace": plan.secret.namespace},
    }


@mcp.tool(
    annotations=ToolAnnotations(
        title="Populate Workflow Secret",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=True,
    )
)
async def populate_workflow_secret(
    workflow: Annotated[
        str,
        Field(description="Workflow name (use list_resources() to discover)", min_length=1),
    ],
    namespace: Annotated[str, Field(description="Workflow namespace", min_length=1)] = "default",
    kind: Annotated[
        WorkflowKind | None,
        Field(description="Workflow kind; default is the first match by name"),
    ] = None,
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Render a Workflow's injectable values into its generated secret. Returns keys only."""
    app_ctx = ctx.request_context.lifespan_context

    try:
        rendered = await app_ctx.materializer().populate(workflow, namespace, kind)
    except (ResourceNotFoundError, MaterializationError) as e:
        return {"status": "failure", "error": str(e)}

    return {
        "status": "success",
        "secret": {"name": artifact_name(workflow), "namespace": namespace},
        "keys": sorted(rendered),
    }
