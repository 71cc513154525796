"""Shared formatting utilities for CLI output and MCP tool responses.

- Markdown: human-readable lists
- JSON-ready dicts: structured data for programmatic access
- YAML: manifests as the execution engine consumes them
"""

from typing import Any

import yaml

from .engine import AdmissionResponse, FieldError, InjectionPlan
from .engine.schema import CronWorkflow, Resource


def resource_summary(resource: Resource) -> dict[str, Any]:
    summary: dict[str, Any] = {
        "kind": resource.kind,
        "namespace": resource.namespace,
        "name": resource.name,
    }
    spec_type = _spec_type(resource)
    if spec_type:
        summary["type"] = spec_type
    if isinstance(resource, CronWorkflow):
        summary["schedule"] = resource.spec.schedule
    return summary


def _spec_type(resource: Resource) -> str | None:
    return getattr(getattr(resource, "spec", None), "type", None) or None


def format_resource_list_markdown(
    resources: list[Resource], kind: str | None = None, namespace: str | None = None
) -> str:
    """Format a resource list as markdown.

    Args:
        resources: Resources to list
        kind: Kind filter used (for display)
        namespace: Namespace filter used (for display)
    """
    filters = [f"kind={kind}" if kind else "", f"namespace={namespace}" if namespace else ""]
    filter_msg = ", ".join(f for f in filters if f)

    if not resources:
        return f"No resources found{f' ({filter_msg})' if filter_msg else ''}"

    header = f"## Resources ({len(resources)})"
    if filter_msg:
        header += f"\n**Filtered by**: {filter_msg}"

    lines = []
    for resource in resources:
        line = f"- **{resource.kind}** {resource.namespace}/{resource.name}"
        spec_type = _spec_type(resource)
        if spec_type:
            line += f" (type: {spec_type})"
        lines.append(line)
    return f"{header}\n\n" + "\n".join(lines)


def field_error_dict(error: FieldError) -> dict[str, Any]:
    return {
        "type": error.type.value,
        "field": error.field,
        "detail": error.detail,
        "message": str(error),
    }


def format_admission_response(resource: Resource, response: AdmissionResponse) -> dict[str, Any]:
    return {
        **resource_summary(resource),
        "allowed": response.allowed,
        "message": response.message,
        "errors": [field_error_dict(error) for error in response.errors],
    }


def format_plan_yaml(plan: InjectionPlan, include_secret: bool = False) -> str:
    """Render a plan as YAML: the rewritten graph, optionally followed by the secret."""
    documents = [plan.graph.to_manifest()]
    if include_secret:
        documents.append(plan.secret.to_manifest())
    return yaml.safe_dump_all(documents, sort_keys=False, default_flow_style=False)
