"""kubeetl command-line interface (Typer).

Two applications are exposed:

- ``kubeetl``: operator commands (inject, validate, plan, serve)
- ``connection-provider``: the single command the run-injection node runs,
  ``connection-provider --workflow <name> --namespace <ns>``

Every failure is printed to stderr and exits with status 1.
"""

import asyncio
import dataclasses
from enum import Enum
from importlib.metadata import version as package_version
from pathlib import Path
from typing import Annotated

import typer

from .config import EngineConfig, configure_logging
from .context import AppContext, build_app_context
from .engine import (
    InjectionError,
    MaterializationError,
    ResourceNotFoundError,
    artifact_name,
    ensure_placeholder_secret,
    load_manifests_from_file,
)
from .engine.secrets import SecretError
from .formatting import format_plan_yaml

app = typer.Typer(
    name="kubeetl",
    help="Credential resolution and workflow injection for ETL workflows.",
    no_args_is_help=True,
)
provider_app = typer.Typer(
    name="connection-provider",
    help="Populate a Workflow's generated secret.",
    add_completion=False,
)

WorkflowOption = Annotated[str, typer.Option("--workflow", "-w", help="Workflow name")]
NamespaceOption = Annotated[str, typer.Option("--namespace", "-n", help="Workflow namespace")]


class WorkflowKind(str, Enum):
    WORKFLOW = "Workflow"
    CRON_WORKFLOW = "CronWorkflow"
    WORKFLOW_TEMPLATE = "WorkflowTemplate"


KindOption = Annotated[
    WorkflowKind | None,
    typer.Option(
        "--kind",
        "-k",
        help="Workflow kind (default: first of Workflow, CronWorkflow, WorkflowTemplate)",
    ),
]
ManifestsOption = Annotated[
    list[Path] | None,
    typer.Option(
        "--manifests",
        "-m",
        help="Manifest directory (repeatable, overrides KUBEETL_MANIFEST_PATHS)",
    ),
]
ConfigStoreOption = Annotated[
    Path | None,
    typer.Option("--config-store", help="Config store root (overrides KUBEETL_CONFIG_STORE)"),
]
SecretStoreOption = Annotated[
    Path | None,
    typer.Option("--secret-store", help="Secret store root (overrides KUBEETL_SECRET_STORE)"),
]
LogLevelOption = Annotated[
    str | None,
    typer.Option("--log-level", help="DEBUG, INFO, WARNING, ERROR or CRITICAL"),
]


def _fail(message: str) -> typer.Exit:
    typer.echo(f"Error: {message}", err=True)
    return typer.Exit(1)


def _app_context(
    manifests: list[Path] | None,
    config_store: Path | None,
    secret_store: Path | None,
    log_level: str | None,
) -> AppContext:
    """Build the AppContext from the environment plus command-line overrides."""
    configure_logging(log_level)

    config = EngineConfig.from_env()
    overrides: dict[str, object] = {}
    if manifests:
        overrides["manifest_paths"] = [path.expanduser() for path in manifests]
    if config_store is not None:
        overrides["config_store"] = config_store.expanduser()
    if secret_store is not None:
        overrides["secret_store"] = secret_store.expanduser()
    if log_level is not None:
        overrides["log_level"] = log_level

    return build_app_context(dataclasses.replace(config, **overrides))


def _run_injection(
    workflow: str,
    namespace: str,
    kind: WorkflowKind | None,
    manifests: list[Path] | None,
    config_store: Path | None,
    secret_store: Path | None,
    log_level: str | None,
) -> None:
    app_ctx = _app_context(manifests, config_store, secret_store, log_level)
    kind_name = kind.value if kind is not None else None

    try:
        rendered = asyncio.run(app_ctx.materializer().populate(workflow, namespace, kind_name))
    except (ResourceNotFoundError, MaterializationError) as e:
        raise _fail(str(e)) from e

    secret_name = artifact_name(workflow)
    typer.echo(f"Populated secret {namespace}/{secret_name}: {', '.join(sorted(rendered))}")


@provider_app.command()
def provide(
    workflow: WorkflowOption,
    namespace: NamespaceOption = "default",
    kind: KindOption = None,
    manifests: ManifestsOption = None,
    config_store: ConfigStoreOption = None,
    secret_store: SecretStoreOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Render every injectable value of a Workflow into its generated secret."""
    _run_injection(workflow, namespace, kind, manifests, config_store, secret_store, log_level)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Annotated[bool, typer.Option("--version", help="Show version")] = False,
) -> None:
    """kubeetl CLI."""
    if version:
        typer.echo(f"kubeetl {package_version('kubeetl')}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


@app.command()
def inject(
    workflow: WorkflowOption,
    namespace: NamespaceOption = "default",
    kind: KindOption = None,
    manifests: ManifestsOption = None,
    config_store: ConfigStoreOption = None,
    secret_store: SecretStoreOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Populate a Workflow's generated secret (same as connection-provider)."""
    _run_injection(workflow, namespace, kind, manifests, config_store, secret_store, log_level)


@app.command()
def validate(
    manifest: Annotated[Path, typer.Argument(help="YAML manifest to review")],
    manifests: ManifestsOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Run admission review on every resource of a manifest file.

    Types declared in the manifest itself are used alongside the loaded ones.
    """
    app_ctx = _app_context(manifests, None, None, log_level)

    load_result = load_manifests_from_file(manifest)
    if load_result.is_failure:
        raise _fail(load_result.error or f"failed to load {manifest}")

    resources = load_result.unwrap()
    for resource in resources:
        app_ctx.registry.register(resource, on_duplicate="overwrite")

    reviewer = app_ctx.reviewer()
    rejected = 0
    for resource in resources:
        response = reviewer.review(resource)
        if response.allowed:
            typer.echo(f"OK {resource.kind} {resource.namespace}/{resource.name}")
        else:
            rejected += 1
            typer.echo(f"DENIED {response.message}", err=True)

    if rejected:
        raise _fail(f"{rejected} of {len(resources)} resource(s) rejected")


@app.command()
def plan(
    workflow: WorkflowOption,
    namespace: NamespaceOption = "default",
    kind: KindOption = None,
    create_secret: Annotated[
        bool, typer.Option("--create-secret", help="Create the empty generated secret")
    ] = False,
    manifests: ManifestsOption = None,
    secret_store: SecretStoreOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Print the task graph a Workflow is rewritten to, as YAML."""
    app_ctx = _app_context(manifests, None, secret_store, log_level)
    kind_name = kind.value if kind is not None else None

    try:
        definition = app_ctx.registry.get_workflow_resource(namespace, workflow, kind_name)
        injection_plan = app_ctx.planner.plan(definition)
    except (ResourceNotFoundError, InjectionError) as e:
        raise _fail(str(e)) from e

    if create_secret:
        try:
            asyncio.run(ensure_placeholder_secret(app_ctx.secret_store, injection_plan))
        except SecretError as e:
            raise _fail(str(e)) from e

    typer.echo(format_plan_yaml(injection_plan, include_secret=create_secret), nl=False)


@app.command()
def serve(log_level: LogLevelOption = None) -> None:
    """Start the MCP server on stdio (resources come from KUBEETL_* variables)."""
    from . import tools  # noqa: F401 - imported for side effects (tool registration)
    from .server import main as server_main

    server_main(log_level)


__all__ = ["app", "provider_app"]
