"""Shared application context for the CLI and the MCP server.

Both front-ends build one AppContext from an EngineConfig and hand its
components to the engine explicitly.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from mcp.server.fastmcp import Context
from mcp.server.session import ServerSession

from .config import EngineConfig
from .engine import AdmissionReviewer, InjectionPlanner, ResourceRegistry, SecretMaterializer
from .engine.secrets import BackingStore, CredentialValueResolver, FileStore, SecretAuditLog

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Components shared by every command and tool invocation."""

    config: EngineConfig
    registry: ResourceRegistry
    config_store: BackingStore
    secret_store: BackingStore
    planner: InjectionPlanner
    audit_log: SecretAuditLog

    def reviewer(self) -> AdmissionReviewer:
        return AdmissionReviewer(self.registry)

    def materializer(self) -> SecretMaterializer:
        return SecretMaterializer(
            registry=self.registry,
            resolver=CredentialValueResolver(self.config_store, self.secret_store),
            secret_store=self.secret_store,
            audit_log=self.audit_log,
        )


def load_resources(registry: ResourceRegistry, manifest_paths: list[Path]) -> int:
    """
    Load manifests into the registry; later directories override earlier ones.

    Returns:
        Total number of resources loaded
    """
    if not manifest_paths:
        logger.warning(
            "No manifest directories configured. "
            "Use KUBEETL_MANIFEST_PATHS or --manifests to provide resources."
        )
        return 0

    directories: list[str | Path] = list(manifest_paths)
    result = registry.load_from_directories(directories)
    load_counts = result.unwrap()

    for directory, count in load_counts.items():
        logger.info(f"  {directory}: {count} resources")

    total = sum(load_counts.values())
    logger.info(f"Successfully loaded {total} total resources into registry")
    return total


def build_app_context(config: EngineConfig) -> AppContext:
    """Create stores, planner and registry from configuration and load manifests."""
    registry = ResourceRegistry()
    load_resources(registry, config.manifest_paths)

    return AppContext(
        config=config,
        registry=registry,
        config_store=FileStore(config.config_store, kind="ConfigMap"),
        secret_store=FileStore(config.secret_store, kind="Secret"),
        planner=InjectionPlanner(config.planner_config()),
        audit_log=SecretAuditLog(),
    )


# Type alias for MCP tool context parameter
AppContextType = Context[ServerSession, AppContext]


__all__ = ["AppContext", "AppContextType", "build_app_context", "load_resources"]
