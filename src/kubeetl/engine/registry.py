"""
Resource registry for loaded manifests.

This module provides the ResourceRegistry class, the in-memory lookup the
admission reviewer, the planner front-ends and the Secret Materializer read
Connections, DataSets, their types and Workflows from.

Features:
- Register resources keyed by (kind, namespace, name) with duplicate detection
- Typed retrieval (raises ResourceNotFoundError) and lookup (returns None)
- List resources, optionally filtered by kind and namespace
- Load manifests from a directory (recursive)
- Load from multiple directories, later directories overriding earlier ones
- Track the source directory of each resource
"""

import logging
from pathlib import Path
from typing import Literal, TypeVar

from .exceptions import ResourceNotFoundError
from .load_result import LoadResult
from .loader import load_manifests_from_file
from .schema import (
    WORKFLOW_KINDS,
    Connection,
    ConnectionType,
    DataSet,
    DataSetType,
    Resource,
    Workflow,
    WorkflowResource,
)

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Resource)

ResourceKey = tuple[str, str, str]


def resource_key(resource: Resource) -> ResourceKey:
    return (resource.kind, resource.namespace, resource.name)


class ResourceRegistry:
    """
    Central registry of declared resources.

    Example:
        registry = ResourceRegistry()
        registry.load_from_directory("manifests/")

        workflow = registry.get_workflow_resource("default", "nightly-load")
        connection_type = registry.find_connection_type("default", "postgres")
    """

    def __init__(self) -> None:
        self._resources: dict[ResourceKey, Resource] = {}
        self._sources: dict[ResourceKey, Path] = {}

    def register(
        self,
        resource: Resource,
        source_dir: Path | None = None,
        on_duplicate: Literal["error", "overwrite"] = "error",
    ) -> None:
        """
        Register a resource.

        Args:
            resource: Validated resource model
            source_dir: Optional source directory path for tracking
            on_duplicate: "error" raises on an existing key, "overwrite"
                replaces the existing resource

        Raises:
            ValueError: If the resource is already registered and
                on_duplicate is "error"
        """
        key = resource_key(resource)
        kind, namespace, name = key

        if key in self._resources:
            if on_duplicate == "error":
                raise ValueError(
                    f"{kind} '{name}' already registered in namespace '{namespace}'. "
                    "Use clear() or unregister() first."
                )
            logger.info(
                f"Overwriting {kind} {namespace}/{name} from "
                f"{self._sources.get(key, 'unknown')} with version from {source_dir or 'memory'}"
            )

        self._resources[key] = resource
        if source_dir is not None:
            self._sources[key] = source_dir
        else:
            self._sources.pop(key, None)

        logger.info(f"Registered {kind}: {namespace}/{name}")

    def unregister(self, kind: str, namespace: str, name: str) -> None:
        """
        Raises:
            ResourceNotFoundError: If the resource is not registered
        """
        key = (kind, namespace, name)
        if key not in self._resources:
            raise ResourceNotFoundError(kind, namespace, name)

        del self._resources[key]
        self._sources.pop(key, None)
        logger.info(f"Unregistered {kind}: {namespace}/{name}")

    def find(self, kind: str, namespace: str, name: str) -> Resource | None:
        return self._resources.get((kind, namespace, name))

    def get(self, kind: str, namespace: str, name: str) -> Resource:
        """
        Get a resource by key.

        Raises:
            ResourceNotFoundError: If the resource is not registered
        """
        resource = self.find(kind, namespace, name)
        if resource is None:
            raise ResourceNotFoundError(kind, namespace, name)
        return resource

    def _find_typed(self, model: type[R], namespace: str, name: str) -> R | None:
        kind = model.model_fields["kind"].default
        resource = self.find(kind, namespace, name)
        if resource is None:
            return None
        if not isinstance(resource, model):
            raise TypeError(f"{kind} {namespace}/{name} is a {type(resource).__name__}")
        return resource

    def _get_typed(self, model: type[R], namespace: str, name: str) -> R:
        resource = self._find_typed(model, namespace, name)
        if resource is None:
            raise ResourceNotFoundError(model.model_fields["kind"].default, namespace, name)
        return resource

    def get_workflow(self, namespace: str, name: str) -> Workflow:
        return self._get_typed(Workflow, namespace, name)

    def get_workflow_resource(
        self, namespace: str, name: str, kind: str | None = None
    ) -> WorkflowResource:
        """
        Get a Workflow, CronWorkflow or WorkflowTemplate by name.

        Without ``kind`` the first match in WORKFLOW_KINDS order wins.

        Raises:
            ResourceNotFoundError: No workflow resource of that name (and kind)
            ValueError: ``kind`` is not a workflow kind
        """
        if kind is not None and kind not in WORKFLOW_KINDS:
            raise ValueError(f"{kind} is not one of {', '.join(WORKFLOW_KINDS)}")

        for candidate in WORKFLOW_KINDS if kind is None else (kind,):
            resource = self.find(candidate, namespace, name)
            if isinstance(resource, WorkflowResource):
                return resource
        raise ResourceNotFoundError(kind or "Workflow", namespace, name)

    def get_connection(self, namespace: str, name: str) -> Connection:
        return self._get_typed(Connection, namespace, name)

    def get_data_set(self, namespace: str, name: str) -> DataSet:
        return self._get_typed(DataSet, namespace, name)

    def find_connection_type(self, namespace: str, name: str) -> ConnectionType | None:
        return self._find_typed(ConnectionType, namespace, name)

    def find_data_set_type(self, namespace: str, name: str) -> DataSetType | None:
        return self._find_typed(DataSetType, namespace, name)

    def list_resources(
        self, kind: str | None = None, namespace: str | None = None
    ) -> list[Resource]:
        """
        List registered resources sorted by (kind, namespace, name).

        Args:
            kind: Optional kind filter
            namespace: Optional namespace filter
        """
        return [
            self._resources[key]
            for key in sorted(self._resources)
            if (kind is None or key[0] == kind) and (namespace is None or key[1] == namespace)
        ]

    def get_source(self, kind: str, namespace: str, name: str) -> Path | None:
        """Source directory a resource was loaded from, or None if not tracked."""
        return self._sources.get((kind, namespace, name))

    def load_from_directory(
        self,
        directory: str | Path,
        on_duplicate: Literal["error", "overwrite"] = "error",
    ) -> LoadResult[int]:
        """
        Load every manifest under a directory (recursive).

        Files that fail to load and duplicate resources (with
        on_duplicate="error") are logged and skipped.

        Returns:
            LoadResult.success(count) with number of resources registered
            LoadResult.failure(error_message) if the directory is unusable
        """
        dir_path = Path(directory)

        logger.info(f"Loading manifests from directory: {dir_path}")

        if not dir_path.exists():
            error_msg = f"Directory not found: {dir_path}"
            logger.error(error_msg)
            return LoadResult.failure(error_msg)

        if not dir_path.is_dir():
            error_msg = f"Not a directory: {dir_path}"
            logger.error(error_msg)
            return LoadResult.failure(error_msg)

        yaml_files = sorted(list(dir_path.glob("**/*.yaml")) + list(dir_path.glob("**/*.yml")))

        loaded_count = 0
        for yaml_file in yaml_files:
            result = load_manifests_from_file(yaml_file)
            if not result.is_success:
                logger.warning(f"Failed to load manifests from {yaml_file.name}: {result.error}")
                continue

            for resource in result.unwrap():
                try:
                    self.register(resource, source_dir=dir_path, on_duplicate=on_duplicate)
                    loaded_count += 1
                except ValueError as e:
                    logger.warning(f"Skipping duplicate resource: {e}")

        logger.info(
            f"Successfully loaded {loaded_count} resources from {dir_path} "
            f"({len(yaml_files)} YAML files found)"
        )
        return LoadResult.success(loaded_count)

    def load_from_directories(self, directories: list[str | Path]) -> LoadResult[dict[str, int]]:
        """
        Load manifests from several directories in priority order.

        Later directories override resources loaded from earlier ones.
        Missing directories are logged and counted as 0.

        Returns:
            LoadResult.success(dict) with resources loaded per directory
            LoadResult.failure(error_message) if no directories were given
        """
        if not directories:
            return LoadResult.failure("No directories provided")

        results: dict[str, int] = {}
        for directory in directories:
            dir_path = Path(directory).expanduser().resolve()
            result = self.load_from_directory(dir_path, on_duplicate="overwrite")
            results[str(dir_path)] = result.unwrap_or(0)

        logger.info(
            f"Successfully loaded {sum(results.values())} total resources "
            f"from {len(results)} directories"
        )
        return LoadResult.success(results)

    def clear(self) -> None:
        """Clear all registered resources."""
        count = len(self._resources)
        self._resources.clear()
        self._sources.clear()
        logger.info(f"Cleared {count} resources from registry")

    def __len__(self) -> int:
        return len(self._resources)

    def __contains__(self, key: object) -> bool:
        return key in self._resources

    def __repr__(self) -> str:
        return f"<ResourceRegistry: {len(self._resources)} resources>"
