"""
YAML manifest loader.

Reads multi-document YAML manifests and validates each document against the
resource models in :mod:`kubeetl.engine.schema`.

Features:
- Load manifests from YAML files or strings (``---`` separated documents)
- Dispatch on ``kind``; documents of kinds this engine does not own are
  skipped with a warning
- Problems are returned as LoadResult failures, never raised
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .load_result import LoadResult
from .schema import RESOURCE_ADAPTER, RESOURCE_KINDS, Resource

logger = logging.getLogger(__name__)


def parse_resource(data: dict[str, Any]) -> LoadResult[Resource]:
    """
    Validate one manifest document.

    Args:
        data: Document loaded from YAML

    Returns:
        LoadResult.success(resource) if valid
        LoadResult.failure(error_message) with validation errors
    """
    kind = data.get("kind")
    if kind not in RESOURCE_KINDS:
        return LoadResult.failure(f"Unsupported resource kind: {kind!r}")

    try:
        resource = RESOURCE_ADAPTER.validate_python(data)
    except ValidationError as e:
        return LoadResult.failure(f"{kind} validation failed:\n{e}")

    return LoadResult.success(resource)


def load_manifests_from_yaml(
    yaml_content: str, source: str = "<string>"
) -> LoadResult[list[Resource]]:
    """
    Load and validate every resource in a YAML string.

    Args:
        yaml_content: One or more YAML documents
        source: Source identifier for error messages (default: "<string>")

    Returns:
        LoadResult.success(resources) in document order; the whole load fails
        if any owned document is invalid

    Example:
        result = load_manifests_from_yaml('''
        apiVersion: etl.dataworkz.nl/v1alpha1
        kind: Connection
        metadata:
          name: pg
        spec:
          type: postgres
          credentials:
            host: db.internal
        ''')
        result.unwrap()[0].name
        # 'pg'
    """
    try:
        documents = list(yaml.safe_load_all(yaml_content))
    except yaml.YAMLError as e:
        return LoadResult.failure(f"Invalid YAML syntax in {source}: {e}")

    resources: list[Resource] = []
    for position, document in enumerate(documents, start=1):
        if document is None:
            continue

        if not isinstance(document, dict):
            return LoadResult.failure(
                f"Document {position} in {source} must be a YAML dictionary, "
                f"got {type(document).__name__}"
            )

        kind = document.get("kind")
        if kind not in RESOURCE_KINDS:
            logger.warning(f"Skipping document {position} in {source}: unsupported kind {kind!r}")
            continue

        result = parse_resource(document)
        if not result.is_success:
            return LoadResult.failure(f"Document {position} in {source}: {result.error}")

        resources.append(result.unwrap())

    return LoadResult.success(resources, metadata={"source": source})


def load_manifests_from_file(file_path: str | Path) -> LoadResult[list[Resource]]:
    """
    Load and validate every resource in a YAML file.

    Returns:
        LoadResult.success(resources) if the file is valid
        LoadResult.failure(error_message) otherwise
    """
    path = Path(file_path)

    if not path.exists():
        return LoadResult.failure(f"Manifest file not found: {file_path}")

    if not path.is_file():
        return LoadResult.failure(f"Path is not a file: {file_path}")

    try:
        with open(path, encoding="utf-8") as f:
            yaml_content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        return LoadResult.failure(f"Failed to read file '{file_path}': {e}")

    return load_manifests_from_yaml(yaml_content, source=str(file_path))
