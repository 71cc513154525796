"""Backing store abstraction and implementations.

A backing store holds named objects per namespace, each object being a flat
``key -> string`` map. Two stores are used side by side: a config store
(non-confidential) and a secret store. They differ only in how callers treat
their contents, never in behavior.

Stores:
    - BackingStore: Abstract base class defining the store interface
    - InMemoryStore: Dict-backed store for tests and embedding
    - FileStore: One YAML file per object under ``<root>/<namespace>/<name>.yaml``

Example:
    >>> store = InMemoryStore("Secret")
    >>> await store.put("default", "db", {"password": "hunter2"})
    >>> (await store.get("default", "db"))["password"]
    'hunter2'
"""

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

import yaml

from .exceptions import BackingStoreError

logger = logging.getLogger(__name__)


class BackingStore(ABC):
    """
    Abstract base class for config/secret backing stores.

    All methods are async so that network-backed stores can be added without
    changing callers.

    Attributes:
        kind: Object kind served by this store ("ConfigMap" or "Secret"),
              used in error messages
    """

    kind: str

    @abstractmethod
    async def get(self, namespace: str, name: str) -> dict[str, str] | None:
        """
        Fetch an object's data.

        Args:
            namespace: Object namespace
            name: Object name

        Returns:
            A copy of the object's key/value data, or None if it does not exist

        Raises:
            BackingStoreError: If the store cannot be read
        """
        pass

    @abstractmethod
    async def put(self, namespace: str, name: str, data: dict[str, str]) -> None:
        """
        Create or replace an object's data in a single write.

        Raises:
            BackingStoreError: If the store cannot be written
        """
        pass


class InMemoryStore(BackingStore):
    """Backing store held in a dict keyed by (namespace, name)."""

    def __init__(self, kind: str = "Secret") -> None:
        self.kind = kind
        self._objects: dict[tuple[str, str], dict[str, str]] = {}

    async def get(self, namespace: str, name: str) -> dict[str, str] | None:
        data = self._objects.get((namespace, name))
        if data is None:
            return None
        return dict(data)

    async def put(self, namespace: str, name: str, data: dict[str, str]) -> None:
        self._objects[(namespace, name)] = dict(data)

    def __contains__(self, key: object) -> bool:
        return key in self._objects


class FileStore(BackingStore):
    """
    Backing store persisted as YAML files.

    Layout:
        <root>/<namespace>/<name>.yaml containing ``data: {key: value}``

    Writes go to a temporary file in the same directory and are renamed into
    place, so readers never observe a half-written object.
    """

    def __init__(self, root: str | Path, kind: str = "Secret") -> None:
        self.root = Path(root)
        self.kind = kind

    def __repr__(self) -> str:
        return f"FileStore({self.kind}, {self.root})"

    def _path(self, namespace: str, name: str) -> Path:
        for part in (namespace, name):
            if not part or "/" in part or part in (".", ".."):
                raise BackingStoreError(repr(self), f"invalid object path component: {part!r}")
        return self.root / namespace / f"{name}.yaml"

    async def get(self, namespace: str, name: str) -> dict[str, str] | None:
        path = self._path(namespace, name)
        if not path.exists():
            return None

        try:
            with open(path, encoding="utf-8") as f:
                document = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise BackingStoreError(repr(self), f"failed to read {path}: {e}") from e

        if not isinstance(document, dict):
            raise BackingStoreError(repr(self), f"{path} must contain a YAML mapping")

        data = document.get("data") or {}
        if not isinstance(data, dict):
            raise BackingStoreError(repr(self), f"'data' in {path} must be a mapping")

        return {str(key): "" if value is None else str(value) for key, value in data.items()}

    async def put(self, namespace: str, name: str, data: dict[str, str]) -> None:
        path = self._path(namespace, name)
        document = {"kind": self.kind, "metadata": {"name": name, "namespace": namespace}}
        document["data"] = dict(data)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    yaml.safe_dump(document, f, sort_keys=True)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise BackingStoreError(repr(self), f"failed to write {path}: {e}") from e

        logger.debug(f"Wrote {self.kind} {namespace}/{name} ({len(data)} keys)")


__all__ = ["BackingStore", "InMemoryStore", "FileStore"]
