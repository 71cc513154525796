"""LoadResult for safe manifest loading operations.

This is a small error monad used by the loader and registry layer when
reading YAML manifests from disk. File and parse problems are reported as
values so that a directory scan can keep going past one broken manifest.

Planning, resolution and rendering do NOT use LoadResult; they raise
exceptions from :mod:`kubeetl.engine.exceptions`,
:mod:`kubeetl.engine.secrets.exceptions` and
:mod:`kubeetl.engine.templating.exceptions`.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class LoadStatus(str, Enum):
    """Status of a loading operation."""

    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class LoadResult(Generic[T]):  # noqa: UP046
    """
    Result of a manifest load.

    Usage:
        load_result = load_manifests_from_file(path)
        if load_result.is_success:
            resources = load_result.value
        else:
            print(f"Load error: {load_result.error}")
    """

    status: LoadStatus
    value: T | None = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.status == LoadStatus.SUCCESS and self.value is None:
            raise ValueError("Success result must have a value")
        if self.status == LoadStatus.FAILED and not self.error:
            raise ValueError("Failed result must have an error message")

    @property
    def is_success(self) -> bool:
        return self.status == LoadStatus.SUCCESS

    @property
    def is_failure(self) -> bool:
        return self.status == LoadStatus.FAILED

    @classmethod
    def success(cls, value: T, metadata: dict[str, Any] | None = None) -> "LoadResult[T]":
        """Create a successful load result."""
        return cls(status=LoadStatus.SUCCESS, value=value, metadata=metadata or {})

    @classmethod
    def failure(cls, error: str, metadata: dict[str, Any] | None = None) -> "LoadResult[T]":
        """Create a failed load result carrying a human-readable error."""
        return cls(status=LoadStatus.FAILED, error=error, metadata=metadata or {})

    def __bool__(self) -> bool:
        return self.is_success

    def unwrap(self) -> T:
        """Get value or raise if the load failed."""
        if not self.is_success:
            raise ValueError(f"Cannot unwrap failed result: {self.error}")
        if self.value is None:
            raise ValueError("Cannot unwrap result: value is None")
        return self.value

    def unwrap_or(self, default: T) -> T:
        if self.is_success and self.value is not None:
            return self.value
        return default
