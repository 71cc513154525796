"""Runtime configuration and logging setup.

Configuration is read once from the environment into an immutable
EngineConfig and handed to each component explicitly.

Environment Variables:
    KUBEETL_INJECTION_CONTAINER: Image of the run-injection node
        (default: kubeetl/connection-provider:latest)
    KUBEETL_MANIFEST_PATHS: Comma-separated manifest directories; ``~`` is
        expanded, missing or non-directory entries are skipped
    KUBEETL_CONFIG_STORE: Root directory of the file-backed config store
    KUBEETL_SECRET_STORE: Root directory of the file-backed secret store
    KUBEETL_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL (default: INFO)
"""

import logging
import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .engine.planner import DEFAULT_INJECTION_IMAGE, PlannerConfig

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

DEFAULT_CONFIG_STORE = Path("~/.kubeetl/configmaps")
DEFAULT_SECRET_STORE = Path("~/.kubeetl/secrets")


def parse_log_level(value: str | None) -> int:
    """Map a level name to a logging level, falling back to INFO with a warning."""
    log_level_str = (value or "INFO").strip().upper()

    if log_level_str not in VALID_LOG_LEVELS:
        print(
            f"Warning: Invalid log level '{log_level_str}'. "
            f"Valid levels: {', '.join(sorted(VALID_LOG_LEVELS))}. "
            "Using INFO.",
            file=sys.stderr,
        )
        log_level_str = "INFO"

    return int(getattr(logging, log_level_str))


def configure_logging(level: str | None = None) -> int:
    """
    Configure root logging to stderr.

    Stdout is reserved for command output and the MCP stdio transport.

    Args:
        level: Level name; defaults to KUBEETL_LOG_LEVEL, then INFO

    Returns:
        The numeric level that was applied
    """
    log_level = parse_log_level(level if level is not None else os.getenv("KUBEETL_LOG_LEVEL"))
    logging.basicConfig(level=log_level, format=LOG_FORMAT, stream=sys.stderr, force=True)
    return log_level


def parse_manifest_paths(value: str) -> list[Path]:
    """Split a comma-separated path list, keeping only existing directories."""
    paths: list[Path] = []
    for path_str in value.split(","):
        path_str = path_str.strip()
        if not path_str:
            continue

        expanded_path = Path(path_str).expanduser()
        if not expanded_path.exists():
            logger.warning(f"Manifest path does not exist, skipping: {expanded_path}")
            continue
        if not expanded_path.is_dir():
            logger.warning(f"Manifest path is not a directory, skipping: {expanded_path}")
            continue

        paths.append(expanded_path)

    if value.strip() and not paths:
        logger.warning("KUBEETL_MANIFEST_PATHS provided but no valid directories found")
    return paths


@dataclass(frozen=True)
class EngineConfig:
    """
    Settings shared by the CLI and the MCP server.

    Attributes:
        injection_image: Image of the synthesized run-injection node
        manifest_paths: Directories to load manifests from, in priority order
        config_store: Root of the file-backed config store
        secret_store: Root of the file-backed secret store
        log_level: Level name passed to configure_logging
    """

    injection_image: str = DEFAULT_INJECTION_IMAGE
    manifest_paths: list[Path] = field(default_factory=list)
    config_store: Path = DEFAULT_CONFIG_STORE.expanduser()
    secret_store: Path = DEFAULT_SECRET_STORE.expanduser()
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "EngineConfig":
        env = os.environ if environ is None else environ
        return cls(
            injection_image=env.get("KUBEETL_INJECTION_CONTAINER") or DEFAULT_INJECTION_IMAGE,
            manifest_paths=parse_manifest_paths(env.get("KUBEETL_MANIFEST_PATHS", "")),
            config_store=Path(env.get("KUBEETL_CONFIG_STORE") or DEFAULT_CONFIG_STORE).expanduser(),
            secret_store=Path(env.get("KUBEETL_SECRET_STORE") or DEFAULT_SECRET_STORE).expanduser(),
            log_level=env.get("KUBEETL_LOG_LEVEL", "INFO"),
        )

    def planner_config(self) -> PlannerConfig:
        return PlannerConfig(injection_image=self.injection_image)


__all__ = [
    "EngineConfig",
    "configure_logging",
    "parse_log_level",
    "parse_manifest_paths",
    "LOG_FORMAT",
]
