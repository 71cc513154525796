"""FastMCP server initialization for kubeetl.

This module initializes the MCP server and manages shared resources via the
lifespan context. All tool implementations are in the tools module.

- Lifespan context manager builds the AppContext from EngineConfig
- Context injection gives tools access to the registry, stores and planner
- FastMCP server with stdio transport
"""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from mcp.server.fastmcp import FastMCP

from .config import EngineConfig, configure_logging
from .context import AppContext, AppContextType, build_app_context

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(_server: FastMCP) -> AsyncIterator[AppContext]:
    """Build shared resources on startup and release them on shutdown.

    Args:
        _server: FastMCP server instance (unused, required by FastMCP signature)

    Yields:
        AppContext with registry, stores, planner and audit log
    """
    logger.info("Initializing MCP server resources...")

    config = EngineConfig.from_env()
    app_context = build_app_context(config)

    logger.info(f"Injection image: {config.injection_image}")
    logger.info(f"Config store: {config.config_store}")
    logger.info(f"Secret store: {config.secret_store}")

    try:
        yield app_context
    finally:
        logger.info("Shutting down MCP server...")
        summary = app_context.audit_log.get_summary()
        logger.info(f"Credential accesses during session: {summary['total_events']}")


mcp = FastMCP("kubeetl", lifespan=app_lifespan)


def main(log_level: str | None = None) -> None:
    """Entry point for running the MCP server (stdio transport).

    Called via ``python -m kubeetl``, ``kubeetl-mcp`` or ``kubeetl serve``.

    Args:
        log_level: Level name; defaults to KUBEETL_LOG_LEVEL
    """
    configure_logging(log_level)

    logger.info("Starting MCP server (press Ctrl+C to stop)...")

    try:
        mcp.run()
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down gracefully...")
    except Exception as e:
        logger.exception(f"Server error: {e}")
        sys.exit(1)

    logger.info("Server shutdown complete")


__all__ = ["mcp", "main", "app_lifespan", "AppContext", "AppContextType"]
