"""Unit tests for the MCP tools, called with a mock request context."""

import json
from unittest.mock import MagicMock

import pytest

from kubeetl.config import EngineConfig
from kubeetl.context import AppContext
from kubeetl.engine import InjectionPlanner, ResourceRegistry, artifact_name
from kubeetl.engine.secrets import InMemoryStore, SecretAuditLog
from kubeetl.tools import (
    list_resources,
    plan_workflow,
    populate_workflow_secret,
    validate_manifest,
)

VALID_CONNECTION = """\
kind: Connection
metadata:
  name: replica
spec:
  type: postgres
  credentials:
    host: replica.internal
"""

INVALID_CONNECTION = """\
kind: Connection
metadata:
  name: replica
spec:
  type: postgres
  credentials:
    host: replica.internal
    username: abc
"""


@pytest.fixture
def app_context(
    registry: ResourceRegistry, config_store: InMemoryStore, secret_store: InMemoryStore
) -> AppContext:
    return AppContext(
        config=EngineConfig(),
        registry=registry,
        config_store=config_store,
        secret_store=secret_store,
        planner=InjectionPlanner(),
        audit_log=SecretAuditLog(),
    )


@pytest.fixture
def mock_context(app_context: AppContext) -> MagicMock:
    """Mock MCP context exposing the AppContext as lifespan context."""
    mock_ctx = MagicMock()
    mock_ctx.request_context.lifespan_context = app_context
    return mock_ctx


class TestListResources:
    @pytest.mark.asyncio
    async def test_json(self, mock_context: MagicMock) -> None:
        result = json.loads(await list_resources(kind="Connection", ctx=mock_context))

        assert result == [
            {"kind": "Connection", "namespace": "default", "name": "pg", "type": "postgres"}
        ]

    @pytest.mark.asyncio
    async def test_markdown(self, mock_context: MagicMock) -> None:
        result = await list_resources(format="markdown", ctx=mock_context)

        assert result.startswith("## Resources (5)")
        assert "- **DataSet** default/orders (type: table)" in result

    @pytest.mark.asyncio
    async def test_markdown_empty(self, mock_context: MagicMock) -> None:
        result = await list_resources(namespace="other", format="markdown", ctx=mock_context)
        assert result == "No resources found (namespace=other)"


class TestValidateManifest:
    @pytest.mark.asyncio
    async def test_valid(self, mock_context: MagicMock) -> None:
        result = await validate_manifest(VALID_CONNECTION, ctx=mock_context)

        assert result["valid"] is True
        assert result["resources"][0]["message"] == "valid Connection resource"

    @pytest.mark.asyncio
    async def test_invalid(self, mock_context: MagicMock) -> None:
        result = await validate_manifest(INVALID_CONNECTION, ctx=mock_context)

        assert result["valid"] is False
        errors = result["resources"][0]["errors"]
        assert [(e["type"], e["field"]) for e in errors] == [
            ("TooShort", "spec.credentials.username")
        ]

    @pytest.mark.asyncio
    async def test_unparseable(self, mock_context: MagicMock) -> None:
        result = await validate_manifest("kind: Connection\nmetadata: {}\n", ctx=mock_context)

        assert result["valid"] is False
        assert result["resources"] == []
        assert "Connection validation failed" in result["error"]


class TestPlanWorkflow:
    @pytest.mark.asyncio
    async def test_plan(self, mock_context: MagicMock) -> None:
        result = await plan_workflow("etl", ctx=mock_context)

        assert result["status"] == "success"
        assert result["entrypoint"] == "injection-entrypoint"
        assert result["secret"] == {"name": artifact_name("etl"), "namespace": "default"}
        names = [template["name"] for template in result["graph"]["templates"]]
        assert names == ["main", "foo", "bar", "run-injection", "injection-entrypoint"]

    @pytest.mark.asyncio
    async def test_unknown_workflow(self, mock_context: MagicMock) -> None:
        result = await plan_workflow("absent", ctx=mock_context)

        assert result == {
            "status": "failure",
            "error": "Workflow 'absent' not found in namespace 'default'",
        }


class TestPopulateWorkflowSecret:
    @pytest.mark.asyncio
    async def test_populate(self, mock_context: MagicMock, secret_store: InMemoryStore) -> None:
        result = await populate_workflow_secret("etl", ctx=mock_context)

        assert result == {
            "status": "success",
            "secret": {"name": artifact_name("etl"), "namespace": "default"},
            "keys": ["injectable-host"],
        }
        assert await secret_store.get("default", artifact_name("etl")) == {
            "injectable-host": "db.internal"
        }

    @pytest.mark.asyncio
    async def test_values_are_not_returned(self, mock_context: MagicMock) -> None:
        result = await populate_workflow_secret("etl", ctx=mock_context)
        assert "db.internal" not in json.dumps(result)

    @pytest.mark.asyncio
    async def test_failure(self, mock_context: MagicMock, secret_store: InMemoryStore) -> None:
        await secret_store.put("default", "pg-secret", {})

        result = await populate_workflow_secret("etl", ctx=mock_context)

        assert result["status"] == "failure"
        assert "Key 'pw' not found" in result["error"]
