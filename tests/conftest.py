"""Shared fixtures for kubeetl tests.

Provides:
- In-memory config and secret stores with sample objects
- A registry holding a ConnectionType, Connection, DataSetType, DataSet and a
  DAG Workflow (main -> foo, bar) that injects into both leaves
- Helpers to build Workflows from task graph dicts
"""

from typing import Any

import pytest

from kubeetl.engine import ResourceRegistry, Workflow
from kubeetl.engine.schema import (
    Connection,
    ConnectionType,
    DataSet,
    DataSetType,
)
from kubeetl.engine.secrets import CredentialValueResolver, InMemoryStore

NAMESPACE = "default"


def make_workflow(
    spec: dict[str, Any], name: str = "etl", namespace: str = NAMESPACE
) -> Workflow:
    """Build a Workflow from its wire-format spec."""
    return Workflow.model_validate(
        {"kind": "Workflow", "metadata": {"name": name, "namespace": namespace}, "spec": spec}
    )


def dag_workflow_spec() -> dict[str, Any]:
    return {
        "entrypoint": "main",
        "templates": [
            {
                "name": "main",
                "dag": {
                    "tasks": [
                        {"name": "foo", "template": "foo"},
                        {"name": "bar", "template": "bar", "dependencies": ["foo"]},
                    ]
                },
            },
            {"name": "foo", "container": {"image": "alpine", "command": ["sh", "-c", "env"]}},
            {"name": "bar", "container": {"image": "alpine", "command": ["sh", "-c", "env"]}},
        ],
        "injectable": [
            {
                "name": "injectable-host",
                "connectionRef": {"name": "pg"},
                "content": "{{.host}}",
                "envName": "HOST",
            }
        ],
        "injectInto": [
            {"name": "foo", "inject": ["injectable-host"]},
            {"name": "bar", "inject": ["injectable-host"]},
        ],
    }


@pytest.fixture
def connection_type() -> ConnectionType:
    return ConnectionType.model_validate(
        {
            "kind": "ConnectionType",
            "metadata": {"name": "postgres"},
            "spec": {
                "fields": [
                    {"name": "host", "required": True},
                    {"name": "username", "validation": {"minLength": 5}},
                    {"name": "password", "sensitive": True},
                ]
            },
        }
    )


@pytest.fixture
def connection() -> Connection:
    return Connection.model_validate(
        {
            "kind": "Connection",
            "metadata": {"name": "pg"},
            "spec": {
                "type": "postgres",
                "credentials": {
                    "host": {"value": "db.internal"},
                    "username": {
                        "valueFrom": {"configMapKeyRef": {"name": "pg-cm", "key": "user"}}
                    },
                    "password": {"valueFrom": {"secretKeyRef": {"name": "pg-secret", "key": "pw"}}},
                },
            },
        }
    )


@pytest.fixture
def data_set_type() -> DataSetType:
    return DataSetType.model_validate(
        {
            "kind": "DataSetType",
            "metadata": {"name": "table"},
            "spec": {"metadata": {"fields": [{"name": "table", "required": True}]}},
        }
    )


@pytest.fixture
def data_set() -> DataSet:
    return DataSet.model_validate(
        {
            "kind": "DataSet",
            "metadata": {"name": "orders"},
            "spec": {
                "type": "table",
                "metadata": {"table": {"value": "public.orders"}},
                "connectionRef": {"name": "pg"},
            },
        }
    )


@pytest.fixture
def workflow() -> Workflow:
    return make_workflow(dag_workflow_spec())


@pytest.fixture
def registry(
    connection_type: ConnectionType,
    connection: Connection,
    data_set_type: DataSetType,
    data_set: DataSet,
    workflow: Workflow,
) -> ResourceRegistry:
    registry = ResourceRegistry()
    for resource in (connection_type, connection, data_set_type, data_set, workflow):
        registry.register(resource)
    return registry


@pytest.fixture
async def config_store() -> InMemoryStore:
    store = InMemoryStore("ConfigMap")
    await store.put(NAMESPACE, "pg-cm", {"user": "etl_user"})
    return store


@pytest.fixture
async def secret_store() -> InMemoryStore:
    store = InMemoryStore("Secret")
    await store.put(NAMESPACE, "pg-secret", {"pw": "hunter2"})
    return store


@pytest.fixture
def resolver(config_store: InMemoryStore, secret_store: InMemoryStore) -> CredentialValueResolver:
    return CredentialValueResolver(config_store, secret_store)
