"""Tests for the credential access audit log."""

import json
from pathlib import Path

import pytest

from kubeetl.engine.secrets import SecretAuditLog


async def record(audit_log: SecretAuditLog, **overrides: object) -> None:
    event = {
        "workflow_name": "etl",
        "injectable_value": "injectable-host",
        "resource": "Connection/pg",
        "field": "host",
        "origin": "literal",
        "success": True,
    }
    event.update(overrides)
    await audit_log.log_access(**event)  # type: ignore[arg-type]


class TestSecretAuditLog:
    @pytest.mark.asyncio
    async def test_log_access_and_filter(self) -> None:
        audit_log = SecretAuditLog()
        await record(audit_log)
        await record(audit_log, workflow_name="other", resource="DataSet/orders")

        assert len(audit_log.get_events()) == 2
        assert [e.workflow_name for e in audit_log.get_events(workflow_name="etl")] == ["etl"]
        assert len(audit_log.get_events(resource="DataSet/orders")) == 1
        assert len(audit_log.get_events(injectable_value="absent")) == 0

    @pytest.mark.asyncio
    async def test_logs_without_values(self, caplog: pytest.LogCaptureFixture) -> None:
        audit_log = SecretAuditLog()

        with caplog.at_level("INFO"):
            await record(audit_log, field="password", origin="secret")
            await record(audit_log, success=False, error_message="Key 'pw' not found")

        assert "Credential access [SUCCESS]" in caplog.text
        assert "Credential access [FAILED]" in caplog.text
        assert "field=password" in caplog.text

    @pytest.mark.asyncio
    async def test_summary(self) -> None:
        audit_log = SecretAuditLog()
        await record(audit_log)
        await record(audit_log, field="password", origin="secret", success=False)

        summary = audit_log.get_summary()

        assert summary["total_events"] == 2
        assert summary["successful_accesses"] == 1
        assert summary["failed_accesses"] == 1
        assert summary["unique_workflows"] == 1
        assert summary["workflows"] == ["etl"]
        assert summary["origins"] == {"literal": 1, "secret": 1}

    def test_empty_summary(self) -> None:
        summary = SecretAuditLog().get_summary()

        assert summary["total_events"] == 0
        assert "workflows" not in summary

    @pytest.mark.asyncio
    async def test_export_and_clear(self, tmp_path: Path) -> None:
        audit_log = SecretAuditLog()
        await record(audit_log)
        export_path = tmp_path / "audit" / "events.json"

        await audit_log.export_to_file(export_path)
        audit_log.clear()

        exported = json.loads(export_path.read_text())
        assert exported["audit_log_version"] == "1.0"
        assert exported["total_events"] == 1
        assert exported["events"][0]["resource"] == "Connection/pg"
        assert audit_log.get_events() == []
