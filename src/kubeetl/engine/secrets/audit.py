"""Credential access audit logging.

Every credential field the Secret Materializer resolves is recorded with the
Workflow and injectable value it was resolved for, the resource and field it
came from, the kind of source (literal, config store, secret store) and
whether the read succeeded. Values themselves are never recorded.

Features:
    - Structured events with Pydantic models
    - Filtering by workflow, injectable value or resource
    - Export to JSON for external analysis
    - Logging to the module logger (INFO on success, WARNING on failure)

Example:
    >>> audit_log = SecretAuditLog()
    >>> await audit_log.log_access(
    ...     workflow_name="nightly-load",
    ...     injectable_value="pg-dsn",
    ...     resource="Connection/pg",
    ...     field="password",
    ...     origin="secret",
    ...     success=True,
    ... )
    >>> audit_log.get_events(workflow_name="nightly-load")[0].field
    'password'
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class SecretAccessEvent(BaseModel):
    """A single credential resolution recorded in the audit log."""

    model_config = ConfigDict(frozen=True)

    timestamp: str = Field(description="ISO 8601 timestamp of the access")
    workflow_name: str = Field(description="Workflow whose secret was being populated")
    injectable_value: str = Field(description="Injectable value being rendered")
    resource: str = Field(description="Source resource as '<Kind>/<name>'")
    field: str = Field(description="Credential or metadata field name")
    origin: str = Field(description="literal, configMap, secret or unspecified")
    success: bool = Field(description="Whether the value was resolved")
    error_message: str | None = Field(default=None, description="Error if resolution failed")


class SecretAuditLog:
    """
    In-memory audit log of credential resolutions.

    Attributes:
        events: Recorded events in order of occurrence
    """

    def __init__(self) -> None:
        self.events: list[SecretAccessEvent] = []

    async def log_access(
        self,
        workflow_name: str,
        injectable_value: str,
        resource: str,
        field: str,
        origin: str,
        success: bool,
        error_message: str | None = None,
    ) -> None:
        """Record one resolution attempt and log it."""
        event = SecretAccessEvent(
            timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            workflow_name=workflow_name,
            injectable_value=injectable_value,
            resource=resource,
            field=field,
            origin=origin,
            success=success,
            error_message=error_message,
        )
        self.events.append(event)

        log_level = logging.INFO if success else logging.WARNING
        status = "SUCCESS" if success else "FAILED"
        log_message = (
            f"Credential access [{status}]: workflow={workflow_name}, "
            f"injectable={injectable_value}, resource={resource}, field={field}, "
            f"origin={origin}"
        )
        if error_message:
            log_message += f", error={error_message}"

        logger.log(log_level, log_message)

    def get_events(
        self,
        workflow_name: str | None = None,
        injectable_value: str | None = None,
        resource: str | None = None,
    ) -> list[SecretAccessEvent]:
        """Query events; filters combine with AND, no filters returns everything."""
        filtered_events = self.events

        if workflow_name is not None:
            filtered_events = [e for e in filtered_events if e.workflow_name == workflow_name]

        if injectable_value is not None:
            filtered_events = [e for e in filtered_events if e.injectable_value == injectable_value]

        if resource is not None:
            filtered_events = [e for e in filtered_events if e.resource == resource]

        return filtered_events

    async def export_to_file(self, file_path: str | Path) -> None:
        """
        Export all events to a JSON file.

        Args:
            file_path: Path to the output JSON file

        Raises:
            OSError: If the file cannot be written
        """
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        events_data: list[dict[str, Any]] = [event.model_dump() for event in self.events]

        with file_path.open("w") as f:
            json.dump(
                {
                    "audit_log_version": "1.0",
                    "total_events": len(events_data),
                    "events": events_data,
                },
                f,
                indent=2,
            )

        logger.info(f"Exported {len(events_data)} audit events to {file_path}")

    def clear(self) -> None:
        event_count = len(self.events)
        self.events.clear()
        logger.info(f"Cleared {event_count} audit events from memory")

    def get_summary(self) -> dict[str, Any]:
        """Aggregate statistics over the recorded events."""
        if not self.events:
            return {
                "total_events": 0,
                "successful_accesses": 0,
                "failed_accesses": 0,
                "unique_workflows": 0,
                "unique_resources": 0,
            }

        successful = sum(1 for e in self.events if e.success)
        workflows = {e.workflow_name for e in self.events}
        resources = {e.resource for e in self.events}

        origin_counts: dict[str, int] = {}
        for event in self.events:
            origin_counts[event.origin] = origin_counts.get(event.origin, 0) + 1

        return {
            "total_events": len(self.events),
            "successful_accesses": successful,
            "failed_accesses": len(self.events) - successful,
            "unique_workflows": len(workflows),
            "unique_resources": len(resources),
            "workflows": sorted(workflows),
            "origins": dict(sorted(origin_counts.items())),
        }
