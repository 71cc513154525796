"""Planning, lookup and materialization exceptions.

Exception Hierarchy:
    InjectionError (base for graph rewriting)
    ├── UnknownInjectableValueError (TemplateRef names an undeclared value)
    ├── MissingTemplateError (node name not present in the graph)
    ├── CyclicTemplateError (Steps/DAG references loop back)
    └── TemplateNameConflictError (reserved or duplicate node name)
    ResourceNotFoundError (Workflow/Connection/DataSet/type lookup)
    MaterializationError (an injectable value could not be resolved or rendered)

Every planning error aborts the whole rewrite; no partial graph is returned.
"""

from __future__ import annotations


class InjectionError(Exception):
    """Base exception for task graph rewriting failures."""

    pass


class UnknownInjectableValueError(InjectionError):
    """A TemplateRef refers to an injectable value the Workflow does not declare.

    Attributes:
        name: The unknown injectable value name
        template: Name of the TemplateRef target that referenced it
    """

    def __init__(self, name: str, template: str) -> None:
        self.name = name
        self.template = template
        super().__init__(
            f"InjectInto for template '{template}' references unknown injectable value '{name}'"
        )


class MissingTemplateError(InjectionError):
    """A node name could not be found in the task graph.

    Attributes:
        name: The missing template name
        referenced_by: Template whose step/task referenced it, if any
    """

    def __init__(self, name: str, referenced_by: str | None = None) -> None:
        self.name = name
        self.referenced_by = referenced_by

        message = f"Template '{name}' not found in task graph"
        if referenced_by:
            message += f" (referenced by '{referenced_by}')"
        super().__init__(message)


class CyclicTemplateError(InjectionError):
    """Steps/DAG references form a cycle.

    Attributes:
        cycle: Template names along the cycle, first name repeated at the end
    """

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        super().__init__(f"Cyclic template reference: {' -> '.join(cycle)}")


class TemplateNameConflictError(InjectionError):
    """A template name is used twice or collides with a generated node."""

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"Template name conflict for '{name}': {reason}")


class ResourceNotFoundError(LookupError):
    """A namespaced resource could not be found in the registry.

    Attributes:
        kind: Resource kind (e.g. "Workflow", "Connection")
        namespace: Namespace that was searched
        name: Resource name
    """

    def __init__(self, kind: str, namespace: str, name: str) -> None:
        self.kind = kind
        self.namespace = namespace
        self.name = name
        super().__init__(f"{kind} '{name}' not found in namespace '{namespace}'")


class MaterializationError(Exception):
    """Populating a Workflow's generated secret failed.

    The original error is chained as ``__cause__``.

    Attributes:
        workflow: Workflow name
        injectable_value: Name of the injectable value being produced, if any
    """

    def __init__(self, workflow: str, injectable_value: str | None, details: str) -> None:
        self.workflow = workflow
        self.injectable_value = injectable_value
        self.details = details

        if injectable_value:
            message = (
                f"Workflow '{workflow}': failed to produce injectable value "
                f"'{injectable_value}': {details}"
            )
        else:
            message = f"Workflow '{workflow}': {details}"
        super().__init__(message)
