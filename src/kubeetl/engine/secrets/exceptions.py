"""Custom exceptions for credential resolution and backing stores.

Exception Hierarchy:
    SecretError (base)
    ├── ValueSourceUnspecifiedError (neither literal nor reference set)
    ├── BackingStoreNotFoundError (referenced config/secret object absent)
    ├── KeyNotFoundError (object present, key absent)
    └── BackingStoreError (store I/O or connectivity failure)

Connectivity failures are surfaced as-is; retry policy belongs to the caller.

Example:
    >>> try:
    ...     value = await resolver.resolve(field_value, "default")
    ... except KeyNotFoundError as e:
    ...     print(f"{e.kind} {e.name} has no key {e.key}")
"""


class SecretError(Exception):
    """Base exception for all credential resolution errors."""

    pass


class ValueSourceUnspecifiedError(SecretError):
    """Raised when a Value has neither a literal nor a usable reference.

    Attributes:
        field: Optional name of the field being resolved
    """

    def __init__(self, field: str | None = None) -> None:
        self.field = field

        if field:
            message = f"Value for field '{field}' does not specify a literal or a value source"
        else:
            message = "Value does not specify a literal or a value source"
        super().__init__(message)


class BackingStoreNotFoundError(SecretError):
    """Raised when a referenced config or secret object does not exist.

    Attributes:
        kind: Store kind ("ConfigMap" or "Secret")
        namespace: Namespace that was searched
        name: Object name
    """

    def __init__(self, kind: str, namespace: str, name: str) -> None:
        self.kind = kind
        self.namespace = namespace
        self.name = name
        super().__init__(f"{kind} '{name}' not found in namespace '{namespace}'")


class KeyNotFoundError(SecretError):
    """Raised when a referenced key is absent from an existing object.

    Attributes:
        kind: Store kind ("ConfigMap" or "Secret")
        namespace: Namespace of the object
        name: Object name
        key: The missing key
    """

    def __init__(self, kind: str, namespace: str, name: str, key: str) -> None:
        self.kind = kind
        self.namespace = namespace
        self.name = name
        self.key = key
        super().__init__(f"Key '{key}' not found in {kind} '{name}' (namespace '{namespace}')")


class BackingStoreError(SecretError):
    """Raised when a backing store cannot be read or written.

    Attributes:
        store: Description of the store (class name and location)
        details: Underlying error information
    """

    def __init__(self, store: str, details: str) -> None:
        self.store = store
        self.details = details
        super().__init__(f"Backing store '{store}' error: {details}")
