"""Credential value resolution.

Turns one declared ``Value`` into the literal string it stands for:

1. a non-empty literal is returned verbatim (it wins over any reference)
2. a configMapKeyRef is read from the config store
3. a secretKeyRef is read from the secret store
4. anything else is ValueSourceUnspecifiedError

References are resolved in the namespace of the resource that declares
them. Store connectivity errors propagate unchanged.
"""

import logging
from enum import Enum

from ..schema import KeySelector, Value
from .exceptions import BackingStoreNotFoundError, KeyNotFoundError, ValueSourceUnspecifiedError
from .store import BackingStore

logger = logging.getLogger(__name__)


class ValueOrigin(str, Enum):
    """Where a resolved value came from (used for audit events)."""

    LITERAL = "literal"
    CONFIG_MAP = "configMap"
    SECRET = "secret"
    UNSPECIFIED = "unspecified"


def value_origin(value: Value) -> ValueOrigin:
    """Classify a Value by the source ``resolve`` would read it from."""
    if value.is_literal:
        return ValueOrigin.LITERAL
    source = value.value_from
    if source is not None and source.config_map_key_ref is not None:
        return ValueOrigin.CONFIG_MAP
    if source is not None and source.secret_key_ref is not None:
        return ValueOrigin.SECRET
    return ValueOrigin.UNSPECIFIED


class CredentialValueResolver:
    """
    Resolves declared field values against the config and secret stores.

    The resolver holds no state besides its stores and is safe to share.

    Example:
        >>> resolver = CredentialValueResolver(config_store, secret_store)
        >>> await resolver.resolve(Value.literal("localhost"), "default")
        'localhost'
        >>> await resolver.resolve(Value.from_secret("pg", "password"), "default")
        'hunter2'
    """

    def __init__(self, config_store: BackingStore, secret_store: BackingStore) -> None:
        self.config_store = config_store
        self.secret_store = secret_store

    async def resolve(self, value: Value, namespace: str, field: str | None = None) -> str:
        """
        Resolve one Value to a string.

        Args:
            value: The declared value
            namespace: Namespace used for store lookups
            field: Optional field name, only used in error messages

        Returns:
            The literal string

        Raises:
            ValueSourceUnspecifiedError: Neither a literal nor a reference is set
            BackingStoreNotFoundError: The referenced object does not exist
            KeyNotFoundError: The referenced key does not exist in the object
            BackingStoreError: The store could not be read
        """
        if value.value != "":
            return value.value

        source = value.value_from
        if source is not None and source.config_map_key_ref is not None:
            return await self._read(self.config_store, source.config_map_key_ref, namespace)
        if source is not None and source.secret_key_ref is not None:
            return await self._read(self.secret_store, source.secret_key_ref, namespace)

        raise ValueSourceUnspecifiedError(field)

    async def resolve_all(self, values: dict[str, Value], namespace: str) -> dict[str, str]:
        """Resolve every field of a credentials/metadata map, failing on the first error."""
        resolved: dict[str, str] = {}
        for name, value in values.items():
            resolved[name] = await self.resolve(value, namespace, field=name)
        return resolved

    async def _read(self, store: BackingStore, selector: KeySelector, namespace: str) -> str:
        data = await store.get(namespace, selector.name)
        if data is None:
            raise BackingStoreNotFoundError(store.kind, namespace, selector.name)
        if selector.key not in data:
            raise KeyNotFoundError(store.kind, namespace, selector.name, selector.key)

        logger.debug(f"Read key '{selector.key}' from {store.kind} {namespace}/{selector.name}")
        return data[selector.key]


__all__ = ["CredentialValueResolver", "ValueOrigin", "value_origin"]
