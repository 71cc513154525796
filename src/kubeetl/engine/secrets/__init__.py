"""Credential resolution for kubeetl.

This package resolves declared credential/metadata values to concrete
strings, reading from two backing stores (config and secret), and keeps an
audit trail of every resolution.

Core Components:
    - BackingStore: Abstract base class for config/secret stores
    - InMemoryStore / FileStore: Store implementations
    - CredentialValueResolver: Value -> string resolution
    - SecretAuditLog: Audit trail of credential reads
    - Custom exceptions: Structured error handling

Example:
    >>> config_store = InMemoryStore("ConfigMap")
    >>> secret_store = InMemoryStore("Secret")
    >>> await secret_store.put("default", "pg", {"password": "hunter2"})
    >>> resolver = CredentialValueResolver(config_store, secret_store)
    >>> await resolver.resolve(Value.from_secret("pg", "password"), "default")
    'hunter2'
"""

from .audit import SecretAccessEvent, SecretAuditLog
from .exceptions import (
    BackingStoreError,
    BackingStoreNotFoundError,
    KeyNotFoundError,
    SecretError,
    ValueSourceUnspecifiedError,
)
from .resolver import CredentialValueResolver, ValueOrigin, value_origin
from .store import BackingStore, FileStore, InMemoryStore

__all__ = [
    # Exceptions
    "SecretError",
    "ValueSourceUnspecifiedError",
    "BackingStoreNotFoundError",
    "KeyNotFoundError",
    "BackingStoreError",
    # Stores
    "BackingStore",
    "InMemoryStore",
    "FileStore",
    # Resolution
    "CredentialValueResolver",
    "ValueOrigin",
    "value_origin",
    # Audit
    "SecretAccessEvent",
    "SecretAuditLog",
]
