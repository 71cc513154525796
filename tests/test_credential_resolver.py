"""Tests for CredentialValueResolver."""

import pytest

from kubeetl.engine import Value
from kubeetl.engine.schema import KeySelector, ValueSource
from kubeetl.engine.secrets import (
    BackingStore,
    BackingStoreError,
    BackingStoreNotFoundError,
    CredentialValueResolver,
    InMemoryStore,
    KeyNotFoundError,
    ValueOrigin,
    ValueSourceUnspecifiedError,
    value_origin,
)


class FailingStore(BackingStore):
    """Store whose reads always fail, as an unreachable backend would."""

    kind = "Secret"

    async def get(self, namespace: str, name: str) -> dict[str, str] | None:
        raise BackingStoreError("FailingStore", "connection refused")

    async def put(self, namespace: str, name: str, data: dict[str, str]) -> None:
        raise BackingStoreError("FailingStore", "connection refused")


class TestResolve:
    @pytest.mark.asyncio
    async def test_literal(self, resolver: CredentialValueResolver) -> None:
        assert await resolver.resolve(Value.literal("localhost"), "default") == "localhost"

    @pytest.mark.asyncio
    async def test_config_map_reference(self, resolver: CredentialValueResolver) -> None:
        value = Value.from_config_map("pg-cm", "user")
        assert await resolver.resolve(value, "default") == "etl_user"

    @pytest.mark.asyncio
    async def test_secret_reference(self, resolver: CredentialValueResolver) -> None:
        value = Value.from_secret("pg-secret", "pw")
        assert await resolver.resolve(value, "default") == "hunter2"

    @pytest.mark.asyncio
    async def test_literal_wins_over_reference(self, resolver: CredentialValueResolver) -> None:
        value = Value(
            value="inline",
            value_from=ValueSource(secret_key_ref=KeySelector(name="pg-secret", key="pw")),
        )
        assert await resolver.resolve(value, "default") == "inline"

    @pytest.mark.asyncio
    async def test_missing_object(self, resolver: CredentialValueResolver) -> None:
        with pytest.raises(BackingStoreNotFoundError) as exc_info:
            await resolver.resolve(Value.from_secret("absent", "pw"), "default")

        assert exc_info.value.kind == "Secret"
        assert exc_info.value.name == "absent"

    @pytest.mark.asyncio
    async def test_missing_key(self, resolver: CredentialValueResolver) -> None:
        with pytest.raises(KeyNotFoundError) as exc_info:
            await resolver.resolve(Value.from_config_map("pg-cm", "absent"), "default")

        assert exc_info.value.kind == "ConfigMap"
        assert exc_info.value.key == "absent"

    @pytest.mark.asyncio
    async def test_references_use_the_given_namespace(
        self, resolver: CredentialValueResolver
    ) -> None:
        with pytest.raises(BackingStoreNotFoundError):
            await resolver.resolve(Value.from_secret("pg-secret", "pw"), "other")

    @pytest.mark.asyncio
    async def test_unspecified_source(self, resolver: CredentialValueResolver) -> None:
        with pytest.raises(ValueSourceUnspecifiedError, match="'password'"):
            await resolver.resolve(Value(), "default", field="password")

    @pytest.mark.asyncio
    async def test_store_errors_propagate(self) -> None:
        resolver = CredentialValueResolver(InMemoryStore("ConfigMap"), FailingStore())

        with pytest.raises(BackingStoreError, match="connection refused"):
            await resolver.resolve(Value.from_secret("pg-secret", "pw"), "default")

    @pytest.mark.asyncio
    async def test_resolve_all(self, resolver: CredentialValueResolver) -> None:
        values = {
            "host": Value.literal("db.internal"),
            "password": Value.from_secret("pg-secret", "pw"),
        }
        assert await resolver.resolve_all(values, "default") == {
            "host": "db.internal",
            "password": "hunter2",
        }


class TestValueOrigin:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (Value.literal("x"), ValueOrigin.LITERAL),
            (Value.from_config_map("cm", "k"), ValueOrigin.CONFIG_MAP),
            (Value.from_secret("s", "k"), ValueOrigin.SECRET),
            (Value(), ValueOrigin.UNSPECIFIED),
        ],
    )
    def test_value_origin(self, value: Value, expected: ValueOrigin) -> None:
        assert value_origin(value) == expected
