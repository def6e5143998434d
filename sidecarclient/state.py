"""State store calls: save, get, query, delete and transactions."""

from __future__ import annotations

import datetime
import enum
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from sidecarclient.errors import ClientError

UNDEFINED_TYPE = "undefined"
EVENTUAL_TYPE = "eventual"
STRONG_TYPE = "strong"
FIRST_WRITE_TYPE = "first-write"
LAST_WRITE_TYPE = "last-write"
UPSERT_TYPE = "upsert"
DELETE_TYPE = "delete"


class _LabelledEnum(enum.IntEnum):
    """Integer enum whose unknown values map to UNDEFINED."""

    @classmethod
    def _missing_(cls, value: object) -> Any:
        return cls(0)

    def __str__(self) -> str:
        return self.name.lower().replace("_", "-")


class StateConsistency(_LabelledEnum):
    """Consistency level requested from a state store."""

    UNDEFINED = 0
    EVENTUAL = 1
    STRONG = 2


class StateConcurrency(_LabelledEnum):
    """Concurrency mode requested from a state store."""

    UNDEFINED = 0
    FIRST_WRITE = 1
    LAST_WRITE = 2


class OperationType(_LabelledEnum):
    """Kind of operation inside a state transaction."""

    UNDEFINED = 0
    UPSERT = 1
    DELETE = 2


@dataclass
class StateOptions:
    """Persistence policy for a state operation."""

    concurrency: StateConcurrency = StateConcurrency.UNDEFINED
    consistency: StateConsistency = StateConsistency.UNDEFINED


StateOption = Callable[[StateOptions], None]


@dataclass
class ETag:
    """Version information of a stored record."""

    value: str = ""


@dataclass
class StateItem:
    """A single item read from a state store."""

    key: str = ""
    value: bytes | None = None
    etag: str = ""
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class BulkStateItem:
    """A single item from a bulk read, with any per-item error."""

    key: str = ""
    value: bytes | None = None
    etag: str = ""
    metadata: dict[str, str] = field(default_factory=dict)
    error: str = ""


@dataclass
class SetStateItem:
    """A single item to persist."""

    key: str = ""
    value: bytes | None = None
    etag: ETag | None = None
    metadata: dict[str, str] | None = None
    options: StateOptions | None = None


@dataclass
class DeleteStateItem(SetStateItem):
    """A single item to delete."""


@dataclass
class QueryItem:
    """A single result of a state query."""

    key: str = ""
    value: bytes | None = None
    etag: str = ""
    error: str = ""


@dataclass
class QueryResponse:
    """Results of a state query with its paging token."""

    results: list[QueryItem] = field(default_factory=list)
    token: str = ""
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class StateOperation:
    """One operation of a state transaction."""

    type: OperationType
    item: SetStateItem


@dataclass(frozen=True)
class Duration:
    """A span of time as whole seconds plus nanoseconds."""

    seconds: int = 0
    nanos: int = 0


def with_concurrency(concurrency: StateConcurrency) -> StateOption:
    """Option setting the concurrency of a save."""

    def apply(options: StateOptions) -> None:
        options.concurrency = concurrency

    return apply


def with_consistency(consistency: StateConsistency) -> StateOption:
    """Option setting the consistency of a save."""

    def apply(options: StateOptions) -> None:
        options.consistency = consistency

    return apply


def _default_options() -> StateOptions:
    return StateOptions(
        concurrency=StateConcurrency.LAST_WRITE,
        consistency=StateConsistency.STRONG,
    )


def to_proto_state_options(options: StateOptions | None) -> StateOptions:
    """Return a copy of the options, or the defaults (last-write, strong)."""
    if options is None:
        return _default_options()
    return StateOptions(concurrency=options.concurrency, consistency=options.consistency)


def to_proto_duration(duration: datetime.timedelta) -> Duration:
    """Split a timedelta into seconds and nanoseconds, truncating toward zero."""
    total = (duration.days * 86400 + duration.seconds) * 10**9 + duration.microseconds * 1000
    sign = -1 if total < 0 else 1
    seconds = sign * (abs(total) // 10**9)
    return Duration(seconds=seconds, nanos=total - seconds * 10**9)


def has_required_state_args(store_name: str, key: str) -> None:
    """Raise ClientError unless both store name and key are given."""
    if not store_name:
        raise ClientError("missing required arguments: store")
    if not key:
        raise ClientError("missing required arguments: key")


def _etag_to_proto(etag: ETag | None) -> dict[str, str] | None:
    return None if etag is None else {"value": etag.value}


def _to_proto_state_item(item: SetStateItem) -> dict[str, Any]:
    return {
        "key": item.key,
        "value": item.value,
        "etag": _etag_to_proto(item.etag),
        "metadata": item.metadata,
        "options": to_proto_state_options(item.options),
    }


class StateMixin:
    """State store calls.

    The host class provides ``self._api`` with ``save_state``, ``get_state``,
    ``get_bulk_state``, ``query_state_alpha1``, ``delete_state``,
    ``delete_bulk_state`` and ``execute_state_transaction``, each taking a
    request dict and returning a response dict or None.
    """

    _api: Any

    def execute_state_transaction(
        self,
        store_name: str,
        meta: dict[str, str] | None,
        ops: Iterable[StateOperation] | None,
    ) -> None:
        """Run several operations against a store as one transaction."""
        if not store_name:
            raise ClientError("store_name required")
        operations = [
            {"operation_type": str(op.type), "request": _to_proto_state_item(op.item)}
            for op in ops or ()
        ]
        if not operations:
            return
        request = {"metadata": meta, "store_name": store_name, "operations": operations}
        try:
            self._api.execute_state_transaction(request)
        except Exception as exc:
            raise ClientError(f"error executing state transaction: {exc}") from exc

    def save_state(
        self,
        store_name: str,
        key: str,
        data: bytes | None,
        meta: dict[str, str] | None,
        *options: StateOption,
    ) -> None:
        """Save raw data; without options the store uses strong, last-write."""
        self.save_state_with_etag(store_name, key, data, "", meta, *options)

    def save_state_with_etag(
        self,
        store_name: str,
        key: str,
        data: bytes | None,
        etag: str,
        meta: dict[str, str] | None,
        *options: StateOption,
    ) -> None:
        """Save raw data with the given etag and options."""
        if options:
            state_options = StateOptions()
            for option in options:
                option(state_options)
        else:
            state_options = _default_options()
        item = SetStateItem(
            key=key,
            value=data,
            metadata=meta,
            options=state_options,
            etag=ETag(value=etag) if etag else None,
        )
        self.save_bulk_state(store_name, item)

    def save_bulk_state(self, store_name: str, *items: SetStateItem) -> None:
        """Save several items to a store in one call."""
        if not store_name:
            raise ClientError("store_name required")
        if not items:
            raise ClientError("items required")
        request = {
            "store_name": store_name,
            "states": [_to_proto_state_item(item) for item in items],
        }
        try:
            self._api.save_state(request)
        except Exception as exc:
            raise ClientError(f"error saving state: {exc}") from exc

    def get_bulk_state(
        self,
        store_name: str,
        keys: list[str],
        meta: dict[str, str] | None,
        parallelism: int,
    ) -> list[BulkStateItem]:
        """Read several keys from a store."""
        if not store_name:
            raise ClientError("store_name required")
        if not keys:
            raise ClientError("keys required")
        request = {
            "store_name": store_name,
            "keys": list(keys),
            "metadata": meta,
            "parallelism": parallelism,
        }
        try:
            response = self._api.get_bulk_state(request)
        except Exception as exc:
            raise ClientError(f"error getting state: {exc}") from exc
        return [
            BulkStateItem(
                key=entry.get("key", ""),
                etag=entry.get("etag", ""),
                value=entry.get("data"),
                metadata=entry.get("metadata") or {},
                error=entry.get("error", ""),
            )
            for entry in (response or {}).get("items") or ()
        ]

    def get_state(
        self, store_name: str, key: str, meta: dict[str, str] | None
    ) -> StateItem:
        """Read one key with strong consistency."""
        return self.get_state_with_consistency(
            store_name, key, meta, StateConsistency.STRONG
        )

    def get_state_with_consistency(
        self,
        store_name: str,
        key: str,
        meta: dict[str, str] | None,
        consistency: StateConsistency,
    ) -> StateItem:
        """Read one key with the given consistency."""
        has_required_state_args(store_name, key)
        request = {
            "store_name": store_name,
            "key": key,
            "consistency": StateConsistency(consistency),
            "metadata": meta,
        }
        try:
            response = self._api.get_state(request) or {}
        except Exception as exc:
            raise ClientError(f"error getting state: {exc}") from exc
        return StateItem(
            key=key,
            value=response.get("data"),
            etag=response.get("etag", ""),
            metadata=response.get("metadata") or {},
        )

    def query_state_alpha1(
        self, store_name: str, query: str, meta: dict[str, str] | None
    ) -> QueryResponse:
        """Run a query against a store."""
        if not store_name:
            raise ClientError("store name is not set")
        if not query:
            raise ClientError("query is not set")
        request = {"store_name": store_name, "query": query, "metadata": meta}
        try:
            response = self._api.query_state_alpha1(request) or {}
        except Exception as exc:
            raise ClientError(f"error querying state: {exc}") from exc
        return QueryResponse(
            results=[
                QueryItem(
                    key=entry.get("key", ""),
                    value=entry.get("data"),
                    etag=entry.get("etag", ""),
                    error=entry.get("error", ""),
                )
                for entry in response.get("results") or ()
            ],
            token=response.get("token", ""),
            metadata=response.get("metadata") or {},
        )

    def delete_state(
        self, store_name: str, key: str, meta: dict[str, str] | None
    ) -> None:
        """Delete one key using the default options."""
        self.delete_state_with_etag(store_name, key, None, meta, None)

    def delete_state_with_etag(
        self,
        store_name: str,
        key: str,
        etag: ETag | None,
        meta: dict[str, str] | None,
        options: StateOptions | None,
    ) -> None:
        """Delete one key using the given etag and options."""
        has_required_state_args(store_name, key)
        request = {
            "store_name": store_name,
            "key": key,
            "options": to_proto_state_options(options),
            "metadata": meta,
            "etag": _etag_to_proto(etag),
        }
        try:
            self._api.delete_state(request)
        except Exception as exc:
            raise ClientError(f"error deleting state: {exc}") from exc

    def delete_bulk_state(
        self, store_name: str, keys: list[str] | None, meta: dict[str, str] | None
    ) -> None:
        """Delete several keys, all with the same metadata."""
        if not keys:
            return
        items = [DeleteStateItem(key=key, metadata=meta) for key in keys]
        self.delete_bulk_state_items(store_name, items)

    def delete_bulk_state_items(
        self, store_name: str, items: list[DeleteStateItem] | None
    ) -> None:
        """Delete several items, each with its own etag and options."""
        if not items:
            return
        states = []
        for item in items:
            has_required_state_args(store_name, item.key)
            states.append(
                {
                    "key": item.key,
                    "metadata": item.metadata,
                    "options": to_proto_state_options(item.options),
                    "etag": _etag_to_proto(item.etag),
                }
            )
        try:
            self._api.delete_bulk_state({"store_name": store_name, "states": states})
        except Exception as exc:
            raise ClientError(f"error deleting state: {exc}") from exc