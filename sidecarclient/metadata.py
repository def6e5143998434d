"""Reading and setting the sidecar's metadata."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sidecarclient.errors import ClientError


@dataclass
class MetadataActiveActorsCount:
    """Number of active actors of one type."""

    type: str = ""
    count: int = 0


@dataclass
class MetadataRegisteredComponents:
    """A component loaded by the sidecar."""

    name: str = ""
    type: str = ""
    version: str = ""
    capabilities: list[str] = field(default_factory=list)


@dataclass
class PubsubSubscriptionRule:
    """Routing rule of a subscription: a match expression and its path."""

    match: str = ""
    path: str = ""


@dataclass
class PubsubSubscriptionRules:
    """The routing rules of a subscription."""

    rules: list[PubsubSubscriptionRule] = field(default_factory=list)


@dataclass
class MetadataSubscription:
    """A pubsub subscription known to the sidecar."""

    pubsub_name: str = ""
    topic: str = ""
    metadata: dict[str, str] = field(default_factory=dict)
    rules: PubsubSubscriptionRules = field(default_factory=PubsubSubscriptionRules)
    dead_letter_topic: str = ""


@dataclass
class MetadataHTTPEndpoint:
    """An HTTP endpoint registered with the sidecar."""

    name: str = ""


@dataclass
class GetMetadataResponse:
    """Everything the sidecar reports about itself."""

    id: str = ""
    active_actors_count: list[MetadataActiveActorsCount] = field(default_factory=list)
    registered_components: list[MetadataRegisteredComponents] = field(default_factory=list)
    extended_metadata: dict[str, str] = field(default_factory=dict)
    subscriptions: list[MetadataSubscription] = field(default_factory=list)
    http_endpoints: list[MetadataHTTPEndpoint] = field(default_factory=list)


def _subscription(raw: dict[str, Any]) -> MetadataSubscription:
    rules = [
        PubsubSubscriptionRule(match=rule.get("match", ""), path=rule.get("path", ""))
        for rule in (raw.get("rules") or {}).get("rules") or ()
    ]
    return MetadataSubscription(
        pubsub_name=raw.get("pubsub_name", ""),
        topic=raw.get("topic", ""),
        metadata=dict(raw.get("metadata") or {}),
        rules=PubsubSubscriptionRules(rules=rules),
        dead_letter_topic=raw.get("dead_letter_topic", ""),
    )


class MetadataMixin:
    """Sidecar metadata calls.

    The host class provides ``self._api`` with ``get_metadata(request)``
    returning a response dict (or None) and ``set_metadata(request)``.
    """

    _api: Any

    def get_metadata(self) -> GetMetadataResponse | None:
        """Return the sidecar's metadata, or None if it sent no response."""
        try:
            response = self._api.get_metadata({})
        except Exception as exc:
            raise ClientError(f"error invoking service: {exc}") from exc
        if response is None:
            return None

        actor_runtime = response.get("actor_runtime") or {}
        return GetMetadataResponse(
            id=response.get("id", ""),
            active_actors_count=[
                MetadataActiveActorsCount(type=a.get("type", ""), count=a.get("count", 0))
                for a in actor_runtime.get("active_actors") or ()
            ],
            registered_components=[
                MetadataRegisteredComponents(
                    name=c.get("name", ""),
                    type=c.get("type", ""),
                    version=c.get("version", ""),
                    capabilities=list(c.get("capabilities") or ()),
                )
                for c in response.get("registered_components") or ()
            ],
            extended_metadata=dict(response.get("extended_metadata") or {}),
            subscriptions=[_subscription(s) for s in response.get("subscriptions") or ()],
            http_endpoints=[
                MetadataHTTPEndpoint(name=e.get("name", ""))
                for e in response.get("http_endpoints") or ()
            ],
        )

    def set_metadata(self, key: str, value: str) -> None:
        """Set a value in the sidecar's extended metadata."""
        if not key:
            raise ClientError("a key is required")
        try:
            self._api.set_metadata({"key": key, "value": value})
        except Exception as exc:
            raise ClientError(f"error setting metadata: {exc}") from exc