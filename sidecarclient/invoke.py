"""Service invocation through the sidecar."""

from __future__ import annotations

import base64
import dataclasses
import enum
import json
from dataclasses import dataclass
from typing import Any

from sidecarclient.errors import ClientError


@dataclass
class DataContent:
    """Raw data sent to a service together with its content type."""

    data: bytes
    content_type: str = ""


class HTTPVerb(enum.IntEnum):
    """HTTP verbs understood by the sidecar's HTTP extension."""

    NONE = 0
    GET = 1
    HEAD = 2
    POST = 3
    PUT = 4
    DELETE = 5
    CONNECT = 6
    OPTIONS = 7
    TRACE = 8
    PATCH = 9


@dataclass(frozen=True)
class HTTPExtension:
    """Verb and query string forwarded to an HTTP application."""

    verb: HTTPVerb = HTTPVerb.NONE
    querystring: str = ""


def extract_method_and_query(name: str) -> tuple[str, str]:
    """Split a method name at its first '?' into method and query string."""
    method, _, query = name.partition("?")
    return method, query


def query_and_verb_to_http_extension(query: str, verb: str) -> HTTPExtension:
    """Build the HTTP extension for a verb; unknown verbs map to NONE with no query."""
    member = HTTPVerb.__members__.get(verb.upper())
    if member is None:
        return HTTPExtension(verb=HTTPVerb.NONE)
    return HTTPExtension(verb=member, querystring=query)


def _json_default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, (set, frozenset)):
        return list(value)
    raise TypeError(f"object of type {type(value).__name__} is not JSON serializable")


def _marshal_json(value: Any) -> bytes:
    text = json.dumps(
        value,
        default=_json_default,
        separators=(",", ":"),
        allow_nan=False,
        ensure_ascii=False,
    )
    return text.encode("utf-8")


def _check_invoke_args(app_id: str, method_name: str, verb: str) -> None:
    for name, value in (("app_id", app_id), ("method_name", method_name), ("verb", verb)):
        if not value:
            raise ClientError(f"missing required parameter: {name}")


class InvokeMixin:
    """Service invocation calls.

    The host class provides ``self._api`` with ``invoke_service(request)``;
    the request is a dict with ``id`` and ``message`` (``method``, ``data``,
    ``content_type``, ``http_extension``) and the response a dict holding
    ``data`` bytes, or None.
    """

    _api: Any

    def _invoke_service(
        self,
        app_id: str,
        method_name: str,
        verb: str,
        data: bytes | None = None,
        content_type: str = "",
    ) -> bytes | None:
        method, query = extract_method_and_query(method_name)
        request = {
            "id": app_id,
            "message": {
                "method": method,
                "data": data,
                "content_type": content_type,
                "http_extension": query_and_verb_to_http_extension(query, verb),
            },
        }
        response = self._api.invoke_service(request)
        if response is not None and response.get("data") is not None:
            return response["data"]
        return None

    def invoke_method(self, app_id: str, method_name: str, verb: str) -> bytes | None:
        """Invoke a method on another application without sending data."""
        _check_invoke_args(app_id, method_name, verb)
        return self._invoke_service(app_id, method_name, verb)

    def invoke_method_with_content(
        self, app_id: str, method_name: str, verb: str, content: DataContent | None
    ) -> bytes | None:
        """Invoke a method sending raw data with its content type."""
        _check_invoke_args(app_id, method_name, verb)
        if content is None:
            raise ClientError("content required")
        return self._invoke_service(
            app_id, method_name, verb, content.data, content.content_type
        )

    def invoke_method_with_custom_content(
        self,
        app_id: str,
        method_name: str,
        verb: str,
        content_type: str,
        content: Any,
    ) -> bytes | None:
        """Invoke a method sending a value serialized as JSON."""
        _check_invoke_args(app_id, method_name, verb)
        if not content_type:
            raise ClientError("content type required")
        if content is None:
            raise ClientError("content required")
        try:
            data = _marshal_json(content)
        except (TypeError, ValueError) as exc:
            raise ClientError(f"error serializing input struct: {exc}") from exc
        return self._invoke_service(app_id, method_name, verb, data, content_type)