# sidecarclient

Building blocks for talking to an application runtime sidecar. The package
validates arguments, builds request dictionaries and turns response
dictionaries into dataclasses for these areas:

- **Endpoints** (`sidecarclient.endpoint`) — parse a sidecar address into a
  gRPC dial target and a TLS flag.
- **Service invocation** (`sidecarclient.invoke`) — call a method on another
  application, with or without a body, carrying the HTTP verb and query string.
- **State** (`sidecarclient.state`) — save, get, delete, bulk operations,
  transactions and queries, with consistency and concurrency options and ETags.
- **Locks** (`sidecarclient.lock`) — try to take a lock and release it.
- **Metadata** (`sidecarclient.metadata`) — read the sidecar's metadata and set
  extended metadata.
- **Jobs** (`sidecarclient.scheduling`) — schedule, fetch and delete jobs.
- **CloudEvents** (`sidecarclient.cloudevents`) — tell whether a JSON payload
  is a CloudEvent.

The package has no runtime dependencies.

## Installation

```
pip install sidecarclient
```

To run the test suite as well:

```
pip install "sidecarclient[test]"
pytest
```

## Using the mixins

Each area is a mixin class: `InvokeMixin`, `StateMixin`, `LockMixin`,
`MetadataMixin` and `SchedulingMixin`. A mixin expects its host class to set
`self._api` to an object that carries out the calls: it has one method per
sidecar call (`invoke_service`, `save_state`, `get_state`, `try_lock_alpha1`,
`get_metadata`, `schedule_job_alpha1` and so on), each taking a request dict
and returning a response dict or `None`. The docstring of each mixin lists the
methods and fields it uses.

```python
from sidecarclient.invoke import InvokeMixin
from sidecarclient.lock import LockMixin, LockRequest
from sidecarclient.state import StateMixin


class SidecarClient(InvokeMixin, StateMixin, LockMixin):
    def __init__(self, api):
        self._api = api


client = SidecarClient(api)
client.save_state("store", "key1", b"test", None)
item = client.get_state("store", "key1", None)
client.try_lock_alpha1("store", LockRequest(resource_id="resource1", lock_owner="owner1"))
```

Invalid arguments, and failures raised by the `_api` object, are reported by
raising `ClientError` from `sidecarclient.errors`.

## Endpoints

```python
from sidecarclient.endpoint import parse_grpc_endpoint

parse_grpc_endpoint(":5000")                 # ParsedEndpoint(target="dns:localhost:5000", tls=False)
parse_grpc_endpoint("https://myhost:443")    # ParsedEndpoint(target="dns:myhost:443", tls=True)
parse_grpc_endpoint("unix:my.sock?tls=true") # ParsedEndpoint(target="unix:my.sock", tls=True)
parse_grpc_endpoint("vsock:mycid:5000")      # ParsedEndpoint(target="vsock:mycid:5000", tls=False)
```

Supported schemes are `dns`, `unix`, `unix-abstract`, `vsock`, `http` and
`https`. A host without a port gets port 443. A `tls` query parameter (`true`
or `false`) may be given for every scheme except `http` and `https`; any other
query parameter, a path on a DNS target, or an unknown scheme raises
`ClientError`.

## Service invocation

```python
from sidecarclient.invoke import DataContent, extract_method_and_query, query_and_verb_to_http_extension

extract_method_and_query("method?foo=bar")          # ("method", "foo=bar")
query_and_verb_to_http_extension("foo=bar", "post") # HTTPExtension(verb=HTTPVerb.POST, querystring="foo=bar")

client.invoke_method("app", "fn", "get")
client.invoke_method_with_content("app", "fn", "post", DataContent(data=b"ping", content_type="text/plain"))
client.invoke_method_with_custom_content("app", "fn", "post", "application/json", {"key": "value"})
```

Verbs are matched case-insensitively; an unknown verb becomes `HTTPVerb.NONE`
and the query string is dropped. Custom content is serialised to compact JSON;
dataclasses become objects and bytes become base64 strings.

## State

Saving uses strong consistency and last-write concurrency unless options are
given:

```python
from sidecarclient.state import (
    ETag,
    StateConcurrency,
    StateConsistency,
    StateOptions,
    with_concurrency,
    with_consistency,
)

client.save_state_with_etag(
    "store", "key1", b"test", "1", {"meta1": "value1"},
    with_consistency(StateConsistency.EVENTUAL),
    with_concurrency(StateConcurrency.FIRST_WRITE),
)
items = client.get_bulk_state("store", ["key1", "key2"], None, 1)
client.delete_state_with_etag(
    "store", "key1", ETag(value="1"), None,
    StateOptions(concurrency=StateConcurrency.FIRST_WRITE, consistency=StateConsistency.EVENTUAL),
)
```

`str()` of `StateConsistency`, `StateConcurrency` and `OperationType` gives
`"eventual"`, `"strong"`, `"first-write"`, `"last-write"`, `"upsert"`,
`"delete"`, or `"undefined"` for any value out of range.
`to_proto_duration` splits a `timedelta` into a `Duration` of seconds and
nanoseconds.

## Locks, metadata and jobs

`unlock_alpha1` returns an `UnlockResponse` holding the numeric status and its
`UnlockStatus` name (for example `"SUCCESS"`). `get_metadata` returns a
`GetMetadataResponse`, or `None` when the sidecar sent no response;
`set_metadata` needs a non-empty key. `schedule_job_alpha1` leaves unset
optional fields of a `Job` out of the request.

## CloudEvents

```python
from sidecarclient.cloudevents import is_cloud_event

is_cloud_event(b'{"id":"123","source":"source","specversion":"1.0","type":"type"}')  # True
is_cloud_event(b'{"foo":"bar"}')                                                      # False
```

## What the package does not do

- It opens no connection to a sidecar and carries no transport: every call
  goes through the `_api` object you supply, and there is no ready-made client
  class or readiness wait.
- It does not publish events, subscribe to topics, read secrets or manage
  workflows.
- It provides no command-line tool.