import datetime
import json

import pytest

from sidecarclient.errors import ClientError
from sidecarclient.state import (
    DeleteStateItem,
    ETag,
    OperationType,
    SetStateItem,
    StateConcurrency,
    StateConsistency,
    StateMixin,
    StateOperation,
    StateOptions,
    has_required_state_args,
    to_proto_duration,
    to_proto_state_options,
    with_concurrency,
    with_consistency,
)

STORE = "store"
DATA = "test"


class FakeStateAPI:
    def __init__(self):
        self.store = {}
        self.version = 0
        self.requests = []

    def _put(self, key, value):
        self.version += 1
        self.store[key] = (value, str(self.version))

    def save_state(self, request):
        self.requests.append(("save_state", request))
        for state in request["states"]:
            self._put(state["key"], state["value"])

    def get_state(self, request):
        self.requests.append(("get_state", request))
        value, etag = self.store.get(request["key"], (None, "0"))
        return {"data": value, "etag": etag, "metadata": {}}

    def get_bulk_state(self, request):
        self.requests.append(("get_bulk_state", request))
        items = [
            {"key": k, "data": self.store[k][0], "etag": self.store[k][1]}
            for k in request["keys"]
            if k in self.store
        ]
        return {"items": items}

    def delete_state(self, request):
        self.requests.append(("delete_state", request))
        self.store.pop(request["key"], None)

    def delete_bulk_state(self, request):
        self.requests.append(("delete_bulk_state", request))
        for state in request["states"]:
            self.store.pop(state["key"], None)

    def execute_state_transaction(self, request):
        self.requests.append(("execute_state_transaction", request))
        for op in request["operations"]:
            item = op["request"]
            if op["operation_type"] == "upsert":
                self._put(item["key"], item["value"])
            elif op["operation_type"] == "delete":
                self.store.pop(item["key"], None)

    def query_state_alpha1(self, request):
        self.requests.append(("query_state_alpha1", request))
        json.loads(request["query"])
        return {
            "results": [
                {"key": k, "data": v, "etag": e} for k, (v, e) in self.store.items()
            ],
            "token": "",
        }


class FailingAPI:
    def __getattr__(self, name):
        def fail(request):
            raise RuntimeError("boom")

        return fail


class FakeClient(StateMixin):
    def __init__(self, api):
        self._api = api


@pytest.fixture
def api():
    return FakeStateAPI()


@pytest.fixture
def client(api):
    return FakeClient(api)


def test_operation_type_strings():
    assert str(OperationType(-1)) == "undefined"
    assert str(OperationType(1)) == "upsert"
    assert str(OperationType(2)) == "delete"


def test_concurrency_strings():
    assert str(StateConcurrency(-1)) == "undefined"
    assert str(StateConcurrency(1)) == "first-write"
    assert str(StateConcurrency(2)) == "last-write"


def test_consistency_strings():
    assert str(StateConsistency(-1)) == "undefined"
    assert str(StateConsistency(1)) == "eventual"
    assert str(StateConsistency(2)) == "strong"


def test_duration_converter():
    assert to_proto_duration(datetime.timedelta(seconds=10)).seconds == 10


def test_duration_fraction():
    d = to_proto_duration(datetime.timedelta(seconds=1, milliseconds=500))
    assert (d.seconds, d.nanos) == (1, 500_000_000)


def test_state_options_converter():
    p = to_proto_state_options(
        StateOptions(
            concurrency=StateConcurrency.LAST_WRITE,
            consistency=StateConsistency.STRONG,
        )
    )
    assert p.concurrency == StateConcurrency.LAST_WRITE
    assert p.consistency == StateConsistency.STRONG


def test_state_options_default():
    p = to_proto_state_options(None)
    assert p == StateOptions(StateConcurrency.LAST_WRITE, StateConsistency.STRONG)


def test_option_functions():
    opts = StateOptions()
    with_consistency(StateConsistency.EVENTUAL)(opts)
    with_concurrency(StateConcurrency.FIRST_WRITE)(opts)
    assert opts == StateOptions(StateConcurrency.FIRST_WRITE, StateConsistency.EVENTUAL)


def test_has_required_state_args():
    with pytest.raises(ClientError):
        has_required_state_args("", "key")
    with pytest.raises(ClientError):
        has_required_state_args("storeName", "")


def test_save_and_get_state(client, api):
    client.save_state(STORE, "key1", DATA.encode(), None)
    item = client.get_state(STORE, "key1", None)
    assert item.etag
    assert item.key == "key1"
    assert item.value == DATA.encode()
    saved = api.requests[0][1]["states"][0]
    assert saved["options"] == StateOptions(
        StateConcurrency.LAST_WRITE, StateConsistency.STRONG
    )
    assert saved["etag"] is None


def test_get_state_with_consistency(client, api):
    StateMixin.save_state(client, STORE, "key1", DATA.encode(), None)
    item = StateMixin.get_state_with_consistency(
        client, STORE, "key1", None, StateConsistency.STRONG
    )
    assert item.value == DATA.encode()
    assert api.requests[-1][1]["consistency"] == StateConsistency.STRONG


def test_save_state_with_etag_and_options(client, api):
    meta = {"meta1": "value1"}
    client.save_state_with_etag(
        STORE,
        "key1",
        DATA.encode(),
        "1",
        meta,
        with_consistency(StateConsistency.EVENTUAL),
        with_concurrency(StateConcurrency.FIRST_WRITE),
    )
    saved = api.requests[0][1]["states"][0]
    assert saved["etag"] == {"value": "1"}
    assert saved["metadata"] == meta
    assert saved["options"] == StateOptions(
        StateConcurrency.FIRST_WRITE, StateConsistency.EVENTUAL
    )


def test_delete_state(client):
    StateMixin.delete_state(client, STORE, "key1", None)
    StateMixin.save_state(client, STORE, "key1", DATA.encode(), None)
    assert StateMixin.get_state(client, STORE, "key1", None).value == DATA.encode()
    StateMixin.delete_state(client, STORE, "key1", None)
    item = StateMixin.get_state(client, STORE, "key1", None)
    assert item.etag
    assert item.key == "key1"
    assert item.value is None


def test_delete_state_with_etag(client, api):
    client.save_state(STORE, "key1", DATA.encode(), None)
    client.delete_state_with_etag(
        STORE,
        "key1",
        ETag(value="100"),
        {"meta1": "value1"},
        StateOptions(StateConcurrency.FIRST_WRITE, StateConsistency.EVENTUAL),
    )
    request = api.requests[-1][1]
    assert request["etag"] == {"value": "100"}
    assert request["options"].concurrency == StateConcurrency.FIRST_WRITE
    item = client.get_state_with_consistency(
        STORE, "key1", {"meta1": "value1"}, StateConsistency.EVENTUAL
    )
    assert item.value is None


def test_state_args_required(client):
    with pytest.raises(ClientError):
        StateMixin.get_state(client, "", "key", None)
    with pytest.raises(ClientError):
        StateMixin.delete_state(client, STORE, "", None)
    with pytest.raises(ClientError):
        StateMixin.save_state(client, "", "key", b"x", None)


def _items(keys):
    return [
        SetStateItem(
            key=k,
            value=DATA.encode(),
            metadata={},
            etag=ETag(value="1"),
            options=StateOptions(StateConcurrency.FIRST_WRITE, StateConsistency.EVENTUAL),
        )
        for k in keys
    ]


def _delete_items(keys):
    return [
        DeleteStateItem(
            key=k,
            metadata={},
            etag=ETag(value="1"),
            options=StateOptions(StateConcurrency.FIRST_WRITE, StateConsistency.EVENTUAL),
        )
        for k in keys
    ]


KEYS = ["key1", "key2", "key3"]


def test_delete_bulk_missing_data(client, api):
    StateMixin.delete_bulk_state(client, STORE, KEYS, None)
    StateMixin.delete_bulk_state_items(client, STORE, _delete_items(KEYS))
    assert [r[0] for r in api.requests] == ["delete_bulk_state", "delete_bulk_state"]
    assert [s["key"] for s in api.requests[0][1]["states"]] == KEYS
    assert StateMixin.get_bulk_state(client, STORE, KEYS, None, 1) == []


def test_delete_bulk_items_empty_store_fails(client):
    client.save_bulk_state(STORE, *_items(KEYS))
    assert len(client.get_bulk_state(STORE, KEYS, None, 1)) == len(KEYS)
    with pytest.raises(ClientError):
        client.delete_bulk_state_items("", _delete_items(KEYS))


def test_delete_bulk_state(client):
    client.save_bulk_state(STORE, *_items(KEYS))
    assert len(client.get_bulk_state(STORE, KEYS, None, 1)) == len(KEYS)
    client.delete_bulk_state(STORE, KEYS, None)
    assert client.get_bulk_state(STORE, KEYS, None, 1) == []


def test_delete_bulk_state_items(client):
    client.save_bulk_state(STORE, *_items(KEYS))
    assert len(client.get_bulk_state(STORE, KEYS, None, 1)) == len(KEYS)
    client.delete_bulk_state_items(STORE, _delete_items(KEYS))
    assert client.get_bulk_state(STORE, KEYS, None, 1) == []


def test_delete_bulk_empty_is_noop(client, api):
    assert StateMixin.delete_bulk_state(client, STORE, [], None) is None
    assert StateMixin.delete_bulk_state_items(client, STORE, []) is None
    assert api.requests == []


def test_save_bulk_state_requires_items(client):
    with pytest.raises(ClientError):
        client.save_bulk_state(STORE)
    with pytest.raises(ClientError):
        client.save_bulk_state("", *_items(KEYS))


def test_get_bulk_state_requires_args(client):
    with pytest.raises(ClientError):
        StateMixin.get_bulk_state(client, "", KEYS, None, 1)
    with pytest.raises(ClientError):
        StateMixin.get_bulk_state(client, STORE, [], None, 1)


def test_state_transactions(client, api):
    data = '{ "message": "test" }'
    keys = ["k1", "k2", "k3"]
    adds = [
        StateOperation(type=OperationType.UPSERT, item=SetStateItem(key=k, value=data.encode()))
        for k in keys
    ]
    client.execute_state_transaction(STORE, {}, adds)
    assert api.requests[0][1]["operations"][0]["operation_type"] == "upsert"

    items = client.get_bulk_state(STORE, keys, None, 10)
    assert len(items) == len(keys)
    upserts = [
        StateOperation(
            type=OperationType.UPSERT,
            item=SetStateItem(key=i.key, etag=ETag(value=i.etag), value=i.value),
        )
        for i in items
    ]
    client.execute_state_transaction(STORE, {}, upserts)

    items = client.get_bulk_state(STORE, keys, None, 10)
    assert len(items) == len(keys)
    assert items[0].value == data.encode()

    for op in adds:
        op.type = OperationType.DELETE
    client.execute_state_transaction(STORE, {}, adds)
    assert client.get_bulk_state(STORE, keys, None, 3) == []


def test_transaction_requires_store(client):
    with pytest.raises(ClientError):
        StateMixin.execute_state_transaction(client, "", {}, [])


def test_transaction_without_ops_is_noop(client, api):
    assert StateMixin.execute_state_transaction(client, STORE, {}, []) is None
    assert api.requests == []


def test_query_state(client):
    StateMixin.save_state(client, STORE, "key1", DATA.encode(), None)
    StateMixin.save_state(client, STORE, "key2", DATA.encode(), None)
    with pytest.raises(ClientError):
        StateMixin.query_state_alpha1(client, "", "", None)
    with pytest.raises(ClientError):
        StateMixin.query_state_alpha1(client, STORE, "", None)
    with pytest.raises(ClientError):
        StateMixin.query_state_alpha1(client, STORE, "bad syntax", None)
    resp = StateMixin.query_state_alpha1(client, STORE, "{}", None)
    assert len(resp.results) == 2
    for item in resp.results:
        assert item.key in ("key1", "key2")
        assert item.value == DATA.encode()


def test_api_errors_are_wrapped():
    client = FakeClient(FailingAPI())
    with pytest.raises(ClientError, match="error saving state"):
        client.save_state(STORE, "key", b"x", None)
    with pytest.raises(ClientError, match="error getting state"):
        client.get_state(STORE, "key", None)
    with pytest.raises(ClientError, match="error deleting state"):
        client.delete_state(STORE, "key", None)
    with pytest.raises(ClientError, match="error querying state"):
        client.query_state_alpha1(STORE, "{}", None)
    with pytest.raises(ClientError, match="error executing state transaction"):
        client.execute_state_transaction(
            STORE, {}, [StateOperation(OperationType.UPSERT, SetStateItem(key="k"))]
        )