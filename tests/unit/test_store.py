from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest
from elasticsearch import ConnectionError as ESConnectionError
from elasticsearch import NotFoundError

from xlsx_indexer.models.config_models import ElasticsearchConfig
from xlsx_indexer.search.store import IndexStore, TransportFailureError


def _not_found() -> NotFoundError:
    return NotFoundError("index_not_found_exception", meta=MagicMock(status=404), body={})


@pytest.fixture()
def client() -> MagicMock:
    return MagicMock()


@pytest.fixture()
def store(client) -> IndexStore:
    factory = MagicMock(return_value=client)
    return IndexStore(ElasticsearchConfig(), client_factory=factory)


def test_connect_is_lazy_and_cached(client):
    factory = MagicMock(return_value=client)
    s = IndexStore(client_factory=factory)
    assert not s.is_connected
    assert s.connect() is client
    assert s.connect() is client
    factory.assert_called_once()
    assert s.is_connected


def test_concurrent_connect_creates_one_client(client):
    factory = MagicMock(return_value=client)
    s = IndexStore(client_factory=factory)
    threads = [threading.Thread(target=s.connect) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    factory.assert_called_once()


def test_close_is_idempotent(store, client):
    store.connect()
    store.close()
    store.close()
    client.close.assert_called_once()
    assert not store.is_connected


def test_close_without_connect(client):
    factory = MagicMock(return_value=client)
    IndexStore(client_factory=factory).close()
    factory.assert_not_called()


def test_context_manager_closes(client):
    factory = MagicMock(return_value=client)
    with IndexStore(client_factory=factory) as s:
        s.connect()
    client.close.assert_called_once()


def test_client_kwargs_basic_auth():
    cfg = ElasticsearchConfig(
        hosts=("https://es:9200",), username="elastic", password="pw",
        verify_certs=False, ca_certs="/certs/ca.crt", request_timeout=15,
    )
    factory = MagicMock()
    IndexStore(cfg, client_factory=factory).connect()
    factory.assert_called_once_with(
        hosts=["https://es:9200"],
        basic_auth=("elastic", "pw"),
        verify_certs=False,
        ca_certs="/certs/ca.crt",
        request_timeout=15,
    )


def test_client_kwargs_api_key_wins():
    cfg = ElasticsearchConfig(username="elastic", password="pw", api_key="abc")
    factory = MagicMock()
    IndexStore(cfg, client_factory=factory).connect()
    kwargs = factory.call_args.kwargs
    assert kwargs["api_key"] == "abc"
    assert "basic_auth" not in kwargs


def test_invalid_settings_become_transport_failure():
    factory = MagicMock(side_effect=ValueError("bad url"))
    with pytest.raises(TransportFailureError, match="invalid connection settings"):
        IndexStore(client_factory=factory).connect()


def test_bulk_index_passes_operations(store, client):
    client.bulk.return_value = MagicMock(body={"errors": False, "items": []})
    ops = [{"index": {"_index": "idx"}}, {"a": "1"}]
    assert store.bulk_index("idx", ops) == {"errors": False, "items": []}
    client.bulk.assert_called_once_with(operations=ops, index="idx")


def test_bulk_connection_error(store, client):
    client.bulk.side_effect = ESConnectionError("connection refused")
    with pytest.raises(TransportFailureError, match="bulk failed"):
        store.bulk_index("idx", [])


def test_count(store, client):
    client.count.return_value = {"count": 7}
    assert store.count("idx") == 7


def test_count_missing_index_is_zero(store, client):
    client.count.side_effect = _not_found()
    assert store.count("missing") == 0


def test_search_maps_hits(store, client):
    client.search.return_value = {"hits": {"hits": [
        {"_id": "1", "_index": "idx", "_source": {"producto": "Laptop", "row_number": 1}},
    ]}}
    docs = store.search("idx", query="laptop", size=5, filters={"provincia": "Heredia"})
    assert docs == [{"_id": "1", "_index": "idx", "producto": "Laptop", "row_number": 1}]
    kwargs = client.search.call_args.kwargs
    assert kwargs["size"] == 5
    assert kwargs["query"]["bool"]["filter"] == [{"match_phrase": {"provincia": "Heredia"}}]


def test_search_missing_index_is_empty(store, client):
    client.search.side_effect = _not_found()
    assert store.search("missing") == []


def test_search_other_errors_propagate(store, client):
    client.search.side_effect = ESConnectionError("down")
    with pytest.raises(TransportFailureError):
        store.search("idx")


def test_list_indices_hides_dot_indices(store, client):
    client.indices.get.return_value = {"ventas": {}, ".kibana": {}, "excel_data": {}}
    assert store.list_indices() == ["excel_data", "ventas"]
    assert store.list_indices(include_hidden=True) == [".kibana", "excel_data", "ventas"]


def test_ping(store, client):
    client.ping.return_value = True
    assert store.ping() is True
    client.ping.side_effect = ESConnectionError("down")
    assert store.ping() is False


def test_cluster_info(store, client):
    client.info.return_value = {
        "cluster_name": "docker-cluster",
        "version": {"number": "8.11.0", "lucene_version": "9.8.0"},
    }
    assert store.cluster_info() == "Cluster: docker-cluster, Version: 8.11.0, Lucene: 9.8.0"
