import sqlite3
from http import HTTPStatus

import pytest

from microceph.client_config_items import (
    ClientConfigItem,
    ClientConfigItemFilter,
    client_config_item_exists,
    create_client_config_item,
    delete_client_config_item,
    delete_client_config_items,
    get_client_config_item,
    get_client_config_item_id,
    get_client_config_items,
    update_client_config_item,
)
from microceph.common import ConflictError, NotFoundError, StatusError
from microceph.schema import apply_schema_extensions


@pytest.fixture
def conn():
    connection = sqlite3.connect(":memory:")
    connection.execute(
        "CREATE TABLE internal_cluster_members (id INTEGER PRIMARY KEY, name TEXT NOT NULL)"
    )
    connection.executemany(
        "INSERT INTO internal_cluster_members (id, name) VALUES (?, ?)",
        [(1, "node-a"), (2, "node-b")],
    )
    apply_schema_extensions(connection, 0)
    yield connection
    connection.close()


def _add(conn, host, key, value):
    return create_client_config_item(conn, ClientConfigItem(host=host, key=key, value=value))


def _add_global(conn, key, value):
    conn.execute(
        "INSERT INTO client_config (member_id, key, value) VALUES (NULL, ?, ?)", (key, value)
    )


def test_create_then_get_round_trip(conn):
    row_id = _add(conn, "node-a", "rbd_cache", "true")
    item = get_client_config_item(conn, "node-a", "rbd_cache")
    assert item == ClientConfigItem(host="node-a", key="rbd_cache", value="true", id=row_id)


def test_get_id_matches_created_id(conn):
    row_id = _add(conn, "node-b", "rbd_cache_size", "1024")
    assert get_client_config_item_id(conn, "node-b", "rbd_cache_size") == row_id


def test_get_all_ordered_by_member_then_key(conn):
    _add(conn, "node-b", "a_key", "1")
    _add(conn, "node-a", "z_key", "2")
    _add(conn, "node-a", "b_key", "3")
    items = get_client_config_items(conn)
    assert [(i.host, i.key) for i in items] == [
        ("node-a", "b_key"),
        ("node-a", "z_key"),
        ("node-b", "a_key"),
    ]


def test_global_records_are_not_listed(conn):
    _add_global(conn, "rbd_cache", "false")
    _add(conn, "node-a", "rbd_cache", "true")
    items = get_client_config_items(conn)
    assert [(i.host, i.value) for i in items] == [("node-a", "true")]


def test_filter_by_key(conn):
    _add(conn, "node-a", "k1", "v1")
    _add(conn, "node-b", "k1", "v2")
    _add(conn, "node-a", "k2", "v3")
    items = get_client_config_items(conn, ClientConfigItemFilter(key="k1"))
    assert sorted(i.value for i in items) == ["v1", "v2"]
    assert all(i.key == "k1" for i in items)


def test_filter_by_host(conn):
    _add(conn, "node-a", "k1", "v1")
    _add(conn, "node-b", "k1", "v2")
    _add(conn, "node-a", "k2", "v3")
    items = get_client_config_items(conn, ClientConfigItemFilter(host="node-a"))
    assert [i.key for i in items] == ["k1", "k2"]
    assert all(i.host == "node-a" for i in items)


def test_filter_by_key_and_host(conn):
    _add(conn, "node-a", "k1", "v1")
    _add(conn, "node-b", "k1", "v2")
    items = get_client_config_items(conn, ClientConfigItemFilter(host="node-b", key="k1"))
    assert [(i.host, i.value) for i in items] == [("node-b", "v2")]


def test_multiple_filters_are_combined_with_or(conn):
    _add(conn, "node-a", "k1", "v1")
    _add(conn, "node-b", "k2", "v2")
    _add(conn, "node-b", "k3", "v3")
    items = get_client_config_items(
        conn,
        ClientConfigItemFilter(key="k1"),
        ClientConfigItemFilter(host="node-b", key="k3"),
    )
    assert [(i.host, i.key) for i in items] == [("node-a", "k1"), ("node-b", "k3")]


def test_empty_filter_is_rejected(conn):
    with pytest.raises(ValueError, match="Cannot filter on empty ClientConfigItemFilter"):
        get_client_config_items(conn, ClientConfigItemFilter())


def test_get_missing_raises_not_found(conn):
    with pytest.raises(NotFoundError) as info:
        get_client_config_item(conn, "node-a", "missing")
    assert info.value.status == HTTPStatus.NOT_FOUND


def test_get_id_missing_raises_not_found(conn):
    with pytest.raises(NotFoundError):
        get_client_config_item_id(conn, "node-a", "missing")


def test_exists(conn):
    _add(conn, "node-a", "k1", "v1")
    assert client_config_item_exists(conn, "node-a", "k1") is True
    assert client_config_item_exists(conn, "node-b", "k1") is False


def test_create_duplicate_is_conflict(conn):
    _add(conn, "node-a", "k1", "v1")
    with pytest.raises(ConflictError) as info:
        _add(conn, "node-a", "k1", "other")
    assert info.value.status == HTTPStatus.CONFLICT
    assert get_client_config_item(conn, "node-a", "k1").value == "v1"


def test_create_clashing_with_unique_index_raises_status_error(conn):
    _add_global(conn, "k1", "global")
    with pytest.raises(StatusError, match='Failed to create "client_config" entry'):
        _add(conn, "unknown-host", "k1", "v1")


def test_delete_one(conn):
    _add(conn, "node-a", "k1", "v1")
    _add(conn, "node-b", "k1", "v2")
    delete_client_config_item(conn, "k1", "node-a")
    assert not client_config_item_exists(conn, "node-a", "k1")
    assert client_config_item_exists(conn, "node-b", "k1")


def test_delete_one_missing_raises_not_found(conn):
    with pytest.raises(NotFoundError):
        delete_client_config_item(conn, "k1", "node-a")


def test_delete_many_removes_key_everywhere(conn):
    _add_global(conn, "k1", "global")
    _add(conn, "node-a", "k1", "v1")
    _add(conn, "node-b", "k1", "v2")
    _add(conn, "node-a", "k2", "v3")
    delete_client_config_items(conn, "k1")
    remaining = conn.execute("SELECT key FROM client_config").fetchall()
    assert remaining == [("k2",)]


def test_delete_many_without_matches_is_silent(conn):
    _add(conn, "node-a", "k2", "v3")
    delete_client_config_items(conn, "k1")
    assert [i.key for i in get_client_config_items(conn)] == ["k2"]


def test_update_changes_value_and_host(conn):
    row_id = _add(conn, "node-a", "k1", "v1")
    update_client_config_item(
        conn, "node-a", "k1", ClientConfigItem(host="node-b", key="k1", value="v9")
    )
    assert not client_config_item_exists(conn, "node-a", "k1")
    item = get_client_config_item(conn, "node-b", "k1")
    assert (item.id, item.value) == (row_id, "v9")


def test_update_missing_raises_not_found(conn):
    with pytest.raises(NotFoundError):
        update_client_config_item(
            conn, "node-a", "k1", ClientConfigItem(host="node-a", key="k1", value="v")
        )


def test_update_into_existing_record_raises_status_error(conn):
    _add(conn, "node-a", "k1", "v1")
    _add(conn, "node-a", "k2", "v2")
    with pytest.raises(StatusError, match='Update "client_config" entry failed'):
        update_client_config_item(
            conn, "node-a", "k2", ClientConfigItem(host="node-a", key="k1", value="x")
        )