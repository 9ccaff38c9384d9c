import sqlite3
from http import HTTPStatus

import pytest

from microceph.common import ConflictError, NotFoundError, StatusError
from microceph.schema import schema_update_1
from microceph.services import (
    Service,
    ServiceFilter,
    create_service,
    delete_service,
    delete_services,
    get_service,
    get_service_id,
    get_services,
    service_exists,
    update_service,
)


@pytest.fixture
def connection():
    conn = sqlite3.connect(":memory:")
    conn.execute(
        "CREATE TABLE internal_cluster_members (id INTEGER PRIMARY KEY, name TEXT NOT NULL UNIQUE)"
    )
    conn.executemany(
        "INSERT INTO internal_cluster_members (id, name) VALUES (?, ?)",
        [(1, "foonode"), (2, "barnode")],
    )
    conn.commit()
    schema_update_1(conn)
    yield conn
    conn.close()


def _populate(conn):
    for member, service in [
        ("barnode", "mon"),
        ("foonode", "mon"),
        ("foonode", "mgr"),
        ("barnode", "mds"),
    ]:
        create_service(conn, Service(member=member, service=service))


def test_create_and_get_round_trip(connection):
    new_id = create_service(connection, Service(member="foonode", service="mon"))
    found = get_service(connection, "foonode", "mon")
    assert found == Service(member="foonode", service="mon", id=new_id)


def test_get_service_id_matches_created_id(connection):
    new_id = create_service(connection, Service(member="barnode", service="rgw"))
    assert get_service_id(connection, "barnode", "rgw") == new_id


def test_create_duplicate_conflicts(connection):
    create_service(connection, Service(member="foonode", service="mon"))
    with pytest.raises(ConflictError) as info:
        create_service(connection, Service(member="foonode", service="mon"))
    assert info.value.status == HTTPStatus.CONFLICT


def test_same_service_on_different_members_allowed(connection):
    first = create_service(connection, Service(member="foonode", service="mon"))
    second = create_service(connection, Service(member="barnode", service="mon"))
    assert first != second
    assert len(get_services(connection, ServiceFilter(service="mon"))) == 2


def test_create_for_unknown_member_fails(connection):
    with pytest.raises(StatusError):
        create_service(connection, Service(member="ghostnode", service="mon"))
    assert get_services(connection) == []


def test_get_all_ordered_by_member_then_service(connection):
    _populate(connection)
    result = [(s.member, s.service) for s in get_services(connection)]
    assert result == [
        ("foonode", "mgr"),
        ("foonode", "mon"),
        ("barnode", "mds"),
        ("barnode", "mon"),
    ]


def test_filter_by_member(connection):
    _populate(connection)
    result = get_services(connection, ServiceFilter(member="barnode"))
    assert [s.service for s in result] == ["mds", "mon"]
    assert all(s.member == "barnode" for s in result)


def test_filter_by_service(connection):
    _populate(connection)
    result = get_services(connection, ServiceFilter(service="mon"))
    assert [s.member for s in result] == ["foonode", "barnode"]


def test_filter_by_member_and_service(connection):
    _populate(connection)
    result = get_services(connection, ServiceFilter(member="foonode", service="mgr"))
    assert [(s.member, s.service) for s in result] == [("foonode", "mgr")]


def test_multiple_filters_are_combined_with_or(connection):
    _populate(connection)
    result = get_services(
        connection,
        ServiceFilter(member="foonode", service="mgr"),
        ServiceFilter(service="mds"),
    )
    assert [(s.member, s.service) for s in result] == [("foonode", "mgr"), ("barnode", "mds")]


def test_empty_filter_rejected(connection):
    with pytest.raises(ValueError, match="Cannot filter on empty ServiceFilter"):
        get_services(connection, ServiceFilter())


def test_get_missing_service_not_found(connection):
    with pytest.raises(NotFoundError) as info:
        get_service(connection, "foonode", "mon")
    assert info.value.status == HTTPStatus.NOT_FOUND


def test_get_missing_id_not_found(connection):
    with pytest.raises(NotFoundError):
        get_service_id(connection, "foonode", "mon")


def test_service_exists(connection):
    create_service(connection, Service(member="foonode", service="mds"))
    assert service_exists(connection, "foonode", "mds") is True
    assert service_exists(connection, "barnode", "mds") is False


def test_delete_service(connection):
    _populate(connection)
    delete_service(connection, "foonode", "mon")
    assert service_exists(connection, "foonode", "mon") is False
    assert service_exists(connection, "barnode", "mon") is True


def test_delete_missing_service_not_found(connection):
    with pytest.raises(NotFoundError):
        delete_service(connection, "foonode", "mon")


def test_delete_services_removes_only_that_member(connection):
    _populate(connection)
    delete_services(connection, "foonode")
    remaining = get_services(connection)
    assert {s.member for s in remaining} == {"barnode"}
    assert len(remaining) == 2


def test_delete_services_for_member_without_services_is_quiet(connection):
    _populate(connection)
    before = get_services(connection)
    delete_services(connection, "ghostnode")
    assert get_services(connection) == before


def test_update_service(connection):
    row_id = create_service(connection, Service(member="foonode", service="mon"))
    update_service(connection, "foonode", "mon", Service(member="barnode", service="mgr"))
    assert service_exists(connection, "foonode", "mon") is False
    assert get_service(connection, "barnode", "mgr").id == row_id


def test_update_missing_service_not_found(connection):
    with pytest.raises(NotFoundError):
        update_service(connection, "foonode", "mon", Service(member="foonode", service="mgr"))


def test_update_to_unknown_member_fails(connection):
    create_service(connection, Service(member="foonode", service="mon"))
    with pytest.raises(StatusError):
        update_service(connection, "foonode", "mon", Service(member="ghostnode", service="mon"))
    assert service_exists(connection, "foonode", "mon") is True