#!/usr/bin/env python3

import pytest

from raxcloud.errors import MissingArgument
from raxcloud.resources.databases import DatabaseInstance
from raxcloud.waiter import WaitState


def test_create_instance(virtual_rax, fake_api) -> None:
    fake_api.add(
        "POST",
        "/instances",
        fake_api.reply(200, {"instance": {"id": "db-1", "status": "BUILD"}}),
    )

    instance = virtual_rax.databases.create(
        "1", 5, name="orders", databases=[{"name": "app"}], users=[{"name": "app", "password": "x"}]
    )

    request = fake_api.requests[0]
    assert request.url.host == "dfw.databases.api.example.com"
    assert fake_api.body(request) == {
        "instance": {
            "flavorRef": "1",
            "volume": {"size": 5},
            "name": "orders",
            "databases": [{"name": "app"}],
            "users": [{"name": "app", "password": "x"}],
        }
    }
    assert instance.name == "orders"
    assert instance.status == "BUILD"


def test_create_instance_requires_flavor_and_size(virtual_rax) -> None:
    with pytest.raises(MissingArgument):
        virtual_rax.databases.create("1", 0)
    with pytest.raises(MissingArgument):
        virtual_rax.databases.create(None, 5)


def test_status_is_matched_case_insensitively(virtual_rax, fake_api, scheduler) -> None:
    fake_api.add(
        "GET",
        "/instances/db-1",
        fake_api.reply(200, {"instance": {"id": "db-1", "status": "build"}}),
        fake_api.reply(200, {"instance": {"id": "db-1", "status": "active"}}),
    )
    instance = DatabaseInstance(virtual_rax.databases, {"id": "db-1", "status": "BUILD"})

    handle = instance.set_wait({"status": "ACTIVE"}, interval_ms=1000, max_wait_s=30)
    scheduler.advance(2)

    assert handle.state is WaitState.SATISFIED
    assert instance.status == "active"


def test_create_with_wait(rax, fake_api) -> None:
    fake_api.add("POST", "/instances", fake_api.reply(200, {"instance": {"id": "db-1", "status": "BUILD"}}))
    fake_api.add(
        "GET",
        "/instances/db-1",
        fake_api.reply(200, {"instance": {"id": "db-1", "status": "BUILD"}}),
        fake_api.reply(200, {"instance": {"id": "db-1", "status": "ACTIVE", "hostname": "db.example"}}),
    )

    instance = rax.databases.create_with_wait("1", 5, name="orders", interval_ms=10, max_wait_s=5)

    assert instance.hostname == "db.example"


def test_databases_and_users(virtual_rax, fake_api) -> None:
    fake_api.add("GET", "/instances/db-1/databases", fake_api.reply(200, {"databases": [{"name": "app"}]}))
    fake_api.add("POST", "/instances/db-1/databases", fake_api.reply(202))
    fake_api.add("DELETE", "/instances/db-1/databases/app", fake_api.reply(202))
    fake_api.add("GET", "/instances/db-1/users", fake_api.reply(200, {"users": [{"name": "app"}]}))
    fake_api.add("POST", "/instances/db-1/users", fake_api.reply(202))
    instance = DatabaseInstance(virtual_rax.databases, {"id": "db-1", "status": "ACTIVE"})

    assert instance.list_databases() == [{"name": "app"}]
    instance.create_databases([{"name": "reports"}])
    instance.delete_database("app")
    assert instance.list_users() == [{"name": "app"}]
    instance.create_users([{"name": "ro", "password": "x"}])

    assert fake_api.body(fake_api.calls("POST", "/instances/db-1/databases")[0]) == {
        "databases": [{"name": "reports"}]
    }
    assert fake_api.body(fake_api.calls("POST", "/instances/db-1/users")[0]) == {
        "users": [{"name": "ro", "password": "x"}]
    }
    with pytest.raises(MissingArgument):
        instance.create_users([])


def test_destroy_instance(virtual_rax, fake_api) -> None:
    fake_api.add("DELETE", "/instances/db-1", fake_api.reply(202))
    instance = DatabaseInstance(virtual_rax.databases, {"id": "db-1"})
    assert instance.destroy() is True
