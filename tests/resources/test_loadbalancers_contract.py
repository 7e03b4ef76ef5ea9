#!/usr/bin/env python3

import pytest

from raxcloud.errors import ArgumentError, MissingArgument
from raxcloud.resources.loadbalancers import (
    LoadBalancer,
    VirtualIpType,
    validate_load_balancer,
)


NODES = [{"address": "10.0.0.1", "port": 80, "condition": "ENABLED"}]
VIPS = [{"type": VirtualIpType.PUBLIC}]
LB_BUILD = {
    "id": 71,
    "name": "web-lb",
    "protocol": "HTTP",
    "port": 80,
    "status": "BUILD",
    "nodes": [{"id": 1, "address": "10.0.0.1", "port": 80, "condition": "ENABLED", "status": "ONLINE"}],
    "virtualIps": [{"id": 9, "address": "198.51.100.7", "type": "PUBLIC", "ipVersion": "IPV4"}],
}


def test_create_defaults_port_from_protocol(virtual_rax, fake_api) -> None:
    fake_api.add("POST", "/loadbalancers", fake_api.reply(202, {"loadBalancer": LB_BUILD}))

    lb = virtual_rax.load_balancers.create("web-lb", "HTTP", NODES, VIPS, algorithm="ROUND_ROBIN")

    request = fake_api.requests[0]
    assert request.url.host == "dfw.loadbalancers.api.example.com"
    assert fake_api.body(request) == {
        "loadBalancer": {
            "name": "web-lb",
            "nodes": NODES,
            "protocol": "HTTP",
            "port": 80,
            "virtualIps": VIPS,
            "algorithm": "ROUND_ROBIN",
        }
    }
    assert isinstance(lb, LoadBalancer)
    assert lb.node_count == 1
    assert lb.nodes[0].status == "ONLINE"
    assert lb.virtual_ips[0].ip_version == "IPV4"


def test_create_rejects_invalid_input_before_sending(virtual_rax, fake_api) -> None:
    with pytest.raises(ArgumentError) as exc_info:
        virtual_rax.load_balancers.create("web-lb", "GOPHER", [], VIPS, port=70)
    message = str(exc_info.value)
    assert "missing: nodes" in message
    assert "valid protocol" in message
    assert fake_api.requests == []


def test_validate_reports_long_name() -> None:
    lb = {"name": "x" * 129, "nodes": NODES, "protocol": "HTTP", "port": 80, "virtualIps": VIPS}
    with pytest.raises(ArgumentError, match="128"):
        validate_load_balancer(lb)


def test_validate_accepts_complete_payload() -> None:
    validate_load_balancer(
        {"name": "web-lb", "nodes": NODES, "protocol": "HTTPS", "port": 443, "virtualIps": VIPS}
    )


def test_create_with_wait(rax, fake_api) -> None:
    fake_api.add("POST", "/loadbalancers", fake_api.reply(202, {"loadBalancer": LB_BUILD}))
    fake_api.add(
        "GET",
        "/loadbalancers/71",
        fake_api.reply(200, {"loadBalancer": LB_BUILD}),
        fake_api.reply(200, {"loadBalancer": {**LB_BUILD, "status": "ACTIVE"}}),
    )

    lb = rax.load_balancers.create_with_wait("web-lb", "HTTP", NODES, VIPS, interval_ms=10, max_wait_s=5)

    assert lb.status == "ACTIVE"


def test_delete_one_and_many(virtual_rax, fake_api) -> None:
    fake_api.add("DELETE", "/loadbalancers/71", fake_api.reply(202))
    fake_api.add("DELETE", "/loadbalancers", fake_api.reply(202))
    lb = LoadBalancer(virtual_rax.load_balancers, LB_BUILD)

    assert lb.delete() is True
    assert virtual_rax.load_balancers.delete([lb, 72]) is True

    assert fake_api.requests[0].url.path.endswith("/loadbalancers/71")
    assert fake_api.requests[1].url.params.get_list("id") == ["71", "72"]
    with pytest.raises(MissingArgument):
        virtual_rax.load_balancers.delete([])


def test_list_protocols_and_algorithms(virtual_rax, fake_api) -> None:
    fake_api.add("GET", "/loadbalancers/protocols", fake_api.reply(200, {"protocols": [{"name": "HTTP", "port": 80}]}))
    fake_api.add("GET", "/loadbalancers/algorithms", fake_api.reply(200, {"algorithms": [{"name": "RANDOM"}]}))
    fake_api.add("GET", "/loadbalancers", fake_api.reply(200, {"loadBalancers": [LB_BUILD]}))

    assert virtual_rax.load_balancers.list_protocols() == [{"name": "HTTP", "port": 80}]
    assert virtual_rax.load_balancers.list_algorithms() == [{"name": "RANDOM"}]
    assert [lb.id for lb in virtual_rax.load_balancers.list()] == [71]
