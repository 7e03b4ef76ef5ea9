"""Cloud load balancers."""

from __future__ import annotations

from typing import Any, Callable, Mapping

from raxcloud.catalog import Services
from raxcloud.errors import ArgumentError, MissingArgument
from raxcloud.resources.base import Resource, ServiceResource, ref_id
from raxcloud.waiter import DEFAULT_INTERVAL_MS, DEFAULT_MAX_WAIT_S


PROTOCOLS: dict[str, int] = {
    "DNS_TCP": 53,
    "DNS_UDP": 53,
    "FTP": 21,
    "HTTP": 80,
    "HTTPS": 443,
    "IMAPS": 993,
    "IMAPv4": 143,
    "LDAP": 389,
    "LDAPS": 636,
    "MYSQL": 3306,
    "POP3": 110,
    "POP3S": 995,
    "SMTP": 25,
    "TCP": 0,
    "TCP_CLIENT_FIRST": 0,
    "UDP": 0,
    "UDP_STREAM": 0,
    "SFTP": 22,
}


class VirtualIpType:
    PUBLIC = "PUBLIC"
    SERVICENET = "SERVICENET"


class SessionPersistence:
    HTTP_COOKIE = "HTTP_COOKIE"
    SOURCE_IP = "SOURCE_IP"


class Node:
    """Back-end node of a load balancer."""

    def __init__(self, details: Mapping[str, Any]) -> None:
        self.id = details.get("id")
        self.address = details.get("address")
        self.port = details.get("port")
        self.condition = details.get("condition")
        self.status = details.get("status")
        self.weight = details.get("weight")
        self.type = details.get("type")


class VirtualIp:
    def __init__(self, details: Mapping[str, Any]) -> None:
        self.id = details.get("id")
        self.address = details.get("address")
        self.type = details.get("type")
        self.ip_version = details.get("ipVersion")


class LoadBalancer(Resource):
    """Cloud load balancer."""

    def _set_properties(self, details: Mapping[str, Any]) -> None:
        super()._set_properties(details)
        self.name = details.get("name")
        self.port = details.get("port")
        self.protocol = details.get("protocol")
        self.algorithm = details.get("algorithm")
        self.status = details.get("status")
        self.timeout = details.get("timeout")
        self.cluster = details.get("cluster")
        self.created = details.get("created")
        self.updated = details.get("updated")
        self.connection_logging = details.get("connectionLogging")
        self.source_addresses = details.get("sourceAddresses")
        self.connection_throttle = details.get("connectionThrottle")
        self.session_persistence = details.get("sessionPersistence")
        self.nodes = [Node(item) for item in details.get("nodes") or []]
        self.node_count = len(self.nodes) if self.nodes else details.get("nodeCount")
        self.virtual_ips = [VirtualIp(item) for item in details.get("virtualIps") or []]

    def _fetch(self) -> Mapping[str, Any]:
        return self._service.fetch(self.id)

    def delete(self) -> bool:
        return self._service.delete(self)


def validate_load_balancer(lb: Mapping[str, Any]) -> None:
    """Check a create payload before sending it.

    Raises:
        ArgumentError: Lists every missing or invalid input.
    """
    missing = [key for key in ("name", "nodes", "protocol", "port", "virtualIps") if not lb.get(key)]
    invalid = []
    if lb.get("name") and len(lb["name"]) > 128:
        invalid.append("name exceeds maximum 128 length")
    nodes = lb.get("nodes")
    if nodes is not None and not isinstance(nodes, (list, tuple)):
        invalid.append("nodes must be a list")
    elif nodes is not None and len(nodes) == 0:
        invalid.append("nodes requires at least one node")
    if lb.get("protocol") not in PROTOCOLS:
        invalid.append("please specify a valid protocol")
    if missing or invalid:
        parts = []
        if missing:
            parts.append(f"missing: {', '.join(missing)}")
        if invalid:
            parts.append(f"invalid: {'; '.join(invalid)}")
        raise ArgumentError(" | ".join(parts))


class LoadBalancersResource(ServiceResource):
    """Cloud load balancer operations."""

    service = Services.LOAD_BALANCERS

    def list(self) -> list[LoadBalancer]:
        response = self._request("/loadbalancers")
        return [
            LoadBalancer(self, item)
            for item in self._expect_key(response, "loadBalancers", "loadbalancers_list")
        ]

    def fetch(self, lb_id: Any) -> dict[str, Any]:
        response = self._request(f"/loadbalancers/{lb_id}")
        return self._expect_key(response, "loadBalancer", "loadbalancers_get")

    def get(self, lb_id: Any) -> LoadBalancer:
        return LoadBalancer(self, self.fetch(lb_id))

    def create(
        self,
        name: str,
        protocol: str,
        nodes: list[dict[str, Any]],
        virtual_ips: list[dict[str, Any]],
        *,
        port: int | None = None,
        **optional: Any,
    ) -> LoadBalancer:
        """Create a load balancer.

        Args:
            name: Load balancer name, at most 128 characters.
            protocol: Protocol name, see ``PROTOCOLS``.
            nodes: Back-end nodes, e.g. ``[{"address": "10.0.0.1", "port": 80,
                "condition": "ENABLED"}]``.
            virtual_ips: e.g. ``[{"type": VirtualIpType.PUBLIC}]``.
            port: Listening port. Defaults to the protocol's well-known port.
            **optional: ``accessList``, ``algorithm``, ``connectionLogging``,
                ``connectionThrottle``, ``healthMonitor``, ``metadata``,
                ``timeout`` or ``sessionPersistence``.

        Returns:
            LoadBalancer: Load balancer in ``BUILD`` state.
        """
        lb: dict[str, Any] = {
            "name": name,
            "nodes": nodes,
            "protocol": protocol,
            "port": port or PROTOCOLS.get(protocol),
            "virtualIps": virtual_ips,
        }
        for key in (
            "accessList",
            "algorithm",
            "connectionLogging",
            "connectionThrottle",
            "healthMonitor",
            "metadata",
            "timeout",
            "sessionPersistence",
        ):
            if optional.get(key):
                lb[key] = optional[key]
        validate_load_balancer(lb)
        response = self._request("/loadbalancers", "POST", body={"loadBalancer": lb})
        return LoadBalancer(self, self._expect_key(response, "loadBalancer", "loadbalancers_create"))

    def create_with_wait(
        self,
        name: str,
        protocol: str,
        nodes: list[dict[str, Any]],
        virtual_ips: list[dict[str, Any]],
        *,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        max_wait_s: float | None = DEFAULT_MAX_WAIT_S,
        on_tick: Callable[[], None] | None = None,
        on_finish: Callable[[], None] | None = None,
        **kwargs: Any,
    ) -> LoadBalancer:
        lb = self.create(name, protocol, nodes, virtual_ips, **kwargs)
        return self._wait(
            lb,
            attributes={"status": "ACTIVE"},
            interval_ms=interval_ms,
            max_wait_s=max_wait_s,
            on_tick=on_tick,
            on_finish=on_finish,
        )

    def delete(self, load_balancers: Any) -> bool:
        """Delete one load balancer or a list of them."""
        items = load_balancers if isinstance(load_balancers, (list, tuple)) else [load_balancers]
        ids = [ref_id(item) for item in items if item]
        if not ids:
            raise MissingArgument("load_balancers is a required argument")
        if len(ids) == 1:
            response = self._request(f"/loadbalancers/{ids[0]}", "DELETE")
        else:
            response = self._request("/loadbalancers", "DELETE", query={"id": ids})
        return response.status_code == 202

    def list_protocols(self) -> list[dict[str, Any]]:
        response = self._request("/loadbalancers/protocols")
        return list(self._expect_key(response, "protocols", "loadbalancers_protocols"))

    def list_algorithms(self) -> list[dict[str, Any]]:
        response = self._request("/loadbalancers/algorithms")
        return list(self._expect_key(response, "algorithms", "loadbalancers_algorithms"))
