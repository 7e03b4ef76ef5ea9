"""
Resource projections and per-service wrappers.
"""

from .blockstorage import Volume, VolumesResource, VolumeType
from .compute import Flavor, Image, Server, ServersResource
from .databases import DatabaseInstance, DatabasesResource
from .dns import Domain, DnsResource, Status
from .loadbalancers import LoadBalancer, LoadBalancersResource, Node, VirtualIp, VirtualIpType

__all__ = [
    "DatabaseInstance",
    "DatabasesResource",
    "DnsResource",
    "Domain",
    "Flavor",
    "Image",
    "LoadBalancer",
    "LoadBalancersResource",
    "Node",
    "Server",
    "ServersResource",
    "Status",
    "VirtualIp",
    "VirtualIpType",
    "Volume",
    "VolumeType",
    "VolumesResource",
]
