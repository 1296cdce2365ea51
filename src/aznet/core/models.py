"""Data models and enums for the network analyzer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterator

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel


class Theme(str, Enum):
    """Visual themes for diagram generation."""

    LIGHT = "light"
    DARK = "dark"
    NEON = "neon"


class OutputFormat(str, Enum):
    """Supported diagram output formats."""

    PNG = "png"
    SVG = "svg"
    PDF = "pdf"
    DOT = "dot"


class Direction(str, Enum):
    """Graph layout direction."""

    LEFT_TO_RIGHT = "left-to-right"
    TOP_TO_BOTTOM = "top-to-bottom"


class Splines(str, Enum):
    """Edge appearance options."""

    POLYLINE = "polyline"
    CURVED = "curved"
    ORTHO = "ortho"
    LINE = "line"
    SPLINE = "spline"


class Severity(str, Enum):
    """Finding severity levels, most severe first."""

    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    INFO = "Info"


class FindingCategory(str, Enum):
    """Finding categories."""

    NSG_RULE = "NSG Rule"
    NETWORK_EXPOSURE = "Network Exposure"
    MISSING_PROTECTION = "Missing Protection"
    CONFIGURATION = "Configuration"


# Snapshot models. JSON documents use camelCase keys; snake_case is accepted too.


class SnapshotModel(BaseModel):
    """Base for immutable snapshot entities."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )

    @field_validator("*", mode="before")
    @classmethod
    def null_collection_as_empty(cls, value, info: ValidationInfo):
        # Exported snapshots write empty collections as null.
        if value is None and cls.model_fields[info.field_name].default == ():
            return ()
        return value


class NetworkResource(SnapshotModel):
    """Any top-level resource with an Azure resource ID."""

    id: str
    name: str
    resource_group: str = ""
    location: str = ""


class SecurityRule(SnapshotModel):
    """Security rule within an NSG."""

    name: str
    priority: int = 4096
    direction: str = "Inbound"
    access: str = "Allow"
    protocol: str = "*"
    source_address_prefix: str = ""
    source_port_range: str = "*"
    destination_address_prefix: str = ""
    destination_port_range: str = ""
    description: str = ""


class NetworkSecurityGroup(NetworkResource):
    security_rules: tuple[SecurityRule, ...] = ()


class VNetPeering(SnapshotModel):
    """Peering connection from one VNet to another."""

    id: str = ""
    name: str = ""
    remote_vnet_id: str = ""
    remote_vnet_name: str = ""
    peering_state: str = ""
    allow_vnet_access: bool = False
    allow_forwarded_traffic: bool = False
    allow_gateway_transit: bool = False
    use_remote_gateways: bool = False


class Subnet(SnapshotModel):
    """Subnet within a virtual network.

    The ``network_security_group``, ``route_table`` and ``nat_gateway`` fields
    are optional references holding the target resource ID.
    """

    id: str
    name: str
    address_prefix: str = ""
    network_security_group: str | None = None
    route_table: str | None = None
    nat_gateway: str | None = None
    private_endpoints: tuple[str, ...] = ()
    service_endpoints: tuple[str, ...] = ()
    delegations: tuple[str, ...] = ()


class VirtualNetwork(NetworkResource):
    address_space: tuple[str, ...] = ()
    subnets: tuple[Subnet, ...] = ()
    peerings: tuple[VNetPeering, ...] = ()
    dns_servers: tuple[str, ...] = ()
    enable_ddos_protection: bool = False


class PrivateEndpoint(NetworkResource):
    subnet_id: str = ""
    private_ip_address: str = ""
    private_link_service_id: str = ""
    connection_state: str = ""
    group_ids: tuple[str, ...] = ()


class VNetLink(SnapshotModel):
    id: str = ""
    vnet_id: str = ""
    vnet_name: str = ""
    registration_enabled: bool = False


class PrivateDNSZone(NetworkResource):
    vnet_links: tuple[VNetLink, ...] = ()
    record_sets: int = 0


class Route(SnapshotModel):
    """Route within a route table."""

    name: str
    address_prefix: str = ""
    next_hop_type: str = ""  # VirtualNetworkGateway, VnetLocal, Internet, VirtualAppliance, None
    next_hop_ip_address: str = ""


class RouteTable(NetworkResource):
    routes: tuple[Route, ...] = ()
    disable_bgp_route_propagation: bool = False


class NATGateway(NetworkResource):
    public_ip_addresses: tuple[str, ...] = ()
    idle_timeout_minutes: int = 4


class VPNGateway(NetworkResource):
    vnet_id: str = ""
    gateway_type: str = "Vpn"
    vpn_type: str = "RouteBased"
    sku: str = ""
    active_active: bool = False


class ExpressRouteCircuit(NetworkResource):
    service_provider_name: str = ""
    peering_location: str = ""
    bandwidth_in_mbps: int = 0
    sku_tier: str = ""
    sku_family: str = ""


class LoadBalancer(NetworkResource):
    sku: str = ""
    type: str = ""  # Public or Internal


class ApplicationGateway(NetworkResource):
    sku: str = ""
    tier: str = ""
    capacity: int = 0
    subnet_id: str = ""
    waf_enabled: bool = False
    waf_mode: str = ""


class AzureFirewall(NetworkResource):
    sku: str = ""
    subnet_id: str = ""
    private_ip_address: str = ""
    public_ip_addresses: tuple[str, ...] = ()
    firewall_policy_id: str = ""
    threat_intel_mode: str = ""


class NetworkTopology(SnapshotModel):
    """Network topology snapshot for one subscription/resource group."""

    subscription_id: str = ""
    resource_group: str = ""
    timestamp: datetime | None = None
    virtual_networks: tuple[VirtualNetwork, ...] = ()
    network_security_groups: tuple[NetworkSecurityGroup, ...] = ()
    private_endpoints: tuple[PrivateEndpoint, ...] = ()
    private_dns_zones: tuple[PrivateDNSZone, ...] = ()
    route_tables: tuple[RouteTable, ...] = ()
    nat_gateways: tuple[NATGateway, ...] = ()
    vpn_gateways: tuple[VPNGateway, ...] = ()
    express_route_circuits: tuple[ExpressRouteCircuit, ...] = ()
    load_balancers: tuple[LoadBalancer, ...] = ()
    application_gateways: tuple[ApplicationGateway, ...] = ()
    azure_firewalls: tuple[AzureFirewall, ...] = ()

    def iter_subnets(self) -> Iterator[tuple[VirtualNetwork, Subnet]]:
        """Yield ``(vnet, subnet)`` pairs in snapshot order."""
        for vnet in self.virtual_networks:
            for subnet in vnet.subnets:
                yield vnet, subnet

    def resource_count(self) -> int:
        """Count top-level resources (subnets excluded)."""
        return (
            len(self.virtual_networks)
            + len(self.network_security_groups)
            + len(self.private_endpoints)
            + len(self.private_dns_zones)
            + len(self.route_tables)
            + len(self.nat_gateways)
            + len(self.vpn_gateways)
            + len(self.express_route_circuits)
            + len(self.load_balancers)
            + len(self.application_gateways)
            + len(self.azure_firewalls)
        )


@dataclass(frozen=True)
class Finding:
    """A security or configuration observation."""

    severity: Severity
    category: FindingCategory
    resource: str
    resource_id: str
    description: str
    recommendation: str
    rule: str = ""


@dataclass
class ThemeConfig:
    """Theme configuration settings."""

    background_color: str
    node_color: str
    edge_color: str
    font_color: str
    cluster_color: str
    font_name: str = "Helvetica"
    font_size: str = "10"


class VisualizationConfig(BaseModel):
    """Configuration for diagram generation."""

    theme: Theme = Theme.LIGHT
    output_format: OutputFormat = OutputFormat.SVG
    direction: Direction = Direction.TOP_TO_BOTTOM
    splines: Splines = Splines.SPLINE
    show_legend: bool = True
    show_private_endpoints: bool = True
    title: str | None = None
