"""Canonical identity graph over the snapshot's string-ID references."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

import networkx as nx

from ..core.models import AzureFirewall, NetworkTopology, Route, Subnet

logger = logging.getLogger(__name__)


class ResourceKind(str, Enum):
    """Kinds of canonical graph nodes."""

    VIRTUAL_NETWORK = "virtual_network"
    SUBNET = "subnet"
    NETWORK_SECURITY_GROUP = "network_security_group"
    ROUTE_TABLE = "route_table"
    NAT_GATEWAY = "nat_gateway"
    PRIVATE_ENDPOINT = "private_endpoint"
    PRIVATE_DNS_ZONE = "private_dns_zone"
    VPN_GATEWAY = "vpn_gateway"
    EXPRESS_ROUTE_CIRCUIT = "express_route_circuit"
    LOAD_BALANCER = "load_balancer"
    APPLICATION_GATEWAY = "application_gateway"
    FIREWALL = "firewall"


class RelationKind(str, Enum):
    """Association edge kinds, named from the source's point of view."""

    CONTAINS = "contains"  # VNet -> subnet
    SECURED_BY = "secured_by"  # subnet -> NSG
    ROUTES_VIA = "routes_via"  # subnet -> route table
    EGRESS_VIA = "egress_via"  # subnet -> NAT gateway
    DEPLOYED_IN = "deployed_in"  # endpoint/firewall/app gateway -> subnet
    PEERED_WITH = "peered_with"  # VNet -> VNet
    ATTACHED_TO = "attached_to"  # VPN gateway -> VNet
    LINKED_TO = "linked_to"  # private DNS zone -> VNet


# Kind of the node a relation points at, used to type placeholders.
RELATION_TARGET_KINDS = {
    RelationKind.CONTAINS: ResourceKind.SUBNET,
    RelationKind.SECURED_BY: ResourceKind.NETWORK_SECURITY_GROUP,
    RelationKind.ROUTES_VIA: ResourceKind.ROUTE_TABLE,
    RelationKind.EGRESS_VIA: ResourceKind.NAT_GATEWAY,
    RelationKind.DEPLOYED_IN: ResourceKind.SUBNET,
    RelationKind.PEERED_WITH: ResourceKind.VIRTUAL_NETWORK,
    RelationKind.ATTACHED_TO: ResourceKind.VIRTUAL_NETWORK,
    RelationKind.LINKED_TO: ResourceKind.VIRTUAL_NETWORK,
}

# Optional subnet reference fields, shared with the orphan analyzer.
SUBNET_REFERENCES: Tuple[Tuple[RelationKind, str], ...] = (
    (RelationKind.SECURED_BY, "network_security_group"),
    (RelationKind.ROUTES_VIA, "route_table"),
    (RelationKind.EGRESS_VIA, "nat_gateway"),
)


def canonical_id(resource_id: Optional[str]) -> str:
    """Normalize an Azure resource ID for identity comparison.

    Azure resource IDs are case-insensitive, so IDs are lower-cased and
    stripped of surrounding whitespace and trailing slashes. Returns an empty
    string for a missing reference.
    """
    if not resource_id:
        return ""
    return resource_id.strip().rstrip("/").lower()


def extract_resource_name(resource_id: Optional[str]) -> str:
    """Extract the trailing path segment of a resource ID."""
    if not resource_id:
        return ""
    trimmed = resource_id.strip().rstrip("/")
    return trimmed.split("/")[-1] if trimmed else ""


def iter_subnet_references(subnet: Subnet) -> Iterator[Tuple[RelationKind, str, str]]:
    """Yield ``(relation, canonical_target, raw_target)`` for configured references.

    Unset references (``None`` or blank strings) are skipped.
    """
    for relation, field_name in SUBNET_REFERENCES:
        raw = getattr(subnet, field_name)
        target = canonical_id(raw)
        if target:
            yield relation, target, raw.strip()


@dataclass(frozen=True)
class CanonicalNode:
    """Single deduplicated representation of a resource identifier."""

    id: str
    resource_id: str
    name: str
    kind: ResourceKind
    resolved: bool
    resource: Any = None


@dataclass(frozen=True)
class CanonicalEdge:
    source: str
    target: str
    relation: RelationKind
    attributes: Dict[str, Any]


class CanonicalGraph:
    """Identifier -> node mapping plus association edges.

    Backed by a ``networkx.MultiDiGraph`` whose edge keys are relation kinds,
    so there is at most one edge per (source, relation, target).
    """

    def __init__(self) -> None:
        self.graph: nx.MultiDiGraph = nx.MultiDiGraph()

    def add_node(
        self,
        resource_id: str,
        kind: ResourceKind,
        name: Optional[str] = None,
        resource: Any = None,
    ) -> Optional[str]:
        """Register a declared resource. Returns its canonical ID."""
        node_id = canonical_id(resource_id)
        if not node_id:
            logger.debug(f"Skipping {kind.value} without an identifier")
            return None

        existing = self.graph.nodes[node_id].get("node") if node_id in self.graph else None
        if existing is not None and existing.resolved:
            logger.debug(f"Duplicate declaration of {resource_id} ignored")
            return node_id

        self.graph.add_node(
            node_id,
            node=CanonicalNode(
                id=node_id,
                resource_id=resource_id.strip(),
                name=name or extract_resource_name(resource_id),
                kind=kind,
                resolved=True,
                resource=resource,
            ),
        )
        return node_id

    def add_reference(
        self,
        source_id: str,
        target_id: Optional[str],
        relation: RelationKind,
        **attributes: Any,
    ) -> Optional[str]:
        """Add an association edge, creating a placeholder for dangling targets.

        Returns the canonical target ID, or ``None`` if the reference is unset.
        """
        source = canonical_id(source_id)
        target = canonical_id(target_id)
        if not source or not target:
            return None

        if target not in self.graph:
            logger.debug(f"Dangling {relation.value} reference from {source_id} to {target_id}")
            self.graph.add_node(
                target,
                node=CanonicalNode(
                    id=target,
                    resource_id=target_id.strip(),
                    name=extract_resource_name(target_id),
                    kind=RELATION_TARGET_KINDS[relation],
                    resolved=False,
                ),
            )

        self.graph.add_edge(source, target, key=relation, relation=relation, **attributes)
        return target

    def has_node(self, resource_id: Optional[str]) -> bool:
        return canonical_id(resource_id) in self.graph

    def node(self, resource_id: Optional[str]) -> Optional[CanonicalNode]:
        node_id = canonical_id(resource_id)
        if node_id not in self.graph:
            return None
        return self.graph.nodes[node_id]["node"]

    def nodes(self, kind: Optional[ResourceKind] = None) -> List[CanonicalNode]:
        """Return nodes in insertion order, optionally filtered by kind."""
        result = []
        for _, data in self.graph.nodes(data=True):
            node = data["node"]
            if kind is None or node.kind == kind:
                result.append(node)
        return result

    def edges(self, relation: Optional[RelationKind] = None) -> List[CanonicalEdge]:
        result = []
        for source, target, key, data in self.graph.edges(keys=True, data=True):
            if relation is not None and key != relation:
                continue
            attributes = {k: v for k, v in data.items() if k != "relation"}
            result.append(CanonicalEdge(source, target, key, attributes))
        return result

    def referrers(self, resource_id: str, relation: RelationKind) -> List[CanonicalNode]:
        """Nodes pointing at ``resource_id`` through ``relation``."""
        node_id = canonical_id(resource_id)
        if node_id not in self.graph:
            return []
        return [
            self.graph.nodes[source]["node"]
            for source, _, key in self.graph.in_edges(node_id, keys=True)
            if key == relation
        ]

    def targets(self, resource_id: str, relation: RelationKind) -> List[CanonicalNode]:
        """Nodes that ``resource_id`` points at through ``relation``."""
        node_id = canonical_id(resource_id)
        if node_id not in self.graph:
            return []
        return [
            self.graph.nodes[target]["node"]
            for _, target, key in self.graph.out_edges(node_id, keys=True)
            if key == relation
        ]

    def parent_vnet(self, subnet_id: str) -> Optional[CanonicalNode]:
        """Return the VNet containing a subnet, if the subnet is declared."""
        parents = self.referrers(subnet_id, RelationKind.CONTAINS)
        return parents[0] if parents else None

    def unresolved_nodes(self) -> List[CanonicalNode]:
        return [node for node in self.nodes() if not node.resolved]

    def number_of_nodes(self) -> int:
        return self.graph.number_of_nodes()

    def number_of_edges(self) -> int:
        return self.graph.number_of_edges()


class ReferenceResolver:
    """Builds the canonical graph for a topology snapshot."""

    def resolve(self, topology: NetworkTopology) -> CanonicalGraph:
        """Resolve all declared resources and references.

        Args:
            topology: Topology snapshot.

        Returns:
            Freshly built canonical graph.
        """
        logger.info("Resolving resource references")
        graph = CanonicalGraph()

        # Declared resources first, so references only create placeholders
        # for IDs that are really absent from the snapshot.
        for vnet in topology.virtual_networks:
            graph.add_node(vnet.id, ResourceKind.VIRTUAL_NETWORK, vnet.name, vnet)
            for subnet in vnet.subnets:
                graph.add_node(subnet.id, ResourceKind.SUBNET, subnet.name, subnet)

        declared = (
            (topology.network_security_groups, ResourceKind.NETWORK_SECURITY_GROUP),
            (topology.route_tables, ResourceKind.ROUTE_TABLE),
            (topology.nat_gateways, ResourceKind.NAT_GATEWAY),
            (topology.private_endpoints, ResourceKind.PRIVATE_ENDPOINT),
            (topology.private_dns_zones, ResourceKind.PRIVATE_DNS_ZONE),
            (topology.vpn_gateways, ResourceKind.VPN_GATEWAY),
            (topology.express_route_circuits, ResourceKind.EXPRESS_ROUTE_CIRCUIT),
            (topology.load_balancers, ResourceKind.LOAD_BALANCER),
            (topology.application_gateways, ResourceKind.APPLICATION_GATEWAY),
            (topology.azure_firewalls, ResourceKind.FIREWALL),
        )
        for resources, kind in declared:
            for resource in resources:
                graph.add_node(resource.id, kind, resource.name, resource)

        self._resolve_vnet_references(graph, topology)
        self._resolve_attachment_references(graph, topology)

        unresolved = len(graph.unresolved_nodes())
        logger.info(
            f"Resolved graph with {graph.number_of_nodes()} nodes and "
            f"{graph.number_of_edges()} edges ({unresolved} unresolved)",
        )
        return graph

    def _resolve_vnet_references(self, graph: CanonicalGraph, topology: NetworkTopology) -> None:
        for vnet in topology.virtual_networks:
            for subnet in vnet.subnets:
                graph.add_reference(vnet.id, subnet.id, RelationKind.CONTAINS)
                for relation, _, raw_target in iter_subnet_references(subnet):
                    graph.add_reference(subnet.id, raw_target, relation)

            for peering in vnet.peerings:
                graph.add_reference(
                    vnet.id,
                    peering.remote_vnet_id,
                    RelationKind.PEERED_WITH,
                    peering_state=peering.peering_state,
                    peering_name=peering.name,
                )

    def _resolve_attachment_references(self, graph: CanonicalGraph, topology: NetworkTopology) -> None:
        for endpoint in topology.private_endpoints:
            graph.add_reference(endpoint.id, endpoint.subnet_id, RelationKind.DEPLOYED_IN)

        for firewall in topology.azure_firewalls:
            graph.add_reference(firewall.id, firewall.subnet_id, RelationKind.DEPLOYED_IN)

        for appgw in topology.application_gateways:
            graph.add_reference(appgw.id, appgw.subnet_id, RelationKind.DEPLOYED_IN)

        for gateway in topology.vpn_gateways:
            graph.add_reference(gateway.id, gateway.vnet_id, RelationKind.ATTACHED_TO)

        for zone in topology.private_dns_zones:
            for link in zone.vnet_links:
                graph.add_reference(
                    zone.id,
                    link.vnet_id,
                    RelationKind.LINKED_TO,
                    registration_enabled=link.registration_enabled,
                )


class NextHopIndex:
    """Private IP -> firewall lookup for route next hops.

    Matching a route's next-hop IP against firewall private IPs is a value
    match, not an identity relationship, so it is kept out of the canonical
    graph.
    """

    def __init__(self, firewalls_by_ip: Dict[str, AzureFirewall], topology: NetworkTopology):
        self.firewalls_by_ip = firewalls_by_ip
        self._topology = topology

    @classmethod
    def from_topology(cls, topology: NetworkTopology) -> "NextHopIndex":
        firewalls_by_ip: Dict[str, AzureFirewall] = {}
        for firewall in topology.azure_firewalls:
            ip = firewall.private_ip_address.strip()
            if not ip:
                continue
            if ip in firewalls_by_ip:
                logger.debug(f"Firewall {firewall.name} shares private IP {ip}; keeping {firewalls_by_ip[ip].name}")
                continue
            firewalls_by_ip[ip] = firewall
        return cls(firewalls_by_ip, topology)

    def firewall_for(self, route: Route) -> Optional[AzureFirewall]:
        ip = route.next_hop_ip_address.strip()
        if not ip:
            return None
        return self.firewalls_by_ip.get(ip)

    def routed_firewalls(self) -> List[AzureFirewall]:
        """Firewalls that are the next hop of at least one route, in snapshot order."""
        matched = set()
        for route_table in self._topology.route_tables:
            for route in route_table.routes:
                firewall = self.firewall_for(route)
                if firewall is not None:
                    matched.add(canonical_id(firewall.id))
        return [fw for fw in self._topology.azure_firewalls if canonical_id(fw.id) in matched]
