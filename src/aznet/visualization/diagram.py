"""Structured diagram description built from the canonical graph."""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from ..analysis.resolver import (
    CanonicalGraph,
    CanonicalNode,
    NextHopIndex,
    RelationKind,
    ResourceKind,
    canonical_id,
    extract_resource_name,
)
from ..core.models import NetworkTopology, VisualizationConfig

logger = logging.getLogger(__name__)

LARGE_DIAGRAM_NODES = 500
LARGE_DIAGRAM_EDGES = 1000
VERY_LARGE_DIAGRAM_NODES = 1000
VERY_LARGE_DIAGRAM_EDGES = 2000

INTERNET_NODE_ID = "internet"
PRIVATE_ENDPOINT_TABLE_ID = "pe_table"

# Node ID prefixes per kind
NODE_PREFIXES = {
    ResourceKind.VIRTUAL_NETWORK: "vnet",
    ResourceKind.SUBNET: "subnet",
    ResourceKind.NETWORK_SECURITY_GROUP: "nsg",
    ResourceKind.ROUTE_TABLE: "rt",
    ResourceKind.NAT_GATEWAY: "nat",
    ResourceKind.PRIVATE_ENDPOINT: "pe",
    ResourceKind.PRIVATE_DNS_ZONE: "dns",
    ResourceKind.VPN_GATEWAY: "vpn",
    ResourceKind.EXPRESS_ROUTE_CIRCUIT: "er",
    ResourceKind.LOAD_BALANCER: "lb",
    ResourceKind.APPLICATION_GATEWAY: "appgw",
    ResourceKind.FIREWALL: "fw",
}

SHARED_INFRASTRUCTURE = (
    (ResourceKind.NETWORK_SECURITY_GROUP, "NSG"),
    (ResourceKind.ROUTE_TABLE, "Route Table"),
    (ResourceKind.NAT_GATEWAY, "NAT Gateway"),
)


class EdgeKind:
    """Diagram edge kinds, used by the DOT generator for styling."""

    PROTECTS = "protects"
    ROUTES = "routes"
    EGRESS = "egress"
    PEERING = "peering"
    GATEWAY = "gateway"
    HOSTED_IN = "hosted_in"
    FIREWALL_EGRESS = "firewall_egress"
    INTERNET_EGRESS = "internet_egress"


def sanitize_name(name: str) -> str:
    """Make a name safe for use inside a DOT identifier."""
    sanitized = re.sub(r"[^A-Za-z0-9_]", "_", name or "")
    return sanitized or "unnamed"


@dataclass
class DiagramNode:
    """Diagram node for one canonical resource (or a synthetic node)."""

    id: str
    label: str
    kind: str
    resource_id: str = ""
    unattached: bool = False
    unresolved: bool = False
    external: bool = False
    unprotected: bool = False


@dataclass
class DiagramEdge:
    source: str
    target: str
    kind: str
    label: str = ""
    bidirectional: bool = False
    healthy: bool = True


@dataclass
class DiagramCluster:
    """A VNet grouping its anchor node and subnets."""

    id: str
    label: str
    node_ids: List[str] = field(default_factory=list)


@dataclass
class TableNode:
    """Table-shaped node (rendered with an HTML-like label)."""

    id: str
    title: str
    columns: List[str]
    rows: List[List[str]] = field(default_factory=list)
    rank: str = "sink"


@dataclass
class DiagramDescription:
    """Everything needed to serialize a topology diagram."""

    title: str
    clusters: List[DiagramCluster] = field(default_factory=list)
    nodes: List[DiagramNode] = field(default_factory=list)
    edges: List[DiagramEdge] = field(default_factory=list)
    tables: List[TableNode] = field(default_factory=list)

    def node(self, node_id: str) -> Optional[DiagramNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def nodes_of_kind(self, kind: str) -> List[DiagramNode]:
        return [node for node in self.nodes if node.kind == kind]

    def edges_of_kind(self, kind: str) -> List[DiagramEdge]:
        return [edge for edge in self.edges if edge.kind == kind]

    def clustered_node_ids(self) -> Set[str]:
        clustered: Set[str] = set()
        for cluster in self.clusters:
            clustered.update(cluster.node_ids)
        return clustered

    def standalone_nodes(self) -> List[DiagramNode]:
        clustered = self.clustered_node_ids()
        return [node for node in self.nodes if node.id not in clustered]

    def size_warning(self) -> Optional[str]:
        """Describe rendering cost for large diagrams.

        Returns:
            Warning message, or ``None`` for diagrams of ordinary size.
        """
        node_count = len(self.nodes) + len(self.tables)
        edge_count = len(self.edges)

        if node_count > VERY_LARGE_DIAGRAM_NODES or edge_count > VERY_LARGE_DIAGRAM_EDGES:
            return (
                f"Topology is very large ({node_count} nodes, {edge_count} edges). "
                "Rendering may take 5+ minutes and use significant memory. "
                "Consider --format dot to generate the DOT file only."
            )
        if node_count > LARGE_DIAGRAM_NODES or edge_count > LARGE_DIAGRAM_EDGES:
            return f"Topology is large ({node_count} nodes, {edge_count} edges). Rendering may take 1-5 minutes."
        return None


class _NodeIdAllocator:
    """Assigns one DOT-safe ID per canonical ID, unique across the diagram."""

    def __init__(self) -> None:
        self._ids: Dict[str, str] = {}
        self._used: Set[str] = set()

    def get(self, key: str, prefix: str, name: str) -> str:
        if key in self._ids:
            return self._ids[key]

        base = f"{prefix}_{sanitize_name(name)}"
        candidate = base
        suffix = 2
        while candidate in self._used:
            candidate = f"{base}_{suffix}"
            suffix += 1

        self._ids[key] = candidate
        self._used.add(candidate)
        return candidate

    def reserve(self, node_id: str) -> None:
        self._used.add(node_id)


class DiagramBuilder:
    """Builds a ``DiagramDescription`` from a resolved topology."""

    def __init__(self, config: VisualizationConfig):
        """Initialize diagram builder.

        Args:
            config: Visualization configuration.
        """
        self.config = config

    def build(self, graph: CanonicalGraph, topology: NetworkTopology) -> DiagramDescription:
        """Build the diagram description.

        Args:
            graph: Canonical graph resolved from ``topology``.
            topology: Topology snapshot supplying labels, routes and endpoint details.

        Returns:
            Diagram description.
        """
        logger.info("Building diagram description")

        self._ids = _NodeIdAllocator()
        self._ids.reserve(INTERNET_NODE_ID)
        self._ids.reserve(PRIVATE_ENDPOINT_TABLE_ID)
        self._graph = graph
        self._emitted: Set[str] = set()

        description = DiagramDescription(title=self._title(topology))

        self._add_vnet_clusters(description)
        self._add_shared_infrastructure(description)
        self._add_peerings(description)
        self._add_gateways(description)
        self._add_firewall_egress(description, topology)

        if self.config.show_private_endpoints:
            table = self._private_endpoint_table(topology)
            if table is not None:
                description.tables.append(table)

        logger.info(
            f"Diagram description has {len(description.nodes)} nodes, "
            f"{len(description.edges)} edges and {len(description.clusters)} clusters",
        )
        warning = description.size_warning()
        if warning:
            logger.warning(warning)
        return description

    def _title(self, topology: NetworkTopology) -> str:
        if self.config.title:
            return self.config.title
        return f"Azure Network Topology\n{topology.subscription_id} / {topology.resource_group}"

    def _node_id(self, node: CanonicalNode) -> str:
        return self._ids.get(node.id, NODE_PREFIXES[node.kind], node.name)

    def _emit(self, description: DiagramDescription, node: DiagramNode) -> None:
        if node.id in self._emitted:
            return
        self._emitted.add(node.id)
        description.nodes.append(node)

    def _add_vnet_clusters(self, description: DiagramDescription) -> None:
        for vnet in self._graph.nodes(ResourceKind.VIRTUAL_NETWORK):
            if not vnet.resolved:
                continue

            address_space = list(vnet.resource.address_space) if vnet.resource is not None else []
            vnet_node_id = self._node_id(vnet)
            cluster = DiagramCluster(
                id=f"cluster_{vnet_node_id}",
                label="\n".join([f"VNet: {vnet.name}"] + address_space),
            )

            self._emit(
                description,
                DiagramNode(
                    id=vnet_node_id,
                    label="\n".join([vnet.name] + address_space),
                    kind=ResourceKind.VIRTUAL_NETWORK.value,
                    resource_id=vnet.resource_id,
                ),
            )
            cluster.node_ids.append(vnet_node_id)

            for subnet in self._graph.targets(vnet.id, RelationKind.CONTAINS):
                subnet_node_id = self._ids.get(subnet.id, "subnet", f"{vnet.name}_{subnet.name}")
                if subnet_node_id in self._emitted:
                    logger.debug(f"Subnet {subnet.resource_id} already placed in another VNet")
                    continue

                prefix = subnet.resource.address_prefix if subnet.resource is not None else ""
                self._emit(
                    description,
                    DiagramNode(
                        id=subnet_node_id,
                        label=f"{subnet.name}\n{prefix}" if prefix else subnet.name,
                        kind=ResourceKind.SUBNET.value,
                        resource_id=subnet.resource_id,
                        unprotected=not self._graph.targets(subnet.id, RelationKind.SECURED_BY),
                    ),
                )
                cluster.node_ids.append(subnet_node_id)

            description.clusters.append(cluster)

    def _subnet_node_id(self, subnet_id: str) -> Optional[str]:
        subnet = self._graph.node(subnet_id)
        if subnet is None:
            return None
        parent = self._graph.parent_vnet(subnet.id)
        vnet_name = parent.name if parent is not None else ""
        node_id = self._ids.get(subnet.id, "subnet", f"{vnet_name}_{subnet.name}")
        return node_id if node_id in self._emitted else None

    def _add_shared_infrastructure(self, description: DiagramDescription) -> None:
        relations = {
            ResourceKind.NETWORK_SECURITY_GROUP: RelationKind.SECURED_BY,
            ResourceKind.ROUTE_TABLE: RelationKind.ROUTES_VIA,
            ResourceKind.NAT_GATEWAY: RelationKind.EGRESS_VIA,
        }

        for kind, title in SHARED_INFRASTRUCTURE:
            for node in self._graph.nodes(kind):
                label = f"{title}\n{node.name}"
                unattached = not self._graph.referrers(node.id, relations[kind])
                if not node.resolved:
                    label += "\n(unresolved)"
                elif unattached:
                    label += "\n(unattached)"

                self._emit(
                    description,
                    DiagramNode(
                        id=self._node_id(node),
                        label=label,
                        kind=kind.value,
                        resource_id=node.resource_id,
                        unattached=unattached,
                        unresolved=not node.resolved,
                    ),
                )

        edge_kinds = (
            (RelationKind.SECURED_BY, EdgeKind.PROTECTS, "protects"),
            (RelationKind.ROUTES_VIA, EdgeKind.ROUTES, "routes"),
            (RelationKind.EGRESS_VIA, EdgeKind.EGRESS, "egress"),
        )
        for relation, edge_kind, label in edge_kinds:
            for edge in self._graph.edges(relation):
                subnet_node_id = self._subnet_node_id(edge.source)
                target = self._graph.node(edge.target)
                if subnet_node_id is None or target is None:
                    continue

                target_node_id = self._node_id(target)
                # NSGs point at the subnets they protect
                if relation == RelationKind.SECURED_BY:
                    source, dest = target_node_id, subnet_node_id
                else:
                    source, dest = subnet_node_id, target_node_id
                description.edges.append(DiagramEdge(source=source, target=dest, kind=edge_kind, label=label))

    def _vnet_node_id(self, vnet: CanonicalNode) -> str:
        if vnet.resolved:
            return self._node_id(vnet)
        return self._ids.get(vnet.id, "remote", vnet.name)

    def _add_peerings(self, description: DiagramDescription) -> None:
        for edge in self._graph.edges(RelationKind.PEERED_WITH):
            source = self._graph.node(edge.source)
            remote = self._graph.node(edge.target)
            if source is None or remote is None or not source.resolved:
                continue

            if not remote.resolved:
                remote_name = self._remote_vnet_name(source, remote)
                self._emit(
                    description,
                    DiagramNode(
                        id=self._vnet_node_id(remote),
                        label=f"{remote_name}\n(External)",
                        kind=ResourceKind.VIRTUAL_NETWORK.value,
                        resource_id=remote.resource_id,
                        external=True,
                    ),
                )

            state = edge.attributes.get("peering_state", "")
            description.edges.append(
                DiagramEdge(
                    source=self._vnet_node_id(source),
                    target=self._vnet_node_id(remote),
                    kind=EdgeKind.PEERING,
                    label=f"peering\n{state}",
                    bidirectional=True,
                    healthy=state == "Connected",
                ),
            )

    def _remote_vnet_name(self, source: CanonicalNode, remote: CanonicalNode) -> str:
        for peering in source.resource.peerings:
            if canonical_id(peering.remote_vnet_id) == remote.id and peering.remote_vnet_name:
                return peering.remote_vnet_name
        return remote.name

    def _owning_vnet_node_id(self, resource: CanonicalNode) -> Optional[str]:
        for subnet in self._graph.targets(resource.id, RelationKind.DEPLOYED_IN):
            vnet = self._graph.parent_vnet(subnet.id)
            if vnet is not None:
                return self._node_id(vnet)
        return None

    def _add_gateways(self, description: DiagramDescription) -> None:
        for node in self._graph.nodes(ResourceKind.VPN_GATEWAY):
            gateway = node.resource
            node_id = self._node_id(node)
            self._emit(
                description,
                DiagramNode(
                    id=node_id,
                    label=f"VPN GW\n{node.name}\n{gateway.sku}",
                    kind=ResourceKind.VPN_GATEWAY.value,
                    resource_id=node.resource_id,
                ),
            )
            for vnet in self._graph.targets(node.id, RelationKind.ATTACHED_TO):
                if not vnet.resolved:
                    logger.debug(f"VPN gateway {node.name} is attached to unknown VNet {vnet.resource_id}")
                    continue
                description.edges.append(
                    DiagramEdge(source=node_id, target=self._node_id(vnet), kind=EdgeKind.GATEWAY, label="gateway"),
                )

        for node in self._graph.nodes(ResourceKind.FIREWALL):
            firewall = node.resource
            label = f"Azure Firewall\n{node.name}"
            if firewall.private_ip_address:
                label += f"\n{firewall.private_ip_address}"
            self._add_hosted_node(description, node, label)

        for node in self._graph.nodes(ResourceKind.APPLICATION_GATEWAY):
            appgw = node.resource
            label = f"AppGW\n{node.name}\n{appgw.sku}"
            if appgw.waf_enabled:
                label += "\n[WAF Enabled]"
            self._add_hosted_node(description, node, label)

        for node in self._graph.nodes(ResourceKind.LOAD_BALANCER):
            self._emit(
                description,
                DiagramNode(
                    id=self._node_id(node),
                    label=f"LB\n{node.name}\n{node.resource.sku}",
                    kind=ResourceKind.LOAD_BALANCER.value,
                    resource_id=node.resource_id,
                ),
            )

        for node in self._graph.nodes(ResourceKind.EXPRESS_ROUTE_CIRCUIT):
            circuit = node.resource
            label = f"ExpressRoute\n{node.name}"
            if circuit.service_provider_name:
                label += f"\n{circuit.service_provider_name}"
            if circuit.bandwidth_in_mbps:
                label += f"\n{circuit.bandwidth_in_mbps} Mbps"
            self._emit(
                description,
                DiagramNode(
                    id=self._node_id(node),
                    label=label,
                    kind=ResourceKind.EXPRESS_ROUTE_CIRCUIT.value,
                    resource_id=node.resource_id,
                ),
            )

    def _add_hosted_node(self, description: DiagramDescription, node: CanonicalNode, label: str) -> None:
        node_id = self._node_id(node)
        self._emit(
            description,
            DiagramNode(id=node_id, label=label, kind=node.kind.value, resource_id=node.resource_id),
        )

        vnet_node_id = self._owning_vnet_node_id(node)
        if vnet_node_id is None:
            logger.debug(f"No owning VNet found for {node.kind.value} {node.name}")
            return
        description.edges.append(
            DiagramEdge(source=node_id, target=vnet_node_id, kind=EdgeKind.HOSTED_IN, label="hosted in"),
        )

    def _add_firewall_egress(self, description: DiagramDescription, topology: NetworkTopology) -> None:
        index = NextHopIndex.from_topology(topology)
        drawn: Set[Tuple[str, str]] = set()

        for route_table in topology.route_tables:
            rt_node = self._graph.node(route_table.id)
            if rt_node is None:
                continue
            for route in route_table.routes:
                firewall = index.firewall_for(route)
                if firewall is None:
                    continue

                fw_node = self._graph.node(firewall.id)
                if fw_node is None:
                    continue
                pair = (self._node_id(rt_node), self._node_id(fw_node))
                if pair in drawn:
                    continue
                drawn.add(pair)
                description.edges.append(
                    DiagramEdge(
                        source=pair[0],
                        target=pair[1],
                        kind=EdgeKind.FIREWALL_EGRESS,
                        label="egress via FW",
                    ),
                )

        egress_firewalls: Dict[str, CanonicalNode] = {}
        for firewall in index.routed_firewalls():
            fw_node = self._graph.node(firewall.id)
            if firewall.public_ip_addresses and fw_node is not None:
                egress_firewalls.setdefault(fw_node.id, fw_node)
        if not egress_firewalls:
            return

        self._emit(
            description,
            DiagramNode(id=INTERNET_NODE_ID, label="Internet", kind="internet"),
        )
        for fw_node in egress_firewalls.values():
            description.edges.append(
                DiagramEdge(
                    source=self._node_id(fw_node),
                    target=INTERNET_NODE_ID,
                    kind=EdgeKind.INTERNET_EGRESS,
                    label="Public IP egress",
                ),
            )

    def _private_endpoint_table(self, topology: NetworkTopology) -> Optional[TableNode]:
        if not topology.private_endpoints:
            return None

        table = TableNode(
            id=PRIVATE_ENDPOINT_TABLE_ID,
            title="Private Endpoints",
            columns=["Name", "Target Service", "Subnet", "Private IP", "Status"],
        )
        for endpoint in topology.private_endpoints:
            subnet = self._graph.node(endpoint.subnet_id)
            table.rows.append(
                [
                    endpoint.name,
                    extract_resource_name(endpoint.private_link_service_id) or "-",
                    subnet.name if subnet is not None else "-",
                    endpoint.private_ip_address or "-",
                    endpoint.connection_state or "-",
                ],
            )
        return table
