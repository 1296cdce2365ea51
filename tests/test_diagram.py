"""Tests for diagram description building and DOT generation."""

from aznet.analysis.orphans import find_orphaned_resources
from aznet.analysis.resolver import ReferenceResolver, ResourceKind
from aznet.core.models import (
    AzureFirewall,
    Direction,
    PrivateEndpoint,
    Route,
    Theme,
    VisualizationConfig,
    VNetPeering,
    VPNGateway,
)
from aznet.core.sample import build_sample_topology
from aznet.visualization.diagram import (
    DiagramBuilder,
    DiagramDescription,
    DiagramNode,
    EdgeKind,
    sanitize_name,
)
from aznet.visualization.dot_generator import DOTGenerator

from topology_factory import (
    make_nat,
    make_nsg,
    make_route_table,
    make_subnet,
    make_topology,
    make_vnet,
    rid,
    shared_nat_topology,
    subnet_id,
    vnet_id,
)


def build(topology, **options):
    config = VisualizationConfig(**options)
    description = DiagramBuilder(config).build(ReferenceResolver().resolve(topology), topology)
    return description, DOTGenerator(config).generate_dot(description)


def firewall_topology(public_ips=("pip-fw",)):
    route_table = make_route_table(
        "rt-app",
        Route(name="default", address_prefix="0.0.0.0/0", next_hop_type="VirtualAppliance", next_hop_ip_address="10.0.0.4"),
        Route(name="onprem", address_prefix="192.168.0.0/16", next_hop_type="VirtualAppliance", next_hop_ip_address="10.0.0.4"),
    )
    firewall = AzureFirewall(
        id=rid("azureFirewalls", "fw-hub"),
        name="fw-hub",
        subnet_id=subnet_id("vnet-hub", "AzureFirewallSubnet"),
        private_ip_address="10.0.0.4",
        public_ip_addresses=public_ips,
    )
    vnet = make_vnet(
        "vnet-hub",
        make_subnet("vnet-hub", "AzureFirewallSubnet", prefix="10.0.0.0/26"),
        make_subnet("vnet-hub", "subnet-app", route_table=route_table.id),
    )
    return make_topology(virtual_networks=(vnet,), route_tables=(route_table,), azure_firewalls=(firewall,))


def test_shared_nat_gateway_drawn_once():
    """Test that a NAT gateway shared by 3 subnets is 1 node with 3 edges."""
    description, dot = build(shared_nat_topology(3))

    nat_nodes = description.nodes_of_kind(ResourceKind.NAT_GATEWAY.value)
    assert [n.id for n in nat_nodes] == ["nat_shared_nat"]
    assert len(description.edges_of_kind(EdgeKind.EGRESS)) == 3

    assert dot.count('\n    "nat_shared_nat" [label=') == 1
    assert dot.count('-> "nat_shared_nat"') == 3


def test_shared_nat_with_protected_and_bare_subnet():
    """Test orphans and egress edges for a protected subnet and a bare subnet sharing a NAT gateway."""
    nsg = make_nsg("nsg-app")
    route_table = make_route_table("rt-app")
    nat = make_nat("shared-nat")
    vnet = make_vnet(
        "vnet-a",
        make_subnet("vnet-a", "app", network_security_group=nsg.id, route_table=route_table.id, nat_gateway=nat.id),
        make_subnet("vnet-a", "bare", prefix="10.0.2.0/24", nat_gateway=nat.id),
    )
    topology = make_topology(
        virtual_networks=(vnet,),
        network_security_groups=(nsg,),
        route_tables=(route_table,),
        nat_gateways=(nat,),
    )

    orphans = find_orphaned_resources(topology)
    assert orphans.subnets_without_nsg == ["vnet-a/bare"]
    assert orphans.subnets_without_route_table == ["vnet-a/bare"]
    assert orphans.unattached_nsgs == []
    assert orphans.unused_route_tables == []
    assert orphans.unused_nat_gateways == []

    description, dot = build(topology)
    assert len(description.nodes_of_kind(ResourceKind.NAT_GATEWAY.value)) == 1
    assert len(description.edges_of_kind(EdgeKind.EGRESS)) == 2
    assert dot.count('-> "nat_shared_nat"') == 2


def test_vnet_cluster_contains_subnets():
    """Test that each VNet becomes a cluster holding its anchor and subnets."""
    description, dot = build(shared_nat_topology(2))

    assert len(description.clusters) == 1
    cluster = description.clusters[0]
    assert cluster.id == "cluster_vnet_vnet_a"
    assert cluster.label == "VNet: vnet-a\n10.0.0.0/16"
    assert cluster.node_ids == ["vnet_vnet_a", "subnet_vnet_a_subnet_0", "subnet_vnet_a_subnet_1"]
    assert 'subgraph "cluster_vnet_vnet_a" {' in dot
    assert 'fontname="Helvetica-Bold";' in dot

    # Both subnets share one NAT gateway node
    assert len(description.nodes_of_kind(ResourceKind.NAT_GATEWAY.value)) == 1
    assert len(description.edges_of_kind(EdgeKind.EGRESS)) == 2


def test_unprotected_subnet_is_highlighted():
    """Test that subnets without an NSG are flagged and colored."""
    nsg = make_nsg("nsg-web")
    topology = make_topology(
        virtual_networks=(
            make_vnet(
                "vnet-a",
                make_subnet("vnet-a", "protected", network_security_group=nsg.id),
                make_subnet("vnet-a", "open", prefix="10.0.2.0/24"),
            ),
        ),
        network_security_groups=(nsg,),
    )

    description, dot = build(topology)

    assert description.node("subnet_vnet_a_protected").unprotected is False
    assert description.node("subnet_vnet_a_open").unprotected is True
    assert '"nsg_nsg_web" -> "subnet_vnet_a_protected" [label="protects"' in dot
    assert "Subnet (no NSG)" in dot


def test_firewall_egress_and_internet_node():
    """Test route-table egress through a firewall that owns a public IP."""
    description, dot = build(firewall_topology())

    # Two routes to the same firewall collapse into one edge
    egress = description.edges_of_kind(EdgeKind.FIREWALL_EGRESS)
    assert [(e.source, e.target) for e in egress] == [("rt_rt_app", "fw_fw_hub")]

    internet = description.edges_of_kind(EdgeKind.INTERNET_EGRESS)
    assert [(e.source, e.target) for e in internet] == [("fw_fw_hub", "internet")]
    assert description.node("internet").label == "Internet"

    hosted = description.edges_of_kind(EdgeKind.HOSTED_IN)
    assert [(e.source, e.target) for e in hosted] == [("fw_fw_hub", "vnet_vnet_hub")]

    assert description.node("fw_fw_hub").label == "Azure Firewall\nfw-hub\n10.0.0.4"
    assert '"rt_rt_app" -> "fw_fw_hub" [label="egress via FW"' in dot
    assert '"fw_fw_hub" -> "internet" [label="Public IP egress"' in dot


def test_firewall_without_public_ip_has_no_internet_node():
    """Test that the Internet node needs a routed firewall with a public IP."""
    description, _ = build(firewall_topology(public_ips=()))

    assert description.node("internet") is None
    assert description.edges_of_kind(EdgeKind.INTERNET_EGRESS) == []
    assert len(description.edges_of_kind(EdgeKind.FIREWALL_EGRESS)) == 1


def test_orphaned_route_table_is_still_drawn():
    """Test that an unused route table is emitted and marked unattached."""
    topology = make_topology(
        virtual_networks=(make_vnet("vnet-a", make_subnet("vnet-a", "subnet-1")),),
        route_tables=(make_route_table("rt-orphaned"),),
    )

    description, dot = build(topology)

    node = description.node("rt_rt_orphaned")
    assert node.unattached is True
    assert node.label == "Route Table\nrt-orphaned\n(unattached)"
    assert '"rt_rt_orphaned" [label="Route Table\\nrt-orphaned\\n(unattached)"' in dot
    assert 'color="red"' in dot


def test_unresolved_nsg_is_drawn_as_placeholder():
    """Test that a dangling NSG reference becomes a dashed placeholder node."""
    missing = rid("networkSecurityGroups", "nsg-deleted")
    topology = make_topology(
        virtual_networks=(make_vnet("vnet-a", make_subnet("vnet-a", "subnet-1", network_security_group=missing)),),
    )

    description, dot = build(topology)

    node = description.node("nsg_nsg_deleted")
    assert node.unresolved is True
    assert node.unattached is False
    assert node.label.endswith("(unresolved)")
    assert 'style="filled,dashed", fillcolor="#D3D3D3"' in dot
    # The subnet still counts as protected by the dangling reference
    assert description.node("subnet_vnet_a_subnet_1").unprotected is False


def test_external_peering_remote():
    """Test that a peering to an undeclared VNet draws an external node."""
    vnet = make_vnet(
        "vnet-a",
        peerings=(
            VNetPeering(
                name="to-partner",
                remote_vnet_id=vnet_id("vnet-partner"),
                remote_vnet_name="Partner VNet",
                peering_state="Disconnected",
            ),
        ),
    )

    description, dot = build(make_topology(virtual_networks=(vnet,)))

    remote = description.node("remote_vnet_partner")
    assert remote.external is True
    assert remote.label == "Partner VNet\n(External)"

    peering = description.edges_of_kind(EdgeKind.PEERING)
    assert len(peering) == 1
    assert peering[0].healthy is False
    assert peering[0].bidirectional is True
    assert 'color="red", dir=both' in dot


def test_reciprocal_peerings_are_separate_edges():
    """Test that each declared peering produces its own edge."""
    vnet_a = make_vnet(
        "vnet-a",
        peerings=(VNetPeering(name="a-to-b", remote_vnet_id=vnet_id("vnet-b"), peering_state="Connected"),),
    )
    vnet_b = make_vnet(
        "vnet-b",
        address_space=("10.1.0.0/16",),
        peerings=(VNetPeering(name="b-to-a", remote_vnet_id=vnet_id("vnet-a"), peering_state="Connected"),),
    )

    description, dot = build(make_topology(virtual_networks=(vnet_a, vnet_b)))

    edges = description.edges_of_kind(EdgeKind.PEERING)
    assert [(e.source, e.target) for e in edges] == [("vnet_vnet_a", "vnet_vnet_b"), ("vnet_vnet_b", "vnet_vnet_a")]
    assert all(e.healthy for e in edges)
    assert 'label="peering\\nConnected"' in dot


def test_vpn_gateway_attached_to_vnet():
    """Test the gateway edge from a VPN gateway to its VNet."""
    topology = make_topology(
        virtual_networks=(make_vnet("vnet-hub"),),
        vpn_gateways=(
            VPNGateway(id=rid("virtualNetworkGateways", "vpn-gw"), name="vpn-gw", vnet_id=vnet_id("vnet-hub"), sku="VpnGw1"),
            VPNGateway(id=rid("virtualNetworkGateways", "vpn-lost"), name="vpn-lost", vnet_id=vnet_id("vnet-gone")),
        ),
    )

    description, _ = build(topology)

    gateway_edges = description.edges_of_kind(EdgeKind.GATEWAY)
    assert [(e.source, e.target) for e in gateway_edges] == [("vpn_vpn_gw", "vnet_vnet_hub")]
    assert description.node("vpn_vpn_gw").label == "VPN GW\nvpn-gw\nVpnGw1"
    assert description.node("vpn_vpn_lost") is not None


def test_private_endpoint_table():
    """Test that private endpoints are rendered as one sink-ranked table."""
    endpoint = PrivateEndpoint(
        id=rid("privateEndpoints", "pe-sql"),
        name="pe-sql",
        subnet_id=subnet_id("vnet-a", "subnet-1"),
        private_ip_address="10.0.1.10",
        private_link_service_id="/subscriptions/sub-1/resourceGroups/rg-data/providers/Microsoft.Sql/servers/sql-prod",
    )
    topology = make_topology(
        virtual_networks=(make_vnet("vnet-a", make_subnet("vnet-a", "subnet-1")),),
        private_endpoints=(endpoint,),
    )

    description, dot = build(topology)

    assert len(description.tables) == 1
    table = description.tables[0]
    assert table.id == "pe_table"
    assert table.rows == [["pe-sql", "sql-prod", "subnet-1", "10.0.1.10", "-"]]
    assert '{rank=sink; "pe_table";}' in dot
    assert "<B>Private Endpoints</B>" in dot

    hidden, hidden_dot = build(topology, show_private_endpoints=False)
    assert hidden.tables == []
    assert "pe_table" not in hidden_dot


def test_duplicate_names_get_unique_ids():
    """Test that resources whose names sanitize alike get distinct node IDs."""
    topology = make_topology(network_security_groups=(make_nsg("nsg-a"), make_nsg("nsg.a")))

    description, _ = build(topology)

    ids = [n.id for n in description.nodes_of_kind(ResourceKind.NETWORK_SECURITY_GROUP.value)]
    assert ids == ["nsg_nsg_a", "nsg_nsg_a_2"]


def test_graph_attributes_and_title():
    """Test the DOT header, default title and layout options."""
    _, dot = build(shared_nat_topology(1), direction=Direction.LEFT_TO_RIGHT, theme=Theme.DARK)

    assert dot.startswith("digraph NetworkTopology {")
    assert dot.endswith("}\n")
    assert 'rankdir="LR";' in dot
    assert 'bgcolor="#1e1e1e";' in dot
    assert 'label="Azure Network Topology\\nsub-1 / rg-net";' in dot


def test_custom_title_and_no_legend():
    """Test overriding the title and disabling the legend."""
    _, dot = build(shared_nat_topology(1), title='Prod "core"', show_legend=False)

    assert 'label="Prod \\"core\\"";' in dot
    assert "cluster_legend" not in dot


def test_legend_lists_present_kinds_only():
    """Test that the legend only mentions node kinds present in the diagram."""
    _, dot = build(shared_nat_topology(1))

    assert 'subgraph "cluster_legend"' in dot
    assert "NAT Gateway</TD>" in dot
    assert "Azure Firewall</TD>" not in dot


def test_sample_topology_diagram():
    """Test that the built-in sample renders every resource kind."""
    description, dot = build(build_sample_topology())

    kinds = {node.kind for node in description.nodes}
    assert ResourceKind.FIREWALL.value in kinds
    assert ResourceKind.APPLICATION_GATEWAY.value in kinds
    assert ResourceKind.LOAD_BALANCER.value in kinds
    assert description.node("internet") is not None
    assert len(description.edges_of_kind(EdgeKind.PEERING)) == 2
    assert "privatelink" not in dot


def test_sanitize_name():
    """Test DOT identifier sanitization."""
    assert sanitize_name("vnet-hub.prod") == "vnet_hub_prod"
    assert sanitize_name("subnet_1") == "subnet_1"
    assert sanitize_name("") == "unnamed"


def test_size_warning_thresholds():
    """Test the large and very large diagram warnings."""
    def description_with(node_count):
        return DiagramDescription(
            title="t",
            nodes=[DiagramNode(id=f"n{i}", label="", kind="subnet") for i in range(node_count)],
        )

    assert description_with(10).size_warning() is None
    assert "is large (501 nodes" in description_with(501).size_warning()
    assert "is very large (1001 nodes" in description_with(1001).size_warning()
