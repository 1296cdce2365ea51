"""Tests for the canonical reference graph."""

from aznet.analysis.resolver import (
    NextHopIndex,
    ReferenceResolver,
    RelationKind,
    ResourceKind,
    canonical_id,
    extract_resource_name,
    iter_subnet_references,
)
from aznet.core.models import AzureFirewall, Route

from topology_factory import (
    make_nsg,
    make_route_table,
    make_subnet,
    make_topology,
    make_vnet,
    rid,
    shared_nat_topology,
    subnet_id,
)


def test_canonical_id_normalization():
    """Test that IDs differing in case, whitespace or trailing slash are equal."""
    resource_id = rid("networkSecurityGroups", "nsg-web")

    assert canonical_id(f"  {resource_id.upper()}/ ") == canonical_id(resource_id)
    assert canonical_id(None) == ""
    assert canonical_id("   ") == ""


def test_extract_resource_name():
    """Test extracting the trailing path segment."""
    assert extract_resource_name(rid("natGateways", "shared-nat")) == "shared-nat"
    assert extract_resource_name(rid("natGateways", "shared-nat") + "/") == "shared-nat"
    assert extract_resource_name("") == ""


def test_iter_subnet_references_skips_unset():
    """Test that None and blank references are treated as not configured."""
    subnet = make_subnet(
        "vnet-a",
        "subnet-1",
        network_security_group="  ",
        route_table=None,
        nat_gateway=rid("natGateways", "nat"),
    )

    references = list(iter_subnet_references(subnet))

    assert len(references) == 1
    assert references[0][0] == RelationKind.EGRESS_VIA


def test_shared_nat_gateway_is_one_node():
    """Test that a NAT gateway referenced by 3 subnets yields 1 node and 3 edges."""
    graph = ReferenceResolver().resolve(shared_nat_topology(3))

    nat_nodes = graph.nodes(ResourceKind.NAT_GATEWAY)
    assert len(nat_nodes) == 1
    assert nat_nodes[0].resolved is True
    assert len(graph.edges(RelationKind.EGRESS_VIA)) == 3
    assert len(graph.referrers(nat_nodes[0].id, RelationKind.EGRESS_VIA)) == 3


def test_resolve_is_idempotent():
    """Test that resolving the same snapshot twice yields identical counts."""
    topology = shared_nat_topology(3)
    resolver = ReferenceResolver()

    first = resolver.resolve(topology)
    second = resolver.resolve(topology)

    assert first.number_of_nodes() == second.number_of_nodes()
    assert first.number_of_edges() == second.number_of_edges()
    # VNet + 3 subnets + NAT
    assert first.number_of_nodes() == 5
    # 3 contains + 3 egress
    assert first.number_of_edges() == 6


def test_dangling_reference_creates_placeholder():
    """Test that a reference to a missing NSG becomes an unresolved node."""
    missing_nsg = rid("networkSecurityGroups", "nsg-deleted")
    topology = make_topology(
        virtual_networks=(make_vnet("vnet-a", make_subnet("vnet-a", "subnet-1", network_security_group=missing_nsg)),),
    )

    graph = ReferenceResolver().resolve(topology)

    placeholder = graph.node(missing_nsg)
    assert placeholder is not None
    assert placeholder.resolved is False
    assert placeholder.kind == ResourceKind.NETWORK_SECURITY_GROUP
    assert placeholder.name == "nsg-deleted"
    assert graph.unresolved_nodes() == [placeholder]


def test_reference_matching_is_case_insensitive():
    """Test that a differently-cased reference resolves to the declared node."""
    nsg = make_nsg("nsg-web")
    topology = make_topology(
        virtual_networks=(
            make_vnet("vnet-a", make_subnet("vnet-a", "subnet-1", network_security_group=nsg.id.upper() + "/")),
        ),
        network_security_groups=(nsg,),
    )

    graph = ReferenceResolver().resolve(topology)

    assert graph.unresolved_nodes() == []
    assert len(graph.nodes(ResourceKind.NETWORK_SECURITY_GROUP)) == 1
    assert [n.name for n in graph.referrers(nsg.id, RelationKind.SECURED_BY)] == ["subnet-1"]


def test_duplicate_declarations_collapse():
    """Test that declaring the same NSG twice produces a single node."""
    nsg = make_nsg("nsg-web")
    topology = make_topology(network_security_groups=(nsg, make_nsg("NSG-WEB")))

    graph = ReferenceResolver().resolve(topology)

    assert len(graph.nodes(ResourceKind.NETWORK_SECURITY_GROUP)) == 1
    assert graph.node(nsg.id).name == "nsg-web"


def test_parent_vnet_lookup():
    """Test finding the VNet that contains a subnet."""
    topology = make_topology(virtual_networks=(make_vnet("vnet-a", make_subnet("vnet-a", "subnet-1")),))

    graph = ReferenceResolver().resolve(topology)

    assert graph.parent_vnet(subnet_id("vnet-a", "subnet-1")).name == "vnet-a"
    assert graph.parent_vnet(subnet_id("vnet-a", "missing")) is None


def test_next_hop_index_matches_firewall_private_ip():
    """Test route next-hop IP matching against firewall private IPs."""
    firewall = AzureFirewall(id=rid("azureFirewalls", "fw-hub"), name="fw-hub", private_ip_address="10.0.0.4")
    idle_firewall = AzureFirewall(id=rid("azureFirewalls", "fw-idle"), name="fw-idle", private_ip_address="10.0.0.5")
    route_table = make_route_table(
        "rt-main",
        Route(name="default", address_prefix="0.0.0.0/0", next_hop_type="VirtualAppliance", next_hop_ip_address="10.0.0.4"),
        Route(name="local", address_prefix="10.1.0.0/16", next_hop_type="VnetLocal"),
    )
    topology = make_topology(route_tables=(route_table,), azure_firewalls=(firewall, idle_firewall))

    index = NextHopIndex.from_topology(topology)

    assert index.firewall_for(route_table.routes[0]) == firewall
    assert index.firewall_for(route_table.routes[1]) is None
    assert index.routed_firewalls() == [firewall]


def test_peering_edges_keep_state():
    """Test that peering edges carry the peering state attribute."""
    from aznet.core.models import VNetPeering

    remote = rid("virtualNetworks", "vnet-remote")
    vnet = make_vnet(
        "vnet-a",
        peerings=(VNetPeering(name="to-remote", remote_vnet_id=remote, peering_state="Disconnected"),),
    )

    graph = ReferenceResolver().resolve(make_topology(virtual_networks=(vnet,)))

    edges = graph.edges(RelationKind.PEERED_WITH)
    assert len(edges) == 1
    assert edges[0].attributes["peering_state"] == "Disconnected"
    assert graph.node(remote).resolved is False
    assert graph.node(remote).kind == ResourceKind.VIRTUAL_NETWORK
