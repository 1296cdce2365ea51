"""Tests for orphaned resource detection."""

from aznet.analysis.orphans import find_orphaned_resources

from topology_factory import (
    make_nat,
    make_nsg,
    make_route_table,
    make_subnet,
    make_topology,
    make_vnet,
    shared_nat_topology,
)


def test_unreferenced_nsg_is_unattached():
    """Test that an NSG no subnet references is reported and nothing else is."""
    used = make_nsg("nsg-used")
    unused = make_nsg("nsg-unused")
    topology = make_topology(
        virtual_networks=(make_vnet("vnet-a", make_subnet("vnet-a", "subnet-1", network_security_group=used.id)),),
        network_security_groups=(used, unused),
    )

    orphaned = find_orphaned_resources(topology)

    assert orphaned.unattached_nsgs == ["nsg-unused"]
    assert orphaned.unused_route_tables == []
    assert orphaned.unused_nat_gateways == []
    assert orphaned.subnets_without_nsg == []


def test_subnets_missing_references_are_listed():
    """Test subnets without NSG or route table are reported as vnet/subnet."""
    route_table = make_route_table("rt-main")
    topology = make_topology(
        virtual_networks=(
            make_vnet(
                "vnet-a",
                make_subnet("vnet-a", "subnet-1", route_table=route_table.id),
                make_subnet("vnet-a", "subnet-2", prefix="10.0.2.0/24"),
            ),
        ),
        route_tables=(route_table,),
    )

    orphaned = find_orphaned_resources(topology)

    assert orphaned.subnets_without_nsg == ["vnet-a/subnet-1", "vnet-a/subnet-2"]
    assert orphaned.subnets_without_route_table == ["vnet-a/subnet-2"]
    assert orphaned.unused_route_tables == []


def test_unused_route_table_and_nat_gateway():
    """Test that unreferenced route tables and NAT gateways are reported."""
    topology = make_topology(
        virtual_networks=(make_vnet("vnet-a", make_subnet("vnet-a", "subnet-1")),),
        route_tables=(make_route_table("rt-orphaned"),),
        nat_gateways=(make_nat("nat-idle"),),
    )

    orphaned = find_orphaned_resources(topology)

    assert orphaned.unused_route_tables == ["rt-orphaned"]
    assert orphaned.unused_nat_gateways == ["nat-idle"]
    assert orphaned.has_orphans is True


def test_shared_nat_gateway_is_used():
    """Test that a NAT gateway shared by several subnets is not orphaned."""
    orphaned = find_orphaned_resources(shared_nat_topology(2))

    assert orphaned.unused_nat_gateways == []
    assert orphaned.subnets_without_nsg == ["vnet-a/subnet-0", "vnet-a/subnet-1"]


def test_reference_case_does_not_orphan():
    """Test that a differently-cased reference still counts as usage."""
    nsg = make_nsg("nsg-web")
    topology = make_topology(
        virtual_networks=(
            make_vnet("vnet-a", make_subnet("vnet-a", "subnet-1", network_security_group=nsg.id.lower())),
        ),
        network_security_groups=(nsg,),
    )

    assert find_orphaned_resources(topology).unattached_nsgs == []


def test_empty_topology_has_no_orphans():
    """Test that an empty snapshot produces empty lists."""
    orphaned = find_orphaned_resources(make_topology())

    assert orphaned.has_orphans is False
