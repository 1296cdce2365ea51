"""Detection of unattached and unused network resources."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Set

from ..core.models import NetworkTopology
from .resolver import RelationKind, canonical_id, iter_subnet_references

logger = logging.getLogger(__name__)


@dataclass
class OrphanedResources:
    """Resources that are not attached or used by any subnet."""

    unattached_nsgs: List[str] = field(default_factory=list)
    unused_route_tables: List[str] = field(default_factory=list)
    unused_nat_gateways: List[str] = field(default_factory=list)
    subnets_without_nsg: List[str] = field(default_factory=list)
    subnets_without_route_table: List[str] = field(default_factory=list)

    @property
    def has_orphans(self) -> bool:
        return any(
            (
                self.unattached_nsgs,
                self.unused_route_tables,
                self.unused_nat_gateways,
                self.subnets_without_nsg,
                self.subnets_without_route_table,
            ),
        )


def find_orphaned_resources(topology: NetworkTopology) -> OrphanedResources:
    """Partition NSGs, route tables and NAT gateways by subnet usage.

    A single pass over the subnets collects the referenced IDs per kind and
    records subnets missing an NSG or route table; each resource is then
    checked once against the matching set.

    Args:
        topology: Topology snapshot.

    Returns:
        Orphaned resource lists (resource names, ``vnet/subnet`` for subnets).
    """
    orphaned = OrphanedResources()
    used: Dict[RelationKind, Set[str]] = {
        RelationKind.SECURED_BY: set(),
        RelationKind.ROUTES_VIA: set(),
        RelationKind.EGRESS_VIA: set(),
    }

    for vnet, subnet in topology.iter_subnets():
        configured = set()
        for relation, target, _ in iter_subnet_references(subnet):
            used[relation].add(target)
            configured.add(relation)

        label = f"{vnet.name}/{subnet.name}"
        if RelationKind.SECURED_BY not in configured:
            orphaned.subnets_without_nsg.append(label)
        if RelationKind.ROUTES_VIA not in configured:
            orphaned.subnets_without_route_table.append(label)

    for nsg in topology.network_security_groups:
        if canonical_id(nsg.id) not in used[RelationKind.SECURED_BY]:
            orphaned.unattached_nsgs.append(nsg.name)

    for route_table in topology.route_tables:
        if canonical_id(route_table.id) not in used[RelationKind.ROUTES_VIA]:
            orphaned.unused_route_tables.append(route_table.name)

    for nat in topology.nat_gateways:
        if canonical_id(nat.id) not in used[RelationKind.EGRESS_VIA]:
            orphaned.unused_nat_gateways.append(nat.name)

    logger.info(
        f"Orphan scan: {len(orphaned.unattached_nsgs)} unattached NSGs, "
        f"{len(orphaned.unused_route_tables)} unused route tables, "
        f"{len(orphaned.unused_nat_gateways)} unused NAT gateways",
    )
    return orphaned
