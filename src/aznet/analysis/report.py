"""Assembly of the analysis report: summary, findings, orphans, recommendations."""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Tuple

from ..core.models import Finding, NetworkTopology, Severity
from .orphans import OrphanedResources, find_orphaned_resources
from .security import SecurityClassifier

logger = logging.getLogger(__name__)


@dataclass
class TopologySummary:
    """Resource statistics for a topology snapshot."""

    total_vnets: int = 0
    total_subnets: int = 0
    total_nsgs: int = 0
    total_security_rules: int = 0
    total_route_tables: int = 0
    total_routes: int = 0
    total_private_endpoints: int = 0
    total_private_dns_zones: int = 0
    total_nat_gateways: int = 0
    total_vpn_gateways: int = 0
    total_er_circuits: int = 0
    total_load_balancers: int = 0
    total_app_gateways: int = 0
    total_azure_firewalls: int = 0
    total_ip_address_space: List[str] = field(default_factory=list)
    vnet_peering_count: int = 0
    cross_rg_dependencies: int = 0

    @classmethod
    def from_topology(cls, topology: NetworkTopology) -> "TopologySummary":
        summary = cls(
            total_vnets=len(topology.virtual_networks),
            total_nsgs=len(topology.network_security_groups),
            total_route_tables=len(topology.route_tables),
            total_private_endpoints=len(topology.private_endpoints),
            total_private_dns_zones=len(topology.private_dns_zones),
            total_nat_gateways=len(topology.nat_gateways),
            total_vpn_gateways=len(topology.vpn_gateways),
            total_er_circuits=len(topology.express_route_circuits),
            total_load_balancers=len(topology.load_balancers),
            total_app_gateways=len(topology.application_gateways),
            total_azure_firewalls=len(topology.azure_firewalls),
        )

        for vnet in topology.virtual_networks:
            summary.total_subnets += len(vnet.subnets)
            summary.total_ip_address_space.extend(vnet.address_space)
            summary.vnet_peering_count += len(vnet.peerings)

        summary.total_security_rules = sum(len(nsg.security_rules) for nsg in topology.network_security_groups)
        summary.total_routes = sum(len(rt.routes) for rt in topology.route_tables)

        # Peerings are declared on both sides
        summary.cross_rg_dependencies = summary.vnet_peering_count // 2
        return summary


@dataclass
class AnalysisReport:
    """Result of analyzing one topology snapshot."""

    summary: TopologySummary
    findings: List[Finding] = field(default_factory=list)
    orphaned_resources: OrphanedResources = field(default_factory=OrphanedResources)
    recommendations: List[str] = field(default_factory=list)

    def severity_counts(self) -> Dict[Severity, int]:
        """Count findings per severity, with every severity present."""
        counts = {severity: 0 for severity in Severity}
        for finding in self.findings:
            counts[finding.severity] += 1
        return counts

    def findings_by_severity(self, severity: Severity) -> List[Finding]:
        return [finding for finding in self.findings if finding.severity == severity]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "summary": asdict(self.summary),
            "security_findings": [
                {
                    "severity": finding.severity.value,
                    "category": finding.category.value,
                    "resource": finding.resource,
                    "resource_id": finding.resource_id,
                    "rule": finding.rule,
                    "description": finding.description,
                    "recommendation": finding.recommendation,
                }
                for finding in self.findings
            ],
            "orphaned_resources": asdict(self.orphaned_resources),
            "recommendations": list(self.recommendations),
        }


RecommendationRule = Tuple[Callable[[AnalysisReport], bool], str]

# Evaluated in order; each matching predicate contributes its message once.
RECOMMENDATION_RULES: Tuple[RecommendationRule, ...] = (
    (
        lambda report: bool(report.findings_by_severity(Severity.CRITICAL)),
        "URGENT: Address critical security findings immediately to prevent potential breaches",
    ),
    (
        lambda report: bool(report.findings_by_severity(Severity.HIGH)),
        "Review and remediate high-severity security findings within 24-48 hours",
    ),
    (
        lambda report: bool(report.orphaned_resources.unattached_nsgs),
        "Consider removing unattached NSGs or attaching them to appropriate subnets",
    ),
    (
        lambda report: bool(report.orphaned_resources.subnets_without_nsg),
        "Attach NSGs to isolated subnets to improve security posture",
    ),
    (
        lambda report: bool(report.orphaned_resources.unused_route_tables),
        "Remove unused Route Tables to reduce configuration complexity",
    ),
    (
        lambda report: bool(report.orphaned_resources.unused_nat_gateways),
        "Remove unused NAT Gateways or associate them with subnets that need outbound connectivity",
    ),
    (
        lambda report: report.summary.total_vnets > 0 and report.summary.vnet_peering_count == 0,
        "Consider VNet peering for connectivity between virtual networks if needed",
    ),
    (
        lambda report: report.summary.total_vnets > 0 and report.summary.total_private_endpoints == 0,
        "Consider using Private Endpoints for secure access to Azure PaaS services",
    ),
)


def generate_recommendations(report: AnalysisReport) -> List[str]:
    return [message for predicate, message in RECOMMENDATION_RULES if predicate(report)]


def analyze(topology: NetworkTopology) -> AnalysisReport:
    """Run summary, security classification and orphan detection.

    Args:
        topology: Topology snapshot.

    Returns:
        Complete analysis report.
    """
    report = AnalysisReport(
        summary=TopologySummary.from_topology(topology),
        findings=SecurityClassifier().classify(topology),
        orphaned_resources=find_orphaned_resources(topology),
    )
    report.recommendations = generate_recommendations(report)

    logger.info(
        f"Analysis complete: {len(report.findings)} findings, "
        f"{len(report.recommendations)} recommendations",
    )
    return report
