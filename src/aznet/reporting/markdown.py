"""Markdown report output."""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from .. import __version__
from ..analysis.report import AnalysisReport
from ..analysis.resolver import extract_resource_name
from ..core.models import Finding, NetworkTopology, Severity

logger = logging.getLogger(__name__)

SEVERITY_HEADINGS = {
    Severity.CRITICAL: "Critical Issues",
    Severity.HIGH: "High Severity Issues",
    Severity.MEDIUM: "Medium Severity Issues",
    Severity.LOW: "Low Severity Issues",
    Severity.INFO: "Informational",
}


def _reference_name(resource_id: Optional[str]) -> str:
    return extract_resource_name(resource_id) or "-"


def _detailed_finding(finding: Finding) -> List[str]:
    lines = [f"#### {finding.description}", f"- **Resource:** {finding.resource}"]
    if finding.rule:
        lines.append(f"- **Rule:** {finding.rule}")
    lines.append(f"- **Category:** {finding.category.value}")
    lines.append(f"- **Recommendation:** {finding.recommendation}")
    lines.append("")
    return lines


def _findings_section(report: AnalysisReport) -> List[str]:
    if not report.findings:
        return []

    lines = ["## Security Findings", ""]
    for severity, heading in SEVERITY_HEADINGS.items():
        findings = report.findings_by_severity(severity)
        if not findings:
            continue

        lines.extend([f"### {heading}", ""])
        if severity in (Severity.CRITICAL, Severity.HIGH):
            for finding in findings:
                lines.extend(_detailed_finding(finding))
        else:
            lines.extend(f"- {finding.description} ({finding.resource})" for finding in findings)
            lines.append("")
    return lines


def _topology_section(topology: NetworkTopology) -> List[str]:
    lines = ["## Network Topology", ""]

    if topology.virtual_networks:
        lines.extend(["### Virtual Networks", ""])
        for vnet in topology.virtual_networks:
            lines.append(f"#### {vnet.name}")
            lines.append(f"- **Location:** {vnet.location}")
            lines.append(f"- **Address Space:** {', '.join(vnet.address_space)}")
            if vnet.dns_servers:
                lines.append(f"- **DNS Servers:** {', '.join(vnet.dns_servers)}")
            lines.append(f"- **DDoS Protection:** {vnet.enable_ddos_protection}")

            if vnet.subnets:
                lines.extend(["", "**Subnets:**", ""])
                lines.append("| Name | Address Prefix | NSG | Route Table | NAT Gateway |")
                lines.append("|------|----------------|-----|-------------|-------------|")
                for subnet in vnet.subnets:
                    lines.append(
                        f"| {subnet.name} | {subnet.address_prefix} | "
                        f"{_reference_name(subnet.network_security_group)} | "
                        f"{_reference_name(subnet.route_table)} | "
                        f"{_reference_name(subnet.nat_gateway)} |",
                    )

            if vnet.peerings:
                lines.extend(["", "**Peerings:**", ""])
                for peering in vnet.peerings:
                    remote = peering.remote_vnet_name or _reference_name(peering.remote_vnet_id)
                    lines.append(f"- {peering.name} → {remote} (State: {peering.peering_state})")
            lines.append("")

    if topology.network_security_groups:
        lines.extend(["### Network Security Groups", ""])
        for nsg in topology.network_security_groups:
            lines.append(f"#### {nsg.name}")
            lines.append(f"- **Location:** {nsg.location}")
            if nsg.security_rules:
                lines.extend(["", "**Security Rules:**", ""])
                lines.append("| Priority | Name | Direction | Access | Protocol | Source | Dest Port |")
                lines.append("|----------|------|-----------|--------|----------|--------|-----------|")
                for rule in nsg.security_rules:
                    source = rule.source_address_prefix
                    if len(source) > 20:
                        source = source[:17] + "..."
                    lines.append(
                        f"| {rule.priority} | {rule.name} | {rule.direction} | {rule.access} | "
                        f"{rule.protocol} | {source} | {rule.destination_port_range} |",
                    )
            lines.append("")

    if topology.route_tables:
        lines.extend(["### Route Tables", ""])
        for route_table in topology.route_tables:
            lines.append(f"#### {route_table.name}")
            lines.append(f"- **Location:** {route_table.location}")
            lines.append(f"- **Disable BGP Propagation:** {route_table.disable_bgp_route_propagation}")
            if route_table.routes:
                lines.extend(["", "**Routes:**", ""])
                lines.append("| Name | Address Prefix | Next Hop Type | Next Hop IP |")
                lines.append("|------|----------------|---------------|-------------|")
                for route in route_table.routes:
                    lines.append(
                        f"| {route.name} | {route.address_prefix} | {route.next_hop_type} | "
                        f"{route.next_hop_ip_address or '-'} |",
                    )
            lines.append("")

    if topology.private_endpoints:
        lines.extend(["### Private Endpoints", ""])
        lines.append("| Name | Location | Target Resource | Subnet |")
        lines.append("|------|----------|-----------------|--------|")
        for endpoint in topology.private_endpoints:
            lines.append(
                f"| {endpoint.name} | {endpoint.location} | "
                f"{_reference_name(endpoint.private_link_service_id)} | {_reference_name(endpoint.subnet_id)} |",
            )
        lines.append("")

    if topology.azure_firewalls:
        lines.extend(["### Azure Firewalls", ""])
        for firewall in topology.azure_firewalls:
            lines.append(f"#### {firewall.name}")
            lines.append(f"- **SKU:** {firewall.sku}")
            lines.append(f"- **Private IP:** {firewall.private_ip_address or '-'}")
            lines.append(f"- **Public IPs:** {len(firewall.public_ip_addresses)}")
            lines.append("")

    if topology.application_gateways:
        lines.extend(["### Application Gateways", ""])
        for appgw in topology.application_gateways:
            lines.append(f"#### {appgw.name}")
            lines.append(f"- **SKU:** {appgw.sku} (Capacity: {appgw.capacity})")
            lines.append(f"- **WAF Enabled:** {appgw.waf_enabled}")
            lines.append("")

    if topology.vpn_gateways:
        lines.extend(["### VPN Gateways", ""])
        for gateway in topology.vpn_gateways:
            lines.append(f"#### {gateway.name}")
            lines.append(f"- **Type:** {gateway.gateway_type}")
            lines.append(f"- **VPN Type:** {gateway.vpn_type}")
            lines.append(f"- **SKU:** {gateway.sku}")
            lines.append("")

    return lines


def _orphans_section(report: AnalysisReport) -> List[str]:
    orphans = report.orphaned_resources
    if not orphans.has_orphans:
        return []

    groups = (
        ("Unattached NSGs", orphans.unattached_nsgs),
        ("Unused Route Tables", orphans.unused_route_tables),
        ("Unused NAT Gateways", orphans.unused_nat_gateways),
        ("Subnets Without NSG", orphans.subnets_without_nsg),
        ("Subnets Without Route Table", orphans.subnets_without_route_table),
    )
    lines = ["## Orphaned/Unused Resources", ""]
    for heading, names in groups:
        if names:
            lines.append(f"### {heading}")
            lines.extend(f"- {name}" for name in names)
            lines.append("")
    return lines


def generate_markdown(
    topology: NetworkTopology,
    report: AnalysisReport,
    generated_at: Optional[datetime] = None,
) -> str:
    """Render a Markdown report.

    Args:
        topology: Analyzed topology snapshot.
        report: Analysis report for ``topology``.
        generated_at: Generation time, defaults to now (UTC).

    Returns:
        Markdown document.
    """
    generated_at = generated_at or datetime.now(timezone.utc)
    summary = report.summary
    counts = report.severity_counts()

    lines = [
        "# Azure Network Topology Report",
        "",
        f"**Subscription:** {topology.subscription_id}  ",
        f"**Resource Group:** {topology.resource_group}  ",
        f"**Generated:** {generated_at.strftime('%Y-%m-%d %H:%M:%S %Z')}  ",
        "",
        "## Executive Summary",
        "",
        f"- **Total VNets:** {summary.total_vnets}",
        f"- **Total Subnets:** {summary.total_subnets}",
        f"- **Total NSGs:** {summary.total_nsgs}",
        f"- **Total Security Rules:** {summary.total_security_rules}",
        f"- **VNet Peerings:** {summary.vnet_peering_count}",
        f"- **Security Findings:** {len(report.findings)}",
    ]
    if counts[Severity.CRITICAL] or counts[Severity.HIGH]:
        lines.append(
            f"  - Critical: {counts[Severity.CRITICAL]}, High: {counts[Severity.HIGH]}, "
            f"Medium: {counts[Severity.MEDIUM]}, Low: {counts[Severity.LOW]}",
        )
    lines.append("")

    lines.extend(_findings_section(report))

    if report.recommendations:
        lines.extend(["## Recommendations", ""])
        lines.extend(f"{i}. {message}" for i, message in enumerate(report.recommendations, start=1))
        lines.append("")

    lines.extend(_topology_section(topology))
    lines.extend(_orphans_section(report))

    lines.extend(["---", f"*Generated by python-aznet v{__version__}*", ""])

    logger.info(f"Generated Markdown report with {len(report.findings)} findings")
    return "\n".join(lines)
