"""HTML report output."""

import logging
from datetime import datetime, timezone
from html import escape
from typing import List, Optional

from .. import __version__
from ..analysis.report import AnalysisReport
from ..analysis.resolver import extract_resource_name
from ..core.models import Finding, NetworkTopology, Severity

logger = logging.getLogger(__name__)

REPORT_STYLE = """
        :root {
            --critical: #dc3545;
            --high: #fd7e14;
            --medium: #ffc107;
            --low: #17a2b8;
            --info: #6c757d;
        }
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            line-height: 1.6;
            color: #333;
            max-width: 1200px;
            margin: 0 auto;
            padding: 20px;
            background: #f5f5f5;
        }
        .report-container {
            background: white;
            border-radius: 8px;
            box-shadow: 0 2px 10px rgba(0,0,0,0.1);
            padding: 30px;
        }
        h1 { color: #0078d4; border-bottom: 3px solid #0078d4; padding-bottom: 10px; }
        h2 { color: #444; margin-top: 30px; border-bottom: 1px solid #ddd; padding-bottom: 5px; }
        .metadata { background: #e9ecef; padding: 15px; border-radius: 5px; }
        .metadata p { margin: 5px 0; }
        .summary-grid {
            display: grid;
            grid-template-columns: repeat(auto-fit, minmax(200px, 1fr));
            gap: 15px;
            margin: 20px 0;
        }
        .summary-card { background: #f8f9fa; padding: 15px; border-radius: 5px; border-left: 4px solid #0078d4; }
        .summary-card h4 { margin: 0 0 5px 0; color: #666; font-size: 0.9em; }
        .summary-card .value { font-size: 1.8em; font-weight: bold; color: #0078d4; }
        .severity-badge {
            display: inline-block;
            padding: 3px 10px;
            border-radius: 12px;
            color: white;
            font-size: 0.85em;
            font-weight: bold;
        }
        .severity-critical { background: var(--critical); }
        .severity-high { background: var(--high); }
        .severity-medium { background: var(--medium); color: #333; }
        .severity-low { background: var(--low); }
        .severity-info { background: var(--info); }
        .finding {
            border: 1px solid #ddd;
            border-radius: 5px;
            padding: 15px;
            margin: 10px 0;
            border-left: 4px solid var(--info);
        }
        .finding.critical { border-left-color: var(--critical); }
        .finding.high { border-left-color: var(--high); }
        .recommendation { background: #e7f3ff; padding: 10px; border-radius: 5px; margin-top: 10px; }
        table { width: 100%; border-collapse: collapse; margin: 10px 0; }
        th, td { border: 1px solid #ddd; padding: 8px; text-align: left; }
        th { background: #0078d4; color: white; }
        tr:nth-child(even) { background: #f8f9fa; }
        footer { margin-top: 40px; text-align: center; color: #666; font-size: 0.9em; }
"""

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Azure Network Topology Report</title>
    <style>{style}    </style>
</head>
<body>
    <div class="report-container">
        <h1>Azure Network Topology Report</h1>
{body}
        <footer>
            <p>Generated by python-aznet v{version}</p>
        </footer>
    </div>
</body>
</html>
"""


def _cell(value: object) -> str:
    return f"<td>{escape(str(value))}</td>"


def _row(*values: object) -> str:
    return "<tr>" + "".join(_cell(value) for value in values) + "</tr>"


def _table(headers: List[str], rows: List[str]) -> List[str]:
    lines = ["<table>", "<tr>" + "".join(f"<th>{escape(h)}</th>" for h in headers) + "</tr>"]
    lines.extend(rows)
    lines.append("</table>")
    return lines


def _reference_name(resource_id: Optional[str]) -> str:
    return extract_resource_name(resource_id) or "-"


def _badge(severity: Severity, text: str) -> str:
    return f'<span class="severity-badge severity-{severity.value.lower()}">{escape(text)}</span>'


def _detailed_finding(finding: Finding) -> List[str]:
    css = finding.severity.value.lower()
    lines = [
        f'<div class="finding {css}">',
        f"<h4>{_badge(finding.severity, finding.severity.value)} {escape(finding.description)}</h4>",
        '<div class="details">',
        f"<strong>Resource:</strong> {escape(finding.resource)}<br>",
    ]
    if finding.rule:
        lines.append(f"<strong>Rule:</strong> {escape(finding.rule)}<br>")
    lines.append(f"<strong>Category:</strong> {escape(finding.category.value)}")
    lines.append("</div>")
    lines.append(f'<div class="recommendation"><strong>Recommendation:</strong> {escape(finding.recommendation)}</div>')
    lines.append("</div>")
    return lines


def _summary_section(topology: NetworkTopology, report: AnalysisReport, generated_at: datetime) -> List[str]:
    summary = report.summary
    cards = (
        ("Virtual Networks", summary.total_vnets),
        ("Subnets", summary.total_subnets),
        ("NSGs", summary.total_nsgs),
        ("Security Rules", summary.total_security_rules),
        ("Security Findings", len(report.findings)),
    )
    lines = [
        '<div class="metadata">',
        f"<p><strong>Subscription:</strong> {escape(topology.subscription_id)}</p>",
        f"<p><strong>Resource Group:</strong> {escape(topology.resource_group)}</p>",
        f"<p><strong>Generated:</strong> {generated_at.strftime('%Y-%m-%d %H:%M:%S %Z')}</p>",
        "</div>",
        "<h2>Executive Summary</h2>",
        '<div class="summary-grid">',
    ]
    for title, value in cards:
        lines.append(f'<div class="summary-card"><h4>{title}</h4><div class="value">{value}</div></div>')
    lines.append("</div>")
    return lines


def _findings_section(report: AnalysisReport) -> List[str]:
    if not report.findings:
        return []

    counts = report.severity_counts()
    lines = ["<h2>Security Findings</h2>", "<p>"]
    lines.extend(_badge(severity, f"{severity.value}: {count}") for severity, count in counts.items() if count)
    lines.append("</p>")

    for severity, heading in ((Severity.CRITICAL, "Critical Issues"), (Severity.HIGH, "High Severity Issues")):
        findings = report.findings_by_severity(severity)
        if findings:
            lines.append(f"<h3>{heading}</h3>")
            for finding in findings:
                lines.extend(_detailed_finding(finding))

    others = [f for f in report.findings if f.severity not in (Severity.CRITICAL, Severity.HIGH)]
    if others:
        lines.append("<h3>Other Issues</h3>")
        rows = [
            "<tr><td>"
            + _badge(f.severity, f.severity.value)
            + "</td>"
            + "".join(_cell(value) for value in (f.resource, f.description))
            + "</tr>"
            for f in others
        ]
        lines.extend(_table(["Severity", "Resource", "Description"], rows))
    return lines


def _topology_section(topology: NetworkTopology) -> List[str]:
    lines = ["<h2>Network Topology Details</h2>"]

    if topology.virtual_networks:
        lines.append("<h3>Virtual Networks</h3>")
        for vnet in topology.virtual_networks:
            lines.append(f"<h4>{escape(vnet.name)}</h4>")
            lines.append(f"<p><strong>Address Space:</strong> {escape(', '.join(vnet.address_space))}</p>")
            if vnet.subnets:
                rows = [
                    _row(
                        subnet.name,
                        subnet.address_prefix,
                        _reference_name(subnet.network_security_group),
                        _reference_name(subnet.route_table),
                        _reference_name(subnet.nat_gateway),
                    )
                    for subnet in vnet.subnets
                ]
                lines.extend(_table(["Name", "Address Prefix", "NSG", "Route Table", "NAT Gateway"], rows))

    if topology.network_security_groups:
        lines.append("<h3>Network Security Groups</h3>")
        for nsg in topology.network_security_groups:
            lines.append(f"<h4>{escape(nsg.name)}</h4>")
            if nsg.security_rules:
                rows = [
                    _row(
                        rule.priority,
                        rule.name,
                        rule.direction,
                        rule.access,
                        rule.protocol,
                        rule.source_address_prefix,
                        rule.destination_port_range,
                    )
                    for rule in nsg.security_rules
                ]
                lines.extend(
                    _table(["Priority", "Name", "Direction", "Access", "Protocol", "Source", "Dest Port"], rows),
                )
    return lines


def _orphans_section(report: AnalysisReport) -> List[str]:
    orphans = report.orphaned_resources
    if not orphans.has_orphans:
        return []

    groups = (
        ("Unattached NSG", orphans.unattached_nsgs),
        ("Unused Route Table", orphans.unused_route_tables),
        ("Unused NAT Gateway", orphans.unused_nat_gateways),
        ("Subnet without NSG", orphans.subnets_without_nsg),
        ("Subnet without Route Table", orphans.subnets_without_route_table),
    )
    rows = [_row(kind, name) for kind, names in groups for name in names]
    return ["<h2>Orphaned/Unused Resources</h2>"] + _table(["Kind", "Name"], rows)


def generate_html(
    topology: NetworkTopology,
    report: AnalysisReport,
    generated_at: Optional[datetime] = None,
) -> str:
    """Render a self-contained HTML report with embedded CSS.

    Args:
        topology: Analyzed topology snapshot.
        report: Analysis report for ``topology``.
        generated_at: Generation time, defaults to now (UTC).

    Returns:
        HTML document.
    """
    generated_at = generated_at or datetime.now(timezone.utc)

    lines = _summary_section(topology, report, generated_at)
    lines.extend(_findings_section(report))
    if report.recommendations:
        lines.append("<h2>Recommendations</h2>")
        lines.append("<ol>")
        lines.extend(f"<li>{escape(message)}</li>" for message in report.recommendations)
        lines.append("</ol>")
    lines.extend(_topology_section(topology))
    lines.extend(_orphans_section(report))

    body = "\n".join(f"        {line}" for line in lines)
    logger.info(f"Generated HTML report with {len(report.findings)} findings")
    return PAGE_TEMPLATE.format(style=REPORT_STYLE, body=body, version=__version__)
