"""Security classification of NSG rules, subnets and gateways."""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from ..core.models import (
    ApplicationGateway,
    Finding,
    FindingCategory,
    NetworkSecurityGroup,
    NetworkTopology,
    SecurityRule,
    Severity,
    VPNGateway,
)
from .resolver import canonical_id

logger = logging.getLogger(__name__)

INTERNET_SOURCES = frozenset({"*", "any", "internet", "0.0.0.0/0"})
ANY_DESTINATIONS = frozenset({"*", "any", "0.0.0.0/0"})
ALL_PORTS = frozenset({"*", "0-65535"})

# Port ranges longer than this many characters count as wide. This is a
# textual proxy for range width, e.g. "80-90" is not wide but "80-8080" is.
WIDE_PORT_RANGE_TEXT_LENGTH = 5
EARLY_RULE_PRIORITY = 200
LARGE_SUBNET_PREFIX_LENGTH = 16

# (port, service, severity) in evaluation order.
SENSITIVE_PORTS: Tuple[Tuple[str, str, Severity], ...] = (
    ("22", "SSH", Severity.CRITICAL),
    ("3389", "RDP", Severity.CRITICAL),
    ("23", "Telnet", Severity.CRITICAL),
    ("21", "FTP", Severity.HIGH),
    ("445", "SMB", Severity.CRITICAL),
    ("1433", "SQL Server", Severity.CRITICAL),
    ("3306", "MySQL", Severity.CRITICAL),
    ("5432", "PostgreSQL", Severity.CRITICAL),
    ("27017", "MongoDB", Severity.CRITICAL),
    ("6379", "Redis", Severity.HIGH),
    ("9200", "Elasticsearch", Severity.HIGH),
)


def _token(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def is_internet_source(address_prefix: Optional[str]) -> bool:
    return _token(address_prefix) in INTERNET_SOURCES


def is_any_destination(address_prefix: Optional[str]) -> bool:
    return _token(address_prefix) in ANY_DESTINATIONS


def is_all_ports(port_range: Optional[str]) -> bool:
    return _token(port_range) in ALL_PORTS


def parse_port_range(port_range: Optional[str]) -> List[str]:
    """Split a destination port field into its comma-separated entries."""
    return [part.strip() for part in (port_range or "").split(",") if part.strip()]


def is_wide_open(rule: SecurityRule) -> bool:
    """Any source to any destination on all ports."""
    return (
        is_internet_source(rule.source_address_prefix)
        and is_any_destination(rule.destination_address_prefix)
        and is_all_ports(rule.destination_port_range)
    )


def is_wide_port_range(port_range: Optional[str]) -> bool:
    if is_all_ports(port_range):
        return True
    value = (port_range or "").strip()
    if value.count("-") == 1:
        return len(value) > WIDE_PORT_RANGE_TEXT_LENGTH
    return False


def is_large_subnet(address_prefix: Optional[str]) -> bool:
    """Whether a CIDR prefix is /16 or larger. Unparseable prefixes are not large."""
    parts = (address_prefix or "").strip().split("/")
    if len(parts) != 2:
        return False
    try:
        length = int(parts[1])
    except ValueError:
        return False
    return 0 <= length <= LARGE_SUBNET_PREFIX_LENGTH


@dataclass(frozen=True)
class RuleCheck:
    """One entry of the risk table applied to allow rules.

    ``description`` and ``recommendation`` are ``str.format`` templates with
    ``rule``, ``priority`` and ``ports`` fields.
    """

    name: str
    severity: Severity
    category: FindingCategory
    predicate: Callable[[SecurityRule], bool]
    description: str
    recommendation: str

    def evaluate(self, nsg: NetworkSecurityGroup, rule: SecurityRule) -> Optional[Finding]:
        if not self.predicate(rule):
            return None
        fields = {
            "rule": rule.name,
            "priority": rule.priority,
            "ports": rule.destination_port_range,
        }
        return Finding(
            severity=self.severity,
            category=self.category,
            resource=nsg.name,
            resource_id=nsg.id,
            rule=rule.name,
            description=self.description.format(**fields),
            recommendation=self.recommendation.format(**fields),
        )


def _sensitive_port_check(port: str, service: str, severity: Severity) -> RuleCheck:
    def predicate(rule: SecurityRule) -> bool:
        return is_internet_source(rule.source_address_prefix) and port in parse_port_range(
            rule.destination_port_range,
        )

    return RuleCheck(
        name=f"exposed-port-{port}",
        severity=severity,
        category=FindingCategory.NETWORK_EXPOSURE,
        predicate=predicate,
        description=f"{service} (port {port}) is exposed to the internet via rule '{{rule}}'",
        recommendation=(
            f"Restrict {service} access to specific IP addresses or use Azure Bastion/VPN for remote access"
        ),
    )


RULE_CHECKS: Tuple[RuleCheck, ...] = tuple(
    _sensitive_port_check(port, service, severity) for port, service, severity in SENSITIVE_PORTS
) + (
    RuleCheck(
        name="all-ports-open",
        severity=Severity.CRITICAL,
        category=FindingCategory.NETWORK_EXPOSURE,
        predicate=lambda rule: is_internet_source(rule.source_address_prefix)
        and is_all_ports(rule.destination_port_range),
        description="All ports are exposed to the internet via rule '{rule}'",
        recommendation="Restrict to specific ports required for your application",
    ),
    RuleCheck(
        name="wide-open",
        severity=Severity.HIGH,
        category=FindingCategory.NSG_RULE,
        predicate=is_wide_open,
        description="Rule '{rule}' allows traffic from any source to any destination on all ports",
        recommendation="Implement least-privilege access by restricting source, destination, and ports",
    ),
    RuleCheck(
        name="wide-port-range",
        severity=Severity.MEDIUM,
        category=FindingCategory.NSG_RULE,
        predicate=lambda rule: is_wide_port_range(rule.destination_port_range),
        description="Rule '{rule}' allows a wide range of ports ({ports})",
        recommendation="Restrict to specific ports required for your application",
    ),
    RuleCheck(
        name="missing-description",
        severity=Severity.LOW,
        category=FindingCategory.CONFIGURATION,
        predicate=lambda rule: not rule.description.strip(),
        description="Security rule '{rule}' has no description",
        recommendation="Add descriptive comments to all security rules for better maintainability",
    ),
    RuleCheck(
        name="early-wide-open",
        severity=Severity.MEDIUM,
        category=FindingCategory.NSG_RULE,
        predicate=lambda rule: rule.priority < EARLY_RULE_PRIORITY and is_wide_open(rule),
        description="High priority ({priority}) allow rule may override important deny rules",
        recommendation="Review rule priority to ensure deny rules are not inadvertently bypassed",
    ),
)


class SecurityClassifier:
    """Evaluates a topology against the risk table and configuration checks."""

    def __init__(self, checks: Sequence[RuleCheck] = RULE_CHECKS):
        """Initialize classifier.

        Args:
            checks: Ordered rule checks. Finding order follows this order.
        """
        self.checks = tuple(checks)

    def classify(self, topology: NetworkTopology) -> List[Finding]:
        """Classify every NSG rule, subnet and gateway.

        Args:
            topology: Topology snapshot.

        Returns:
            Findings ordered by NSG, rule and check, then subnets, then gateways.
        """
        findings: List[Finding] = []
        findings.extend(self.classify_rules(topology.network_security_groups))
        findings.extend(self.classify_subnets(topology))
        findings.extend(self.classify_gateways(topology.vpn_gateways, topology.application_gateways))

        logger.info(f"Security classification produced {len(findings)} findings")
        return findings

    def classify_rules(self, nsgs: Iterable[NetworkSecurityGroup]) -> List[Finding]:
        findings = []
        for nsg in nsgs:
            for rule in nsg.security_rules:
                # Deny rules cannot create exposure themselves
                if _token(rule.access) != "allow":
                    continue
                for check in self.checks:
                    finding = check.evaluate(nsg, rule)
                    if finding is not None:
                        findings.append(finding)
        return findings

    def classify_subnets(self, topology: NetworkTopology) -> List[Finding]:
        findings = []
        for vnet, subnet in topology.iter_subnets():
            resource = f"{vnet.name}/{subnet.name}"

            if not canonical_id(subnet.network_security_group):
                findings.append(
                    Finding(
                        severity=Severity.HIGH,
                        category=FindingCategory.MISSING_PROTECTION,
                        resource=resource,
                        resource_id=subnet.id,
                        description=f"Subnet '{subnet.name}' in VNet '{vnet.name}' has no Network Security Group attached",
                        recommendation="Attach an NSG to control inbound and outbound traffic",
                    ),
                )

            if is_large_subnet(subnet.address_prefix):
                findings.append(
                    Finding(
                        severity=Severity.INFO,
                        category=FindingCategory.CONFIGURATION,
                        resource=resource,
                        resource_id=subnet.id,
                        description=f"Subnet '{subnet.name}' has a large address space ({subnet.address_prefix})",
                        recommendation="Consider smaller subnets for better network segmentation and security isolation",
                    ),
                )
        return findings

    def classify_gateways(
        self,
        vpn_gateways: Iterable[VPNGateway],
        app_gateways: Iterable[ApplicationGateway],
    ) -> List[Finding]:
        findings = []
        for gateway in vpn_gateways:
            if "basic" in _token(gateway.sku):
                findings.append(
                    Finding(
                        severity=Severity.MEDIUM,
                        category=FindingCategory.CONFIGURATION,
                        resource=gateway.name,
                        resource_id=gateway.id,
                        description=f"VPN Gateway '{gateway.name}' uses Basic SKU with limited security features",
                        recommendation="Consider upgrading to VpnGw1 or higher for better performance and security features",
                    ),
                )

        for appgw in app_gateways:
            if not appgw.waf_enabled:
                findings.append(
                    Finding(
                        severity=Severity.HIGH,
                        category=FindingCategory.MISSING_PROTECTION,
                        resource=appgw.name,
                        resource_id=appgw.id,
                        description=f"Application Gateway '{appgw.name}' does not have WAF enabled",
                        recommendation="Enable Web Application Firewall (WAF) to protect against common web vulnerabilities",
                    ),
                )
        return findings


def analyze_security_risks(topology: NetworkTopology) -> List[Finding]:
    """Classify a topology with the default risk table."""
    return SecurityClassifier().classify(topology)
