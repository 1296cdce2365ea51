"""Tests for loading topology snapshots."""

import json

import pytest

from aznet.core.analyzer import NetworkAnalyzer
from aznet.core.loader import load_topology, parse_topology
from aznet.core.models import OutputFormat, VisualizationConfig
from aznet.core.sample import build_sample_topology

SNAPSHOT = {
    "subscriptionId": "sub-1",
    "resourceGroup": "rg-net",
    "timestamp": "2026-01-15T10:00:00Z",
    "virtualNetworks": [
        {
            "id": "/subscriptions/sub-1/resourceGroups/rg-net/providers/Microsoft.Network/virtualNetworks/vnet-a",
            "name": "vnet-a",
            "addressSpace": ["10.0.0.0/16"],
            "subnets": [
                {
                    "id": "/subscriptions/sub-1/resourceGroups/rg-net/providers/Microsoft.Network/virtualNetworks/vnet-a/subnets/web",
                    "name": "web",
                    "addressPrefix": "10.0.1.0/24",
                    "networkSecurityGroup": "/subscriptions/sub-1/resourceGroups/rg-net/providers/Microsoft.Network/networkSecurityGroups/nsg-web",
                },
            ],
        },
    ],
    "networkSecurityGroups": [
        {
            "id": "/subscriptions/sub-1/resourceGroups/rg-net/providers/Microsoft.Network/networkSecurityGroups/nsg-web",
            "name": "nsg-web",
            "securityRules": [
                {
                    "name": "AllowSSH",
                    "priority": 100,
                    "sourceAddressPrefix": "*",
                    "destinationAddressPrefix": "*",
                    "destinationPortRange": "22",
                },
            ],
        },
    ],
}


def test_parse_camel_case_snapshot():
    """Test parsing a camelCase snapshot document."""
    topology = parse_topology(SNAPSHOT)

    assert topology.subscription_id == "sub-1"
    assert topology.timestamp is not None
    vnet = topology.virtual_networks[0]
    assert vnet.address_space == ("10.0.0.0/16",)
    assert vnet.subnets[0].network_security_group.endswith("/nsg-web")
    assert topology.network_security_groups[0].security_rules[0].destination_port_range == "22"
    assert topology.resource_count() == 2


def test_load_topology_from_file(tmp_path):
    """Test loading a snapshot file."""
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(SNAPSHOT), encoding="utf-8")

    topology = load_topology(path)

    assert [nsg.name for nsg in topology.network_security_groups] == ["nsg-web"]


def test_dumped_snapshot_loads_again(tmp_path):
    """Test that a camelCase dump of the sample topology loads back."""
    sample = build_sample_topology()
    path = tmp_path / "sample.json"
    path.write_text(sample.model_dump_json(by_alias=True), encoding="utf-8")

    assert load_topology(path) == sample


def test_invalid_json_raises_value_error(tmp_path):
    """Test that a malformed file raises ValueError."""
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ValueError, match="not valid JSON"):
        load_topology(path)


def test_non_object_document_raises_value_error():
    """Test that a JSON array is rejected."""
    with pytest.raises(ValueError, match="must be a JSON object"):
        parse_topology([])


def test_invalid_field_raises_value_error():
    """Test that schema violations surface as ValueError."""
    with pytest.raises(ValueError, match="Invalid topology snapshot"):
        parse_topology({"virtualNetworks": [{"name": "missing-id"}]})


def test_null_collections_load_as_empty():
    """Test that collections exported as null load as empty tuples."""
    topology = parse_topology(
        {
            "subscriptionId": "sub-1",
            "virtualNetworks": [
                {
                    "id": "/subscriptions/sub-1/resourceGroups/rg-net/providers/Microsoft.Network/virtualNetworks/vnet-a",
                    "name": "vnet-a",
                    "addressSpace": ["10.0.0.0/16"],
                    "subnets": [
                        {
                            "id": "/subscriptions/sub-1/resourceGroups/rg-net/providers/Microsoft.Network/virtualNetworks/vnet-a/subnets/web",
                            "name": "web",
                            "networkSecurityGroup": None,
                            "serviceEndpoints": None,
                        },
                    ],
                    "peerings": None,
                    "dnsServers": None,
                },
            ],
            "networkSecurityGroups": [
                {
                    "id": "/subscriptions/sub-1/resourceGroups/rg-net/providers/Microsoft.Network/networkSecurityGroups/nsg-web",
                    "name": "nsg-web",
                    "securityRules": None,
                },
            ],
            "routeTables": None,
            "privateEndpoints": None,
        },
    )

    vnet = topology.virtual_networks[0]
    assert vnet.peerings == ()
    assert vnet.dns_servers == ()
    assert vnet.subnets[0].service_endpoints == ()
    assert vnet.subnets[0].network_security_group is None
    assert topology.network_security_groups[0].security_rules == ()
    assert topology.route_tables == ()
    assert topology.private_endpoints == ()


def test_analyzer_export_adds_extension(tmp_path):
    """Test that export_diagram adds a missing extension for DOT output."""
    analyzer = NetworkAnalyzer(parse_topology(SNAPSHOT))

    path = analyzer.export_diagram(tmp_path / "topology", VisualizationConfig(output_format=OutputFormat.DOT))

    assert path == tmp_path / "topology.dot"
    assert path.read_text(encoding="utf-8").startswith("digraph NetworkTopology {")


def test_analyzer_export_rejects_mismatched_extension(tmp_path):
    """Test that export_diagram rejects an extension that contradicts the format."""
    analyzer = NetworkAnalyzer(parse_topology(SNAPSHOT))

    with pytest.raises(ValueError, match="does not match format"):
        analyzer.export_diagram(tmp_path / "topology.png", VisualizationConfig(output_format=OutputFormat.SVG))
