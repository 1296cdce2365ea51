#!/usr/bin/env python3
"""Basic usage examples for python-aznet."""

from aznet import NetworkAnalyzer, OutputFormat, Theme
from aznet.core import VisualizationConfig
from aznet.reporting import generate_markdown


def main():
    """Demonstrate basic NetworkAnalyzer usage."""

    # Example 1: Analyze the built-in hub/spoke sample
    analyzer = NetworkAnalyzer.from_sample()
    report = analyzer.analyze()

    print(f"Found {len(report.findings)} security findings:")
    for finding in report.findings[:5]:  # Show first 5
        print(f"  - [{finding.severity.value}] {finding.description}")

    # Example 2: Orphaned resources
    orphans = report.orphaned_resources
    print(f"Unattached NSGs: {orphans.unattached_nsgs}")
    print(f"Subnets without NSG: {orphans.subnets_without_nsg}")

    # Example 3: Markdown report
    with open("network-report.md", "w", encoding="utf-8") as f:
        f.write(generate_markdown(analyzer.topology, report))

    # Example 4: DOT source only (no Graphviz installation needed)
    dot_content, description = analyzer.generate_dot()
    print(f"Diagram has {len(description.nodes)} nodes and {len(description.edges)} edges")
    with open("network-topology.dot", "w", encoding="utf-8") as f:
        f.write(dot_content)

    # Example 5: Dark theme SVG without the private endpoint table
    print("Generating dark theme SVG...")
    analyzer.export_diagram(
        "dark-topology.svg",
        VisualizationConfig(
            theme=Theme.DARK,
            output_format=OutputFormat.SVG,
            show_private_endpoints=False,
        ),
    )

    # Example 6: Analyze a collected snapshot file
    # analyzer = NetworkAnalyzer.from_file("snapshot.json")

    print("All examples completed!")


if __name__ == "__main__":
    main()
