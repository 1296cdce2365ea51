"""Command-line interface for python-aznet."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .analysis.report import AnalysisReport
from .core import Direction, NetworkAnalyzer, OutputFormat, Severity, Splines, Theme, VisualizationConfig
from .reporting import generate_html, generate_json, generate_markdown
from .visualization import GraphRenderer

# Setup rich console
console = Console()

SEVERITY_STYLES = {
    Severity.CRITICAL: "bold red",
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "cyan",
    Severity.INFO: "dim",
}

REPORT_RENDERERS = {
    "json": generate_json,
    "markdown": generate_markdown,
    "html": generate_html,
}

REPORT_SUFFIXES = {".json": "json", ".html": "html", ".htm": "html"}

DEFAULT_DIAGRAM_OUTPUT = "network-topology.svg"


# Configure logging
def setup_logging(verbose: bool = False) -> None:
    """Setup logging with rich handler."""
    level = logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _open_analyzer(snapshot: str | None, dry_run: bool) -> NetworkAnalyzer:
    if dry_run:
        return NetworkAnalyzer.from_sample()
    return NetworkAnalyzer.from_file(snapshot)


def _require_snapshot(snapshot: str | None, dry_run: bool) -> None:
    if snapshot is None and not dry_run:
        raise click.UsageError("Provide a SNAPSHOT file or use --dry-run for the built-in sample topology.")


def _print_summary(report: AnalysisReport) -> None:
    summary = report.summary
    table = Table(title="Topology Summary")
    table.add_column("Resource", style="cyan")
    table.add_column("Count", style="magenta", justify="right")

    rows = [
        ("Virtual Networks", summary.total_vnets),
        ("Subnets", summary.total_subnets),
        ("Network Security Groups", summary.total_nsgs),
        ("Security Rules", summary.total_security_rules),
        ("Route Tables", summary.total_route_tables),
        ("Routes", summary.total_routes),
        ("Private Endpoints", summary.total_private_endpoints),
        ("Private DNS Zones", summary.total_private_dns_zones),
        ("NAT Gateways", summary.total_nat_gateways),
        ("VPN Gateways", summary.total_vpn_gateways),
        ("ExpressRoute Circuits", summary.total_er_circuits),
        ("Load Balancers", summary.total_load_balancers),
        ("Application Gateways", summary.total_app_gateways),
        ("Azure Firewalls", summary.total_azure_firewalls),
        ("VNet Peerings", summary.vnet_peering_count),
    ]
    for name, count in rows:
        table.add_row(name, str(count))

    console.print(table)
    if summary.total_ip_address_space:
        console.print(f"Address spaces: {', '.join(summary.total_ip_address_space)}", style="blue")


def _print_findings(report: AnalysisReport) -> None:
    if not report.findings:
        console.print("No security findings.", style="green")
        return

    table = Table(title="Security Findings")
    table.add_column("Severity", no_wrap=True)
    table.add_column("Category", style="magenta")
    table.add_column("Resource", style="cyan")
    table.add_column("Description", style="white")

    for finding in report.findings:
        table.add_row(
            f"[{SEVERITY_STYLES[finding.severity]}]{finding.severity.value}[/]",
            finding.category.value,
            finding.resource,
            finding.description,
        )

    console.print(table)
    counts = report.severity_counts()
    console.print(
        "Total: "
        + ", ".join(f"{severity.value}: {count}" for severity, count in counts.items())
        + f" ({len(report.findings)} findings)",
    )


def _print_orphans(report: AnalysisReport) -> None:
    orphans = report.orphaned_resources
    if not orphans.has_orphans:
        console.print("No orphaned resources.", style="green")
        return

    table = Table(title="Orphaned/Unused Resources")
    table.add_column("Kind", style="yellow", no_wrap=True)
    table.add_column("Name", style="cyan")

    groups = (
        ("Unattached NSG", orphans.unattached_nsgs),
        ("Unused Route Table", orphans.unused_route_tables),
        ("Unused NAT Gateway", orphans.unused_nat_gateways),
        ("Subnet without NSG", orphans.subnets_without_nsg),
        ("Subnet without Route Table", orphans.subnets_without_route_table),
    )
    for kind, names in groups:
        for name in names:
            table.add_row(kind, name)

    console.print(table)


def _print_recommendations(report: AnalysisReport) -> None:
    if not report.recommendations:
        return
    console.print("\nRecommendations", style="bold")
    for i, message in enumerate(report.recommendations, start=1):
        console.print(f"  {i}. {message}")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.version_option(version=__version__, prog_name="python-aznet")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """python-aznet - Azure network topology analyzer.

    Analyze a network topology snapshot for orphaned resources and risky
    security rules, and draw it as a Graphviz diagram.

    \b
    Examples:
      python-aznet analyze snapshot.json
      python-aznet analyze --dry-run --format markdown -o report.md
      python-aznet diagram snapshot.json -o topology.png --format png
      python-aznet diagram --dry-run --format dot
    """
    setup_logging(verbose)

    # Store global options in context for commands to use
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


@cli.command()
@click.argument("snapshot", required=False, type=click.Path(exists=True, dir_okay=False))
@click.option("--dry-run", is_flag=True, help="Analyze the built-in sample topology instead of a snapshot file")
@click.option(
    "--format",
    "-f",
    "report_format",
    type=click.Choice(list(REPORT_RENDERERS)),
    default=None,
    help="Report format. Without --output the report is printed instead of the tables.",
)
@click.option("--output", "-o", default=None, help="Write the report to this file")
@click.pass_context
def analyze(
    ctx: click.Context,
    snapshot: str | None,
    dry_run: bool,
    report_format: str | None,
    output: str | None,
) -> None:
    """Analyze a topology snapshot for security risks and orphaned resources.

    \b
    Examples:
      python-aznet analyze snapshot.json
      python-aznet analyze snapshot.json --format json
      python-aznet analyze snapshot.json -o report.html
      python-aznet analyze --dry-run -o report.md
    """
    _require_snapshot(snapshot, dry_run)

    try:
        verbose_mode = ctx.obj.get("verbose", False)

        analyzer = _open_analyzer(snapshot, dry_run)
        if verbose_mode:
            console.print("Analyzing network topology...", style="blue")
        report = analyzer.analyze()

        if output is not None:
            # Infer the format from the file name when not given
            fmt = report_format or REPORT_SUFFIXES.get(Path(output).suffix.lower(), "markdown")
            render = REPORT_RENDERERS[fmt]
            Path(output).write_text(render(analyzer.topology, report), encoding="utf-8")
        elif report_format is not None:
            render = REPORT_RENDERERS[report_format]
            click.echo(render(analyzer.topology, report))
            return

        _print_summary(report)
        _print_findings(report)
        _print_orphans(report)
        _print_recommendations(report)

        if output is not None:
            console.print(f"\nReport written to {output}", style="green")

    except Exception as e:
        console.print(f"Error: {e}", style="red")
        if logging.getLogger().level == logging.DEBUG:
            console.print_exception()
        sys.exit(1)


@cli.command()
@click.argument("snapshot", required=False, type=click.Path(exists=True, dir_okay=False))
@click.option("--dry-run", is_flag=True, help="Draw the built-in sample topology instead of a snapshot file")
@click.option(
    "--output",
    "-o",
    default=DEFAULT_DIAGRAM_OUTPUT,
    help=f"Output file path (default: {DEFAULT_DIAGRAM_OUTPUT}, will change extension based on format)",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice([fmt.value for fmt in OutputFormat]),
    default="svg",
    help="Output format (default: svg)",
)
@click.option(
    "--theme",
    "-t",
    type=click.Choice([theme.value for theme in Theme]),
    default="light",
    help="Visual theme (default: light)",
)
@click.option(
    "--direction",
    type=click.Choice([direction.value for direction in Direction]),
    default="top-to-bottom",
    help="Graph layout direction (default: top-to-bottom)",
)
@click.option(
    "--splines",
    type=click.Choice([splines.value for splines in Splines]),
    default="spline",
    help="Edge appearance (default: spline)",
)
@click.option("--legend/--no-legend", default=True, help="Include a legend (enabled by default)")
@click.option(
    "--no-private-endpoints",
    is_flag=True,
    help="Omit the private endpoint table",
)
@click.option("--title", default=None, help="Diagram title (default: subscription / resource group)")
@click.pass_context
def diagram(
    ctx: click.Context,
    snapshot: str | None,
    dry_run: bool,
    output: str,
    output_format: str,
    theme: str,
    direction: str,
    splines: str,
    legend: bool,
    no_private_endpoints: bool,
    title: str | None,
) -> None:
    """Render a topology snapshot as a Graphviz diagram.

    \b
    Examples:
      python-aznet diagram snapshot.json
      python-aznet diagram snapshot.json --format png --theme dark
      python-aznet diagram --dry-run --format dot -o sample.dot
    """
    _require_snapshot(snapshot, dry_run)

    try:
        verbose_mode = ctx.obj.get("verbose", False)

        config = VisualizationConfig(
            theme=Theme(theme),
            output_format=OutputFormat(output_format),
            direction=Direction(direction),
            splines=Splines(splines),
            show_legend=legend,
            show_private_endpoints=not no_private_endpoints,
            title=title,
        )

        # Adjust output file extension based on format if default filename is used
        output_file = output
        if output == DEFAULT_DIAGRAM_OUTPUT:
            output_file = str(Path(output).with_suffix(f".{output_format}"))

        analyzer = _open_analyzer(snapshot, dry_run)
        if verbose_mode:
            console.print("Generating diagram...", style="green")

        # Size warnings for large topologies are logged while building the diagram
        output_path = analyzer.export_diagram(output_file, config, verbose=verbose_mode)
        console.print(f"{output_path}", style="green")

    except Exception as e:
        console.print(f"Error: {e}", style="red")
        if logging.getLogger().level == logging.DEBUG:
            console.print_exception()
        sys.exit(1)


@cli.command("info")
def show_info() -> None:
    """Show information about supported themes, formats, and options."""
    # Themes
    themes_table = Table(title="Supported Themes")
    themes_table.add_column("Theme", style="cyan")
    themes_table.add_column("Description", style="green")

    theme_descriptions = {
        "light": "Light background with dark text (default)",
        "dark": "Dark background with light text",
        "neon": "High-contrast neon colors on black background",
    }

    for theme in Theme:
        themes_table.add_row(theme.value, theme_descriptions.get(theme.value, ""))

    console.print(themes_table)

    # Formats
    formats_table = Table(title="Supported Output Formats")
    formats_table.add_column("Format", style="cyan")
    formats_table.add_column("Description", style="green")

    format_descriptions = {
        "png": "Portable Network Graphics (raster)",
        "svg": "Scalable Vector Graphics (vector)",
        "pdf": "Portable Document Format",
        "dot": "Graphviz DOT source (no Graphviz installation needed)",
    }

    for fmt in OutputFormat:
        formats_table.add_row(fmt.value, format_descriptions.get(fmt.value, ""))

    console.print(formats_table)

    # Layout options
    layout_table = Table(title="Layout Options")
    layout_table.add_column("Option", style="cyan")
    layout_table.add_column("Values", style="magenta")
    layout_table.add_column("Description", style="green")

    layout_table.add_row(
        "direction",
        ", ".join(direction.value for direction in Direction),
        "Graph layout direction",
    )
    layout_table.add_row(
        "splines",
        ", ".join(splines.value for splines in Splines),
        "Edge appearance style",
    )
    layout_table.add_row(
        "--no-private-endpoints",
        "flag",
        "Omit the private endpoint table",
    )

    console.print(layout_table)

    engines = GraphRenderer().get_available_engines()
    if engines:
        console.print(f"Graphviz engines available: {', '.join(engines)}", style="blue")
    else:
        console.print("Graphviz not found; only --format dot is available.", style="yellow")


def main() -> None:
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
