"""DOT language generation for Graphviz rendering."""

import logging
from typing import Dict, List, Tuple

from ..analysis.resolver import ResourceKind
from ..core.models import Direction, Theme, ThemeConfig, VisualizationConfig
from .diagram import DiagramDescription, DiagramEdge, DiagramNode, EdgeKind, TableNode

logger = logging.getLogger(__name__)

UNPROTECTED_SUBNET_COLOR = "#FFB6C1"
PLACEHOLDER_COLOR = "#D3D3D3"


class DOTGenerator:
    """Generates DOT language text from diagram descriptions."""

    # Theme configurations
    THEMES = {
        Theme.LIGHT: ThemeConfig(
            background_color="white",
            node_color="lightblue",
            edge_color="black",
            font_color="black",
            cluster_color="#e6f3ff",
        ),
        Theme.DARK: ThemeConfig(
            background_color="#1e1e1e",
            node_color="darkgray",
            edge_color="white",
            font_color="white",
            cluster_color="#2d3e50",
        ),
        Theme.NEON: ThemeConfig(
            background_color="black",
            node_color="cyan",
            edge_color="magenta",
            font_color="yellow",
            cluster_color="#1a0033",
        ),
    }

    # Per-kind node appearance: (shape, fillcolor)
    NODE_STYLES: Dict[str, Tuple[str, str]] = {
        ResourceKind.VIRTUAL_NETWORK.value: ("tab", "#B0C4DE"),
        ResourceKind.SUBNET.value: ("box", "#90EE90"),
        ResourceKind.NETWORK_SECURITY_GROUP.value: ("octagon", "#FFE4B5"),
        ResourceKind.ROUTE_TABLE.value: ("parallelogram", "#DDA0DD"),
        ResourceKind.NAT_GATEWAY.value: ("diamond", "#98FB98"),
        ResourceKind.VPN_GATEWAY.value: ("diamond", "#9370DB"),
        ResourceKind.EXPRESS_ROUTE_CIRCUIT.value: ("hexagon", "#4682B4"),
        ResourceKind.LOAD_BALANCER.value: ("ellipse", "#FFA500"),
        ResourceKind.APPLICATION_GATEWAY.value: ("ellipse", "#FF69B4"),
        ResourceKind.FIREWALL.value: ("box3d", "#FF6347"),
        "internet": ("ellipse", "#87CEEB"),
    }

    EDGE_STYLES: Dict[str, Dict[str, str]] = {
        EdgeKind.PROTECTS: {"style": "dashed", "color": "orange"},
        EdgeKind.ROUTES: {"style": "dotted", "color": "purple"},
        EdgeKind.EGRESS: {"style": "solid", "color": "green"},
        EdgeKind.PEERING: {"style": "dashed"},
        EdgeKind.GATEWAY: {"style": "bold", "color": "purple"},
        EdgeKind.HOSTED_IN: {"style": "dashed", "color": "gray50"},
        EdgeKind.FIREWALL_EGRESS: {"style": "bold", "color": "red"},
        EdgeKind.INTERNET_EGRESS: {"style": "bold", "color": "blue"},
    }

    # (legend label, fillcolor, predicate over the description's nodes)
    LEGEND_ENTRIES = (
        ("Subnet (with NSG)", "#90EE90", lambda n: n.kind == ResourceKind.SUBNET.value and not n.unprotected),
        ("Subnet (no NSG)", UNPROTECTED_SUBNET_COLOR, lambda n: n.kind == ResourceKind.SUBNET.value and n.unprotected),
        ("NSG", "#FFE4B5", lambda n: n.kind == ResourceKind.NETWORK_SECURITY_GROUP.value),
        ("Route Table", "#DDA0DD", lambda n: n.kind == ResourceKind.ROUTE_TABLE.value),
        ("NAT Gateway", "#98FB98", lambda n: n.kind == ResourceKind.NAT_GATEWAY.value),
        ("VPN Gateway", "#9370DB", lambda n: n.kind == ResourceKind.VPN_GATEWAY.value),
        ("Azure Firewall", "#FF6347", lambda n: n.kind == ResourceKind.FIREWALL.value),
        ("Application Gateway", "#FF69B4", lambda n: n.kind == ResourceKind.APPLICATION_GATEWAY.value),
        ("Load Balancer", "#FFA500", lambda n: n.kind == ResourceKind.LOAD_BALANCER.value),
        ("ExpressRoute Circuit", "#4682B4", lambda n: n.kind == ResourceKind.EXPRESS_ROUTE_CIRCUIT.value),
        ("External / Unresolved", PLACEHOLDER_COLOR, lambda n: n.external or n.unresolved),
    )

    def __init__(self, config: VisualizationConfig):
        """Initialize DOT generator with configuration.

        Args:
            config: Visualization configuration.
        """
        self.config = config
        self.theme = self.THEMES[config.theme]

    def generate_dot(self, description: DiagramDescription) -> str:
        """Generate DOT language string from a diagram description.

        Args:
            description: Diagram description.

        Returns:
            DOT language string.
        """
        logger.info("Generating DOT language from diagram description")

        parts = [
            self._generate_header(),
            self._generate_graph_attributes(description.title),
            self._generate_node_defaults(),
            self._generate_edge_defaults(),
            self._generate_clusters(description),
            self._generate_standalone_nodes(description),
            self._generate_tables(description),
            self._generate_edges(description),
        ]
        if self.config.show_legend:
            parts.append(self._generate_legend(description))
        parts.append("}")

        dot_content = "\n\n".join(part for part in parts if part.strip())
        logger.info("DOT language generation completed")
        return dot_content + "\n"

    @staticmethod
    def _escape(text: str) -> str:
        """Escape text for a double-quoted DOT string."""
        return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")

    @staticmethod
    def _escape_html(text: str) -> str:
        return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace('"', "&quot;")

    def _generate_header(self) -> str:
        """Generate DOT file header."""
        return "digraph NetworkTopology {"

    def _generate_graph_attributes(self, title: str) -> str:
        """Generate graph-level attributes."""
        direction_map = {
            Direction.LEFT_TO_RIGHT: "LR",
            Direction.TOP_TO_BOTTOM: "TB",
        }
        rankdir = direction_map.get(self.config.direction, "TB")

        return f"""    // Graph attributes
    rankdir="{rankdir}";
    splines="{self.config.splines.value}";
    bgcolor="{self.theme.background_color}";
    fontname="{self.theme.font_name}";
    fontsize="12";
    fontcolor="{self.theme.font_color}";
    compound=true;
    newrank=true;
    nodesep="0.5";
    ranksep="0.6";
    labelloc="t";
    label="{self._escape(title)}";"""

    def _generate_node_defaults(self) -> str:
        """Generate default node attributes."""
        return f"""    // Default node attributes
    node [
        shape=box,
        style=filled,
        fillcolor="{self.theme.node_color}",
        fontname="{self.theme.font_name}",
        fontsize="{self.theme.font_size}",
        fontcolor="black",
        color="{self.theme.edge_color}"
    ];"""

    def _generate_edge_defaults(self) -> str:
        """Generate default edge attributes."""
        return f"""    // Default edge attributes
    edge [
        fontname="{self.theme.font_name}",
        fontsize="10",
        fontcolor="{self.theme.font_color}",
        color="{self.theme.edge_color}"
    ];"""

    def _generate_clusters(self, description: DiagramDescription) -> str:
        """Generate one subgraph per VNet cluster."""
        nodes_by_id = {node.id: node for node in description.nodes}
        content = []

        for cluster in description.clusters:
            lines = [
                f'    subgraph "{cluster.id}" {{',
                f'        label="{self._escape(cluster.label)}";',
                '        style="filled";',
                '        color="lightblue";',
                f'        fillcolor="{self.theme.cluster_color}";',
                '        fontname="Helvetica-Bold";',
                f'        fontcolor="{self.theme.font_color}";',
                "",
            ]
            for node_id in cluster.node_ids:
                node = nodes_by_id.get(node_id)
                if node is not None:
                    lines.append(f"        {self._format_node(node)}")
            lines.append("    }")
            content.append("\n".join(lines))

        return "\n\n".join(content)

    def _generate_standalone_nodes(self, description: DiagramDescription) -> str:
        """Generate nodes that are not part of any cluster."""
        standalone = description.standalone_nodes()
        if not standalone:
            return ""

        lines = ["    // Shared and standalone resources"]
        lines.extend(f"    {self._format_node(node)}" for node in standalone)
        return "\n".join(lines)

    def _generate_tables(self, description: DiagramDescription) -> str:
        content = []
        for table in description.tables:
            content.append(self._format_table(table))
            content.append(f'    {{rank={table.rank}; "{table.id}";}}')
        return "\n".join(content)

    def _generate_edges(self, description: DiagramDescription) -> str:
        """Generate edge definitions."""
        if not description.edges:
            return ""

        lines = ["    // Edges"]
        lines.extend(f"    {self._format_edge(edge)}" for edge in description.edges)
        return "\n".join(lines)

    def _format_node(self, node: DiagramNode) -> str:
        """Format a single node definition.

        Args:
            node: Diagram node.

        Returns:
            DOT node definition.
        """
        shape, fillcolor = self.NODE_STYLES.get(node.kind, ("box", self.theme.node_color))
        style = "filled"

        if node.unprotected:
            fillcolor = UNPROTECTED_SUBNET_COLOR
        if node.external or node.unresolved:
            fillcolor = PLACEHOLDER_COLOR
            style = "filled,dashed"
        elif node.unattached:
            style = "filled,dashed"

        attributes = [
            f'label="{self._escape(node.label)}"',
            f'shape="{shape}"',
            f'style="{style}"',
            f'fillcolor="{fillcolor}"',
        ]
        if node.unattached and not node.unresolved:
            attributes.append('color="red"')

        return f'"{node.id}" [{", ".join(attributes)}];'

    def _format_edge(self, edge: DiagramEdge) -> str:
        """Format a single edge definition.

        Args:
            edge: Diagram edge.

        Returns:
            DOT edge definition.
        """
        attributes = []

        if edge.label:
            attributes.append(f'label="{self._escape(edge.label)}"')

        for attr, value in self.EDGE_STYLES.get(edge.kind, {}).items():
            attributes.append(f'{attr}="{value}"')

        if edge.kind == EdgeKind.PEERING:
            attributes.append(f'color="{"green" if edge.healthy else "red"}"')
        if edge.bidirectional:
            attributes.append("dir=both")

        attr_string = " [" + ", ".join(attributes) + "]" if attributes else ""
        return f'"{edge.source}" -> "{edge.target}"{attr_string};'

    def _format_table(self, table: TableNode) -> str:
        """Format a table node with an HTML-like label."""
        cell = 'BGCOLOR="#FFB6C1"'
        rows: List[str] = [
            f'<TR><TD COLSPAN="{len(table.columns)}" {cell}><B>{self._escape_html(table.title)}</B></TD></TR>',
            "<TR>" + "".join(f"<TD><B>{self._escape_html(col)}</B></TD>" for col in table.columns) + "</TR>",
        ]
        for row in table.rows:
            rows.append("<TR>" + "".join(f"<TD>{self._escape_html(value)}</TD>" for value in row) + "</TR>")

        body = "\n".join(f"            {row}" for row in rows)
        return f"""    "{table.id}" [shape=plaintext, label=<
        <TABLE BORDER="0" CELLBORDER="1" CELLSPACING="0" CELLPADDING="4" BGCOLOR="white">
{body}
        </TABLE>
    >];"""

    def _generate_legend(self, description: DiagramDescription) -> str:
        """Generate legend for the node kinds present in the diagram.

        Args:
            description: Diagram description.

        Returns:
            DOT legend definition.
        """
        entries = [
            (label, color)
            for label, color, predicate in self.LEGEND_ENTRIES
            if any(predicate(node) for node in description.nodes)
        ]
        if not entries:
            return ""

        legend_fillcolor = "#f0f0f0" if self.config.theme == Theme.LIGHT else "gray"
        rows = "\n".join(
            f'            <TR><TD BGCOLOR="{color}">{self._escape_html(label)}</TD></TR>' for label, color in entries
        )
        return f"""    // Legend
    subgraph "cluster_legend" {{
        label="Legend";
        style="filled";
        fillcolor="{legend_fillcolor}";
        fontcolor="{self.theme.font_color}";
        "legend" [shape=plaintext, label=<
        <TABLE BORDER="0" CELLBORDER="1" CELLSPACING="0">
{rows}
        </TABLE>
        >];
    }}"""
