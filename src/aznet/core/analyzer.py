"""Main NetworkAnalyzer class tying collection, analysis and diagramming together."""

import logging
from pathlib import Path
from typing import Optional, Tuple, Union

from ..analysis.report import AnalysisReport, analyze
from ..analysis.resolver import CanonicalGraph, ReferenceResolver
from ..visualization import DiagramBuilder, DiagramDescription, DOTGenerator, GraphRenderer
from .loader import load_topology
from .models import NetworkTopology, OutputFormat, VisualizationConfig
from .sample import build_sample_topology

logger = logging.getLogger(__name__)

FORMAT_EXTENSIONS = {
    OutputFormat.PNG: ".png",
    OutputFormat.SVG: ".svg",
    OutputFormat.PDF: ".pdf",
    OutputFormat.DOT: ".dot",
}


class NetworkAnalyzer:
    """Runs resolve, analyze and emit for one topology snapshot.

    Every call rebuilds its derived structures from the snapshot; nothing is
    cached between calls.
    """

    def __init__(self, topology: NetworkTopology):
        """Initialize analyzer.

        Args:
            topology: Topology snapshot to analyze.
        """
        self.topology = topology

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "NetworkAnalyzer":
        """Create an analyzer for a JSON snapshot file."""
        return cls(load_topology(path))

    @classmethod
    def from_sample(cls) -> "NetworkAnalyzer":
        """Create an analyzer for the built-in sample topology."""
        logger.info("Using built-in sample topology")
        return cls(build_sample_topology())

    def resolve(self) -> CanonicalGraph:
        return ReferenceResolver().resolve(self.topology)

    def analyze(self) -> AnalysisReport:
        """Analyze security findings, orphaned resources and recommendations."""
        return analyze(self.topology)

    def build_diagram(self, config: Optional[VisualizationConfig] = None) -> DiagramDescription:
        config = config or VisualizationConfig()
        return DiagramBuilder(config).build(self.resolve(), self.topology)

    def generate_dot(self, config: Optional[VisualizationConfig] = None) -> Tuple[str, DiagramDescription]:
        """Generate DOT text for the topology diagram.

        Args:
            config: Visualization configuration, defaults to ``VisualizationConfig()``.

        Returns:
            DOT text and the diagram description it was generated from.
        """
        config = config or VisualizationConfig()
        description = self.build_diagram(config)
        return DOTGenerator(config).generate_dot(description), description

    def export_diagram(
        self,
        output_file: Union[str, Path],
        config: Optional[VisualizationConfig] = None,
        verbose: bool = False,
    ) -> Path:
        """Export the topology diagram.

        Args:
            output_file: Output file path. The format extension is added when missing.
            config: Visualization configuration.
            verbose: Whether to show Graphviz warnings.

        Returns:
            Path to generated diagram file.

        Raises:
            ValueError: If the output extension does not match the format.
            RuntimeError: If Graphviz is missing or rendering fails.
        """
        config = config or VisualizationConfig()
        output_path = Path(output_file)

        expected_extension = FORMAT_EXTENSIONS[config.output_format]
        actual_extension = output_path.suffix.lower()

        if not actual_extension:
            output_path = output_path.with_suffix(expected_extension)
            logger.info(f"Added extension for format: {output_file} -> {output_path}")
        elif actual_extension != expected_extension:
            raise ValueError(
                f"Output file extension '{actual_extension}' does not match format "
                f"'{config.output_format.value}'. Expected extension: '{expected_extension}'. "
                f"Please use '{output_path.stem}{expected_extension}' or change the format.",
            )

        dot_content, _ = self.generate_dot(config)
        renderer = GraphRenderer(verbose=verbose)
        result = renderer.render(dot_content, str(output_path), config.output_format)

        logger.info(f"Diagram exported successfully: {result}")
        return result
