"""Graph rendering using Graphviz."""

import logging
import os
import shutil
import sys
from contextlib import contextmanager, nullcontext
from pathlib import Path
from typing import List

import graphviz

from ..core.models import OutputFormat

logger = logging.getLogger(__name__)

LAYOUT_ENGINES = ("dot", "neato", "fdp", "sfdp", "circo", "twopi")

# DOT sources above this size take minutes to lay out
LARGE_DOT_BYTES = 500_000


@contextmanager
def suppress_stderr():
    """Context manager to temporarily suppress stderr output."""
    with open(os.devnull, "w") as devnull:
        old_stderr = sys.stderr
        sys.stderr = devnull
        try:
            yield
        finally:
            sys.stderr = old_stderr


class GraphRenderer:
    """Renders DOT language to image and document formats using Graphviz."""

    def __init__(self, verbose: bool = False):
        """Initialize renderer.

        Args:
            verbose: Whether to show verbose output including Graphviz warnings.
        """
        self.verbose = verbose

    def check_graphviz_installation(self) -> None:
        """Check if Graphviz is installed and accessible."""
        if not shutil.which("dot"):
            raise RuntimeError(
                "Graphviz 'dot' executable not found. Please install Graphviz:\n"
                "  Ubuntu/Debian: sudo apt-get install graphviz\n"
                "  macOS: brew install graphviz\n"
                "  Windows: Download from https://graphviz.org/download/",
            )

        logger.info("Graphviz installation verified")

    def render(
        self,
        dot_content: str,
        output_file: str,
        output_format: OutputFormat,
        engine: str = "dot",
    ) -> Path:
        """Render DOT content to the specified format.

        Args:
            dot_content: DOT language content.
            output_file: Output file path.
            output_format: Output format (PNG, SVG, PDF or DOT).
            engine: Graphviz engine to use (dot, neato, fdp, sfdp, circo, twopi).

        Returns:
            Path to the generated file.
        """
        if output_format == OutputFormat.DOT:
            return self.save_dot_file(dot_content, output_file)

        self.check_graphviz_installation()
        logger.info(f"Rendering graph to {output_format.value} format")

        if len(dot_content) > LARGE_DOT_BYTES:
            logger.warning(
                f"DOT source is large ({len(dot_content) / 1024 / 1024:.2f} MB). "
                "Rendering may take several minutes",
            )

        output_path = Path(output_file)

        try:
            graph = graphviz.Source(dot_content, engine=engine)

            # Graphviz layout warnings are noise unless running verbose
            context_manager = suppress_stderr() if not self.verbose else nullcontext()

            with context_manager:
                rendered = graph.pipe(format=output_format.value)

            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(rendered)

            logger.info(f"Graph rendered successfully to: {output_path}")
            return output_path

        except graphviz.ExecutableNotFound as e:
            raise RuntimeError(f"Graphviz executable not found: {e}") from e
        except Exception as e:
            raise RuntimeError(f"Failed to render graph: {e}") from e

    def get_available_engines(self) -> List[str]:
        """Get list of available Graphviz layout engines.

        Returns:
            List of available engine names.
        """
        return [engine for engine in LAYOUT_ENGINES if shutil.which(engine)]

    def save_dot_file(self, dot_content: str, output_file: str) -> Path:
        """Save DOT content to a .dot file.

        Args:
            dot_content: DOT language content.
            output_file: Output file path.

        Returns:
            Path to the saved DOT file.
        """
        dot_path = Path(output_file)

        # Ensure .dot extension
        if dot_path.suffix.lower() != ".dot":
            dot_path = dot_path.with_suffix(".dot")

        dot_path.parent.mkdir(parents=True, exist_ok=True)
        dot_path.write_text(dot_content, encoding="utf-8")
        logger.info(f"DOT file saved to: {dot_path}")

        return dot_path
