"""python-aznet - Azure network topology analyzer.

Resolves a snapshot of Azure network resources into a deduplicated reference
graph, then reports orphaned resources, risky security rules and a Graphviz
diagram of the topology.
"""

__version__ = "1.0.0"

from .core.analyzer import NetworkAnalyzer
from .core.models import OutputFormat, Severity, Theme

__all__ = ["NetworkAnalyzer", "OutputFormat", "Severity", "Theme"]
