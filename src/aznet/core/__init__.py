"""Core aznet module."""

from .analyzer import NetworkAnalyzer
from .loader import load_topology, parse_topology
from .models import (
    Direction,
    Finding,
    FindingCategory,
    NetworkTopology,
    OutputFormat,
    Severity,
    Splines,
    Theme,
    ThemeConfig,
    VisualizationConfig,
)
from .sample import build_sample_topology

__all__ = [
    "Direction",
    "Finding",
    "FindingCategory",
    "NetworkAnalyzer",
    "NetworkTopology",
    "OutputFormat",
    "Severity",
    "Splines",
    "Theme",
    "ThemeConfig",
    "VisualizationConfig",
    "build_sample_topology",
    "load_topology",
    "parse_topology",
]
