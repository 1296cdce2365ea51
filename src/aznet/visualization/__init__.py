"""Visualization module for diagram generation and rendering."""

from .diagram import DiagramBuilder, DiagramDescription, sanitize_name
from .dot_generator import DOTGenerator
from .renderer import GraphRenderer

__all__ = ["DOTGenerator", "DiagramBuilder", "DiagramDescription", "GraphRenderer", "sanitize_name"]
