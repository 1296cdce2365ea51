"""Report emitters for analysis results."""

from .html import generate_html
from .json_report import build_json_report, generate_json
from .markdown import generate_markdown

__all__ = ["build_json_report", "generate_html", "generate_json", "generate_markdown"]
