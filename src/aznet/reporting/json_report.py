"""JSON report output."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .. import __version__
from ..analysis.report import AnalysisReport
from ..core.models import NetworkTopology

logger = logging.getLogger(__name__)


def build_json_report(
    topology: NetworkTopology,
    report: AnalysisReport,
    generated_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Assemble the report document: metadata, topology and analysis.

    Args:
        topology: Analyzed topology snapshot.
        report: Analysis report for ``topology``.
        generated_at: Generation time, defaults to now (UTC).

    Returns:
        JSON-serializable dictionary.
    """
    generated_at = generated_at or datetime.now(timezone.utc)
    return {
        "metadata": {
            "generated_at": generated_at.isoformat(),
            "tool_version": __version__,
            "subscription_id": topology.subscription_id,
            "resource_group": topology.resource_group,
        },
        "topology": topology.model_dump(mode="json", by_alias=True),
        "analysis": report.to_dict(),
    }


def generate_json(topology: NetworkTopology, report: AnalysisReport) -> str:
    """Render the JSON report as indented text."""
    document = build_json_report(topology, report)
    logger.info(f"Generated JSON report with {len(report.findings)} findings")
    return json.dumps(document, indent=2)
