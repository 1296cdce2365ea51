"""Analysis components built on the canonical reference graph."""

from .orphans import OrphanedResources, find_orphaned_resources
from .report import AnalysisReport, TopologySummary, analyze
from .resolver import (
    CanonicalGraph,
    CanonicalNode,
    NextHopIndex,
    ReferenceResolver,
    RelationKind,
    ResourceKind,
    canonical_id,
)
from .security import RULE_CHECKS, RuleCheck, SecurityClassifier

__all__ = [
    "AnalysisReport",
    "CanonicalGraph",
    "CanonicalNode",
    "NextHopIndex",
    "OrphanedResources",
    "RULE_CHECKS",
    "ReferenceResolver",
    "RelationKind",
    "ResourceKind",
    "RuleCheck",
    "SecurityClassifier",
    "TopologySummary",
    "analyze",
    "canonical_id",
    "find_orphaned_resources",
]
