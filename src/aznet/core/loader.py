"""Loading topology snapshots from JSON documents."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

from pydantic import ValidationError

from .models import NetworkTopology

logger = logging.getLogger(__name__)


def parse_topology(data: Dict[str, Any]) -> NetworkTopology:
    """Build a topology snapshot from a decoded JSON document.

    Args:
        data: Mapping with camelCase (or snake_case) snapshot keys.

    Returns:
        Immutable topology snapshot.

    Raises:
        ValueError: If the document does not describe a topology.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Topology snapshot must be a JSON object, got {type(data).__name__}")

    try:
        return NetworkTopology.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid topology snapshot: {e}") from e


def load_topology(path: Union[str, Path]) -> NetworkTopology:
    """Load a topology snapshot from a JSON file.

    Args:
        path: Path to the snapshot file.

    Returns:
        Immutable topology snapshot.
    """
    snapshot_path = Path(path)
    logger.info(f"Loading topology snapshot from {snapshot_path}")

    try:
        data = json.loads(snapshot_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Snapshot file {snapshot_path} is not valid JSON: {e}") from e

    topology = parse_topology(data)
    logger.info(
        f"Loaded {topology.resource_count()} resources for "
        f"{topology.subscription_id or '<unknown subscription>'}/{topology.resource_group or '<unknown group>'}",
    )
    return topology
