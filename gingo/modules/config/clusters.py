from __future__ import annotations

import logging
import os
from typing import Any, Dict

import yaml

from gingo.modules.api.models import ClusterConfigSet

logger = logging.getLogger(__name__)


def parse_cluster_configs(data: Any) -> ClusterConfigSet:
    """
    Validate already-parsed cluster definitions.

    Accepts either ``{"clusters": [...]}`` or a bare list of clusters.
    """
    if data is None:
        data = {}
    if isinstance(data, list):
        data = {"clusters": data}
    if not isinstance(data, dict):
        raise ValueError("Cluster definitions must be a mapping with a 'clusters' list")
    return ClusterConfigSet(**data)


def load_cluster_configs(path: str) -> ClusterConfigSet:
    """Load and validate a YAML cluster definitions file.

    A missing file yields an empty configuration so the service can start
    and receive clusters later through the API.
    """
    if not os.path.isfile(path):
        logger.warning(f"Cluster definitions file not found: {path}; starting with no clusters")
        return ClusterConfigSet()

    with open(path, "r", encoding="utf-8") as f:
        data: Dict[str, Any] = yaml.safe_load(f) or {}

    configs = parse_cluster_configs(data)
    logger.info(f"Loaded {len(configs.clusters)} cluster definitions from {path}")
    return configs
