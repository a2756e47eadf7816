"""
API Module - Black Box Interface

Purpose: Configuration schema and control API data models
Interface: ClusterConfig, ClusterConfigSet and response models
Hidden: Field validation rules, camelCase aliasing

The API module only describes data - it contains no business logic.
"""

from .models import (
    CheckResponse,
    ClusterConfig,
    ClusterConfigSet,
    ClusterSummary,
    PodSummary,
    ReconfigureResponse,
)

__all__ = [
    "CheckResponse",
    "ClusterConfig",
    "ClusterConfigSet",
    "ClusterSummary",
    "PodSummary",
    "ReconfigureResponse",
]
