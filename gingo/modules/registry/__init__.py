"""
Registry Module - Black Box Interface

Purpose: Own all clusters and hot-swap their configuration safely
Interface: start(), stop(), set_cluster_configs(), run_check(), snapshot()
Hidden: Timer arming, in-flight job tracking, reconciliation by cluster id

Reconfiguration is a stop-the-world barrier across all clusters.
"""

from .registry import ReconfigurationError, Registry, UnknownClusterError

__all__ = ["ReconfigurationError", "Registry", "UnknownClusterError"]
