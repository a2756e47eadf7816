"""
Controller Module - Black Box Interface

Purpose: Run one cluster's periodic check-and-remediate cycle
Interface: arm(), disarm(), check_cluster(), seed()
Hidden: Probe/timeout race, concurrent pod checks, remediation sequencing

At most one cycle per cluster runs at any time.
"""

from .controller import ClusterController

__all__ = ["ClusterController"]
