"""
State Module - Black Box Interface

Purpose: Containers for live cluster state and application hooks
Interface: ClusterState, ClusterPhase, PodHooks, invoke_hook(), utc_now()
Hidden: Sync/async hook dispatch
"""

from .state import (
    Clock,
    ClusterPhase,
    ClusterState,
    PodHooks,
    invoke_hook,
    utc_now,
)

__all__ = [
    "Clock",
    "ClusterPhase",
    "ClusterState",
    "PodHooks",
    "invoke_hook",
    "utc_now",
]
