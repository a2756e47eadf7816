"""
Pods Module - Black Box Interface

Purpose: Pod data model and per-pod health classification
Interface: Pod, PodStatus, apply_round(), is_starting(), is_restarting()
Hidden: Streak bookkeeping, grace window arithmetic

Pure logic; never performs I/O.
"""

from .models import Pod, PodStatus
from .state_machine import (
    apply_round,
    classify,
    is_restarting,
    is_starting,
    record_probe_round,
)

__all__ = [
    "Pod",
    "PodStatus",
    "apply_round",
    "classify",
    "is_restarting",
    "is_starting",
    "record_probe_round",
]
