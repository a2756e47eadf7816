"""
Policy Module - Black Box Interface

Purpose: Decide what a cluster needs
Interface: aggregate_status(), select_for_scale_down(), split_restart_or_remove()
Hidden: Status buckets, tier ordering

Pure logic; the controller executes what the policy selects.
"""

from .policy import (
    HEALTHY_CLEANUP,
    HEALTHY_SCALE_DOWN_TIERS,
    OK_CLEANUP,
    OK_SCALE_DOWN_TIERS,
    AggregateStatus,
    aggregate_status,
    healthy_count,
    ok_count,
    pods_with_status,
    select_for_scale_down,
    split_restart_or_remove,
    usable_pod_ids,
)

__all__ = [
    "AggregateStatus",
    "HEALTHY_CLEANUP",
    "HEALTHY_SCALE_DOWN_TIERS",
    "OK_CLEANUP",
    "OK_SCALE_DOWN_TIERS",
    "aggregate_status",
    "healthy_count",
    "ok_count",
    "pods_with_status",
    "select_for_scale_down",
    "split_restart_or_remove",
    "usable_pod_ids",
]
