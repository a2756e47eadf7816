"""
Cluster policy.

Pure functions that turn a cluster's classified pods and target size into
an aggregate status and the set of pods each remediation step acts on.

Aggregate status:
- healthy: at least ``target_count`` pods are healthy
- ok: at least ``target_count`` pods are not unhealthy
- unhealthy: anything less
"""

from enum import Enum
from typing import Iterable, List, Sequence, Tuple

from gingo.modules.pods.models import Pod, PodStatus


class AggregateStatus(str, Enum):
    """Cluster-wide classification driving remediation."""

    HEALTHY = "healthy"
    OK = "ok"
    UNHEALTHY = "unhealthy"


OK_STATUSES = frozenset(
    {PodStatus.HEALTHY, PodStatus.GREY, PodStatus.RESTARTING, PodStatus.STARTING}
)
USABLE_STATUSES = frozenset({PodStatus.HEALTHY, PodStatus.GREY})

# Stragglers removed once the cluster is healthy
HEALTHY_CLEANUP = (PodStatus.UNHEALTHY, PodStatus.STARTING, PodStatus.RESTARTING, PodStatus.GREY)
HEALTHY_SCALE_DOWN_TIERS = (PodStatus.HEALTHY,)

OK_CLEANUP = (PodStatus.UNHEALTHY,)
# Least-invested pods go first
OK_SCALE_DOWN_TIERS = (PodStatus.STARTING, PodStatus.RESTARTING, PodStatus.GREY)


def healthy_count(pods: Iterable[Pod]) -> int:
    return sum(1 for pod in pods if pod.status == PodStatus.HEALTHY)


def ok_count(pods: Iterable[Pod]) -> int:
    return sum(1 for pod in pods if pod.status in OK_STATUSES)


def aggregate_status(pods: Sequence[Pod], target_count: int) -> AggregateStatus:
    """Classify the whole cluster."""
    if healthy_count(pods) >= target_count:
        return AggregateStatus.HEALTHY
    if ok_count(pods) >= target_count:
        return AggregateStatus.OK
    return AggregateStatus.UNHEALTHY


def pods_with_status(pods: Iterable[Pod], statuses: Iterable[PodStatus]) -> List[Pod]:
    """Pods whose status is in ``statuses``, in list order."""
    wanted = set(statuses)
    return [pod for pod in pods if pod.status in wanted]


def usable_pod_ids(pods: Iterable[Pod]) -> List[str]:
    """Ids of pods fit to receive work (healthy or grey)."""
    return [pod.id for pod in pods if pod.status in USABLE_STATUSES]


def select_for_scale_down(
    pods: Sequence[Pod], num: int, tiers: Sequence[PodStatus]
) -> List[Pod]:
    """
    Pick exactly ``min(num, available)`` pods to remove, tier by tier.

    Tiers are exhausted in priority order; within a tier list order is kept.
    Selection stops as soon as ``num`` pods have been picked.

    Args:
        pods: Cluster pods
        num: Number of pods requested
        tiers: Statuses in removal priority order

    Returns:
        Pods to remove
    """
    selected: List[Pod] = []
    if num <= 0:
        return selected

    for status in tiers:
        for pod in pods:
            if len(selected) >= num:
                return selected
            if pod.status == status:
                selected.append(pod)
    return selected


def split_restart_or_remove(
    pods: Iterable[Pod], restart_attempts_to_drop: int
) -> Tuple[List[Pod], List[Pod]]:
    """
    Decide the fate of unhealthy pods.

    Returns:
        Tuple of (pods to restart, pods to remove)
    """
    to_restart: List[Pod] = []
    to_remove: List[Pod] = []
    for pod in pods_with_status(pods, (PodStatus.UNHEALTHY,)):
        if pod.restart_attempts < restart_attempts_to_drop:
            to_restart.append(pod)
        else:
            to_remove.append(pod)
    return to_restart, to_remove
