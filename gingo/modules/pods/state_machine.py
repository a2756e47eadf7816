"""
Per-pod health state machine.

Pure functions mapping observed signals (backend status, probe outcome,
elapsed time) to a pod's classification and bookkeeping counters. Nothing
in here performs I/O; the caller supplies ``now``.

Transition for one round:
1. Backend reports unhealthy -> pod is unhealthy, probe is not consulted
2. Probe outcome updates the streak counters (mutually exclusive)
3. A failed round inside the start/restart grace window keeps the pod in
   starting/restarting
4. Otherwise streak thresholds decide healthy / unhealthy / grey
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from gingo.modules.api.models import ClusterConfig

from .models import Pod, PodStatus

logger = logging.getLogger(__name__)


def is_starting(pod: Pod) -> bool:
    """Created by us and never confirmed healthy since."""
    return (
        pod.last_started is not None
        and pod.restart_attempts == 0
        and pod.last_healthy_at is None
    )


def is_restarting(pod: Pod) -> bool:
    """Restarted by us and not confirmed healthy since the latest restart."""
    if pod.last_restarted is None or pod.restart_attempts <= 0:
        return False
    return pod.last_healthy_at is None or pod.last_healthy_at < pod.last_restarted


def record_probe_round(pod: Pod, passed: bool, now: datetime) -> None:
    """Update streak counters and check timestamps for one probe round."""
    if passed:
        pod.unhealthy_streak = 0
        pod.healthy_streak += 1
        pod.last_healthy_at = now
    else:
        pod.healthy_streak = 0
        pod.unhealthy_streak += 1
    pod.last_checked_at = now


def _within(since: Optional[datetime], minutes: float, now: datetime) -> bool:
    if since is None:
        return False
    return now - since < timedelta(minutes=minutes)


def classify(pod: Pod, config: ClusterConfig, passed: bool, now: datetime) -> PodStatus:
    """
    Derive the pod status after a probe round has been recorded.

    Args:
        pod: Pod whose counters already include this round
        config: Cluster thresholds and grace windows
        passed: Outcome of this round
        now: Current time

    Returns:
        The new status (also stored on the pod)
    """
    if not passed:
        if is_starting(pod) and _within(pod.last_started, config.start_grace_minutes, now):
            pod.status = PodStatus.STARTING
            return pod.status
        if is_restarting(pod) and _within(
            pod.last_restarted, config.restart_grace_minutes, now
        ):
            pod.status = PodStatus.RESTARTING
            return pod.status

    if pod.healthy_streak >= config.healthy_threshold:
        pod.status = PodStatus.HEALTHY
        pod.restart_attempts = 0
    elif pod.unhealthy_streak >= config.unhealthy_threshold:
        pod.status = PodStatus.UNHEALTHY
    else:
        pod.status = PodStatus.GREY
    return pod.status


def apply_round(
    pod: Pod,
    config: ClusterConfig,
    backend_status: PodStatus,
    passed: Optional[bool],
    now: datetime,
) -> PodStatus:
    """
    Run one full transition for a pod.

    ``passed`` is ignored (and may be None) when the backend reports the
    pod unhealthy, since the backend veto short-circuits the probe.
    """
    if backend_status == PodStatus.UNHEALTHY:
        pod.status = PodStatus.UNHEALTHY
        return pod.status

    if passed is None:
        raise ValueError(f"probe outcome required for pod {pod.id}")

    record_probe_round(pod, passed, now)
    status = classify(pod, config, passed, now)
    logger.debug(
        f"Pod {pod.id}: passed={passed} status={status.value} "
        f"healthy_streak={pod.healthy_streak} unhealthy_streak={pod.unhealthy_streak}"
    )
    return status
