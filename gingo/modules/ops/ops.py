"""
Ops executor.

Applies add/remove/restart actions against the connector and mutates the
cluster's pod list to match. Every action is individually error-isolated:
a failing backend call is logged and leaves the pod list exactly as it was,
so the next cycle reconsiders the same pods.

Scale-up creates pods one after another; removals and restarts over a set
of pods run concurrently.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Iterable, List, Optional, Sequence

from gingo.modules.connector.interfaces import Connector
from gingo.modules.pods.models import Pod, PodStatus
from gingo.modules.policy.policy import (
    pods_with_status,
    select_for_scale_down,
    split_restart_or_remove,
)
from gingo.modules.state.state import Clock, ClusterState, PodHooks, invoke_hook, utc_now

logger = logging.getLogger(__name__)


class BulkOp(str, Enum):
    """Action applied to every pod of a status set."""

    REMOVE = "remove"
    RESTART = "restart"
    RESTART_OR_REMOVE = "restart_or_remove"


class OpsExecutor:
    def __init__(self, connector: Connector, hooks: PodHooks, clock: Clock = utc_now):
        """
        Initialize ops executor.

        Args:
            connector: Provisioning backend
            hooks: Application callbacks (after-start / after-restart are fired here)
            clock: Source of timestamps
        """
        self.connector = connector
        self.hooks = hooks
        self.clock = clock

    async def add_pod(self, cluster: ClusterState) -> Optional[Pod]:
        """
        Create one pod and start tracking it.

        Returns:
            The new pod, or None if the backend call failed
        """
        try:
            pod = await self.connector.create(cluster.config)
        except Exception as e:
            logger.warning(f"cluster={cluster.id} op=add-pod failed: {e}")
            return None

        pod.status = PodStatus.STARTING
        pod.last_started = self.clock()
        cluster.pods.append(pod)
        logger.info(f"cluster={cluster.id} op=add-pod pod={pod.id}")

        await self._notify(self.hooks.after_pod_start, cluster, pod, "after-pod-start")
        return pod

    async def remove_pod(self, cluster: ClusterState, pod: Pod) -> bool:
        """
        Terminate a pod and stop tracking it.

        Returns:
            True if the pod was removed
        """
        try:
            await self.connector.remove(pod)
        except Exception as e:
            logger.warning(f"cluster={cluster.id} op=remove-pod pod={pod.id} failed: {e}")
            return False

        cluster.pods = [p for p in cluster.pods if p.id != pod.id]
        logger.info(f"cluster={cluster.id} op=remove-pod pod={pod.id}")
        return True

    async def restart_pod(self, cluster: ClusterState, pod: Pod) -> bool:
        """
        Restart a pod and reset its health bookkeeping.

        Returns:
            True if the restart was issued
        """
        try:
            await self.connector.restart(pod)
        except Exception as e:
            logger.warning(f"cluster={cluster.id} op=restart-pod pod={pod.id} failed: {e}")
            return False

        pod.restart_attempts += 1
        pod.healthy_streak = 0
        pod.unhealthy_streak = 0
        pod.status = PodStatus.RESTARTING
        pod.last_restarted = self.clock()
        pod.last_healthy_at = None
        logger.info(
            f"cluster={cluster.id} op=restart-pod pod={pod.id} attempts={pod.restart_attempts}"
        )

        await self._notify(self.hooks.after_pod_restart, cluster, pod, "after-pod-restart")
        return True

    async def scale_up(self, cluster: ClusterState, num: int) -> int:
        """
        Add ``num`` pods sequentially.

        Returns:
            Number of pods actually added
        """
        added = 0
        for _ in range(max(num, 0)):
            if await self.add_pod(cluster):
                added += 1
        if num > 0:
            logger.info(f"cluster={cluster.id} op=scale-up requested={num} added={added}")
        return added

    async def scale_down(
        self, cluster: ClusterState, num: int, tiers: Sequence[PodStatus]
    ) -> int:
        """
        Remove up to ``num`` pods, preferring earlier tiers.

        Returns:
            Number of pods actually removed
        """
        victims = select_for_scale_down(cluster.pods, num, tiers)
        results = await self._settle(self.remove_pod(cluster, pod) for pod in victims)
        removed = sum(1 for ok in results if ok is True)
        if victims:
            logger.info(
                f"cluster={cluster.id} op=scale-down requested={num} "
                f"selected={len(victims)} removed={removed}"
            )
        return removed

    async def bulk_op(
        self, cluster: ClusterState, op: BulkOp, statuses: Iterable[PodStatus]
    ) -> None:
        """Apply ``op`` concurrently to every pod whose status is in ``statuses``."""
        targets = pods_with_status(cluster.pods, statuses)
        if not targets:
            return

        if op == BulkOp.REMOVE:
            jobs = [self.remove_pod(cluster, pod) for pod in targets]
        elif op == BulkOp.RESTART:
            jobs = [self.restart_pod(cluster, pod) for pod in targets]
        else:
            to_restart, to_remove = split_restart_or_remove(
                targets, cluster.config.restart_attempts_to_drop
            )
            jobs = [self.restart_pod(cluster, pod) for pod in to_restart]
            jobs += [self.remove_pod(cluster, pod) for pod in to_remove]

        await self._settle(jobs)

    async def _settle(self, jobs: Iterable[Awaitable]) -> List:
        """Run jobs concurrently; one failure never aborts the others."""
        results = await asyncio.gather(*jobs, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error(f"Unexpected ops failure: {result}", exc_info=result)
        return list(results)

    async def _notify(self, hook, cluster: ClusterState, pod: Pod, name: str) -> None:
        try:
            await invoke_hook(hook, cluster_config=cluster.config, pod_id=pod.id)
        except Exception as e:
            logger.warning(f"cluster={cluster.id} hook={name} pod={pod.id} failed: {e}")
