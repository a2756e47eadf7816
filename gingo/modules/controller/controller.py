"""
Cluster controller.

One controller per cluster. A periodic timer hands check cycles to the
registry's job tracker; each cycle:

1. Skips entirely if the cluster is disabled or a cycle is already running
2. Marks the cluster BUSY
3. Loads the pod list from the backend if it was never seeded
4. Checks every pod concurrently (backend status, then the health probe
   raced against the timeout)
5. Remediates according to the aggregate status
6. Publishes the usable pod ids
7. Marks the cluster IDLE again, on every exit path
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Coroutine, List, Optional

from gingo.modules.connector.interfaces import Connector
from gingo.modules.ops.ops import BulkOp, OpsExecutor
from gingo.modules.pods.models import Pod, PodStatus
from gingo.modules.pods.state_machine import apply_round
from gingo.modules.policy.policy import (
    HEALTHY_CLEANUP,
    HEALTHY_SCALE_DOWN_TIERS,
    OK_CLEANUP,
    OK_SCALE_DOWN_TIERS,
    AggregateStatus,
    aggregate_status,
    healthy_count,
    ok_count,
    usable_pod_ids,
)
from gingo.modules.state.state import (
    Clock,
    ClusterPhase,
    ClusterState,
    PodHooks,
    invoke_hook,
    utc_now,
)

logger = logging.getLogger(__name__)

Spawn = Callable[[Coroutine[Any, Any, Any]], Any]


def _discard_late_result(task: asyncio.Task) -> None:
    # Retrieve the outcome of an abandoned probe so it is never reported or applied.
    if not task.cancelled():
        task.exception()


def _is_async_callable(hook: Callable[..., Any]) -> bool:
    return inspect.iscoroutinefunction(hook) or inspect.iscoroutinefunction(
        getattr(type(hook), "__call__", None)
    )


async def _run_probe(hook: Callable[..., Any], **kwargs) -> Any:
    """Await async probes on the loop; run sync probes in a worker thread."""
    if _is_async_callable(hook):
        return await hook(**kwargs)
    result = await asyncio.to_thread(hook, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


class ClusterController:
    """Owns one cluster's timer and check-and-remediate cycle."""

    def __init__(
        self,
        state: ClusterState,
        connector: Connector,
        hooks: PodHooks,
        ops: Optional[OpsExecutor] = None,
        clock: Clock = utc_now,
        spawn: Optional[Spawn] = None,
    ):
        """
        Initialize cluster controller.

        Args:
            state: Cluster state (owned by the registry)
            connector: Provisioning backend
            hooks: Application callbacks
            ops: Ops executor (built from connector/hooks when omitted)
            clock: Source of timestamps
            spawn: Schedules a cycle coroutine as a tracked job
        """
        self.state = state
        self.connector = connector
        self.hooks = hooks
        self.clock = clock
        self.ops = ops or OpsExecutor(connector, hooks, clock=clock)
        self._spawn = spawn or asyncio.ensure_future
        self._timer: Optional[asyncio.Task] = None
        self.last_aggregate: Optional[AggregateStatus] = None
        self.last_pod_ids: List[str] = []
        self.cycles_run = 0

    @property
    def cluster_id(self) -> str:
        return self.state.id

    @property
    def armed(self) -> bool:
        return self._timer is not None and not self._timer.done()

    # Timer

    def arm(self) -> None:
        """Start the periodic timer using the current check interval."""
        if self.armed:
            return
        interval = self.state.config.check_interval_minutes * 60
        self._timer = asyncio.create_task(
            self._timer_loop(interval), name=f"gingo-timer-{self.cluster_id}"
        )
        logger.debug(f"cluster={self.cluster_id} timer armed every {interval:.1f}s")

    async def disarm(self) -> None:
        """Stop the timer; no cycle is scheduled by it once this returns."""
        timer, self._timer = self._timer, None
        if timer is None:
            return
        timer.cancel()
        try:
            await timer
        except asyncio.CancelledError:
            pass
        logger.debug(f"cluster={self.cluster_id} timer disarmed")

    async def _timer_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self._spawn(self.check_cluster())

    # Cycle

    async def check_cluster(self) -> bool:
        """
        Run one check-and-remediate cycle.

        Returns:
            True if the cycle ran, False if it was skipped

        Raises:
            Exception: A backend query failed in a way that aborts the cycle
                (the cluster is still released to IDLE)
        """
        if not self.state.config.enabled:
            logger.debug(f"cluster={self.cluster_id} disabled, skipping cycle")
            return False
        if self.state.phase == ClusterPhase.BUSY:
            logger.debug(f"cluster={self.cluster_id} busy, skipping cycle")
            return False

        self.state.phase = ClusterPhase.BUSY
        try:
            if self.state.needs_seed:
                await self.seed()
            await self._check_pods()
            await self._remediate()
            self.cycles_run += 1
        finally:
            self.state.phase = ClusterPhase.IDLE
        return True

    async def seed(self) -> int:
        """
        Load existing pods from the backend into an empty cluster.

        A cluster that already tracks pods is never re-seeded.

        Returns:
            Number of pods loaded
        """
        if self.state.pods:
            self.state.needs_seed = False
            return 0
        pods_by_cluster = await self.connector.list_pods([self.cluster_id])
        self.state.pods = list(pods_by_cluster.get(self.cluster_id, []))
        self.state.needs_seed = False
        logger.info(f"cluster={self.cluster_id} seeded with {len(self.state.pods)} pods")
        return len(self.state.pods)

    async def _check_pods(self) -> None:
        pods = list(self.state.pods)
        results = await asyncio.gather(
            *(self._check_pod(pod) for pod in pods), return_exceptions=True
        )
        for pod, result in zip(pods, results):
            if isinstance(result, Exception):
                logger.warning(
                    f"cluster={self.cluster_id} pod={pod.id} check aborted: {result}"
                )

    async def _check_pod(self, pod: Pod) -> PodStatus:
        config = self.state.config
        backend_status = await self.connector.get_status(pod)
        if backend_status == PodStatus.UNHEALTHY:
            return apply_round(pod, config, backend_status, None, self.clock())

        passed = await self._probe(pod)
        return apply_round(pod, config, backend_status, passed, self.clock())

    async def _probe(self, pod: Pod) -> bool:
        """Race the health probe against the timeout; anything but True fails."""
        config = self.state.config
        task = asyncio.ensure_future(
            _run_probe(self.hooks.check_pod_health, cluster_config=config, pod_id=pod.id)
        )
        done, _ = await asyncio.wait({task}, timeout=config.check_timeout_seconds)

        if task not in done:
            task.cancel()
            task.add_done_callback(_discard_late_result)
            logger.info(
                f"cluster={self.cluster_id} pod={pod.id} probe timed out "
                f"after {config.check_timeout_seconds}s"
            )
            return False

        try:
            return task.result() is True
        except Exception as e:
            logger.info(f"cluster={self.cluster_id} pod={pod.id} probe raised: {e}")
            return False

    async def _remediate(self) -> None:
        config = self.state.config
        target = config.target_count
        status = aggregate_status(self.state.pods, target)
        logger.info(
            f"cluster={self.cluster_id} aggregate={status.value} "
            f"healthy={healthy_count(self.state.pods)} ok={ok_count(self.state.pods)} "
            f"target={target}"
        )

        if status == AggregateStatus.HEALTHY:
            await self.ops.bulk_op(self.state, BulkOp.REMOVE, HEALTHY_CLEANUP)
            excess = healthy_count(self.state.pods) - target
            if excess > 0:
                await self.ops.scale_down(self.state, excess, HEALTHY_SCALE_DOWN_TIERS)

        elif status == AggregateStatus.OK:
            await self.ops.bulk_op(self.state, BulkOp.REMOVE, OK_CLEANUP)
            excess = ok_count(self.state.pods) - target
            if excess > 0:
                await self.ops.scale_down(self.state, excess, OK_SCALE_DOWN_TIERS)

        else:
            await self.ops.bulk_op(
                self.state, BulkOp.RESTART_OR_REMOVE, (PodStatus.UNHEALTHY,)
            )
            if aggregate_status(self.state.pods, target) == AggregateStatus.UNHEALTHY:
                deficit = target - ok_count(self.state.pods)
                if deficit > 0:
                    await self.ops.scale_up(self.state, deficit)

        self.last_aggregate = aggregate_status(self.state.pods, target)
        await self._publish()

    async def _publish(self) -> None:
        pod_ids = usable_pod_ids(self.state.pods)
        self.last_pod_ids = pod_ids
        try:
            await invoke_hook(
                self.hooks.on_pod_list_update,
                cluster_config=self.state.config,
                pod_ids=pod_ids,
            )
        except Exception as e:
            logger.warning(f"cluster={self.cluster_id} hook=on-pod-list-update failed: {e}")
