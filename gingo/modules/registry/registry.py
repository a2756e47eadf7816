"""
Controller registry and reconciler.

Owns every cluster's state and controller and implements the
reconfiguration barrier:

1. Disarm every timer
2. Wait for all in-flight cycles (tracked explicitly)
3. Refuse to continue if any cluster is still BUSY
4. Reconcile clusters by id (keep pods of surviving clusters, drop removed
   ones, create new ones empty)
5. Seed empty clusters from the backend
6. Run one best-effort cycle for every cluster
7. Re-arm timers with the new intervals

Schema validation happens before step 1 so a rejected configuration leaves
the registry untouched.
"""

import asyncio
import logging
from typing import Any, Coroutine, Dict, Iterable, List, Optional, Set, Union

from gingo.modules.api.models import (
    ClusterConfig,
    ClusterConfigSet,
    ClusterSummary,
    PodSummary,
)
from gingo.modules.connector.interfaces import Connector
from gingo.modules.controller.controller import ClusterController
from gingo.modules.policy.policy import aggregate_status, usable_pod_ids
from gingo.modules.state.state import (
    Clock,
    ClusterPhase,
    ClusterState,
    PodHooks,
    utc_now,
)

logger = logging.getLogger(__name__)

ConfigInput = Union[ClusterConfigSet, Iterable[Union[ClusterConfig, Dict[str, Any]]]]


class ReconfigurationError(RuntimeError):
    """Reconfiguration cannot proceed safely."""


class UnknownClusterError(KeyError):
    """No cluster with the requested id."""


class Registry:
    """Owns the set of clusters and their controllers."""

    def __init__(self, connector: Connector, hooks: PodHooks, clock: Clock = utc_now):
        """
        Initialize registry.

        Args:
            connector: Provisioning backend shared by all clusters
            hooks: Application callbacks
            clock: Source of timestamps
        """
        self.connector = connector
        self.hooks = hooks
        self.clock = clock
        self._controllers: Dict[str, ClusterController] = {}
        self._jobs: Set[asyncio.Task] = set()
        self._lock = asyncio.Lock()
        self.reconfiguring = False

    # Accessors

    @property
    def cluster_ids(self) -> List[str]:
        return list(self._controllers)

    @property
    def clusters(self) -> Dict[str, ClusterState]:
        return {cluster_id: ctrl.state for cluster_id, ctrl in self._controllers.items()}

    def get_controller(self, cluster_id: str) -> ClusterController:
        try:
            return self._controllers[cluster_id]
        except KeyError:
            raise UnknownClusterError(cluster_id) from None

    def get_cluster(self, cluster_id: str) -> ClusterState:
        return self.get_controller(cluster_id).state

    @property
    def in_flight(self) -> int:
        return len(self._jobs)

    # Job tracking

    def _track(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.create_task(self._run_job(coro))
        self._jobs.add(task)
        task.add_done_callback(self._jobs.discard)
        return task

    async def _run_job(self, coro: Coroutine[Any, Any, Any]) -> Any:
        try:
            return await coro
        except Exception as e:
            logger.error(f"Check cycle failed: {e}", exc_info=True)
            return None

    async def drain(self) -> None:
        """Wait until no tracked job is running."""
        while self._jobs:
            await asyncio.gather(*list(self._jobs), return_exceptions=True)

    # Reconfiguration

    @staticmethod
    def validate(configs: ConfigInput) -> ClusterConfigSet:
        """
        Validate a configuration list.

        Raises:
            pydantic.ValidationError: Schema violation or duplicate ids
        """
        if isinstance(configs, ClusterConfigSet):
            return configs
        return ClusterConfigSet(clusters=list(configs))

    async def set_cluster_configs(self, configs: ConfigInput) -> List[str]:
        """
        Replace the cluster configuration while preserving live pods.

        Args:
            configs: New cluster definitions (models or raw mappings)

        Returns:
            Cluster ids after reconciliation

        Raises:
            pydantic.ValidationError: Input rejected, nothing changed
            ReconfigurationError: A cluster stayed BUSY after the drain
        """
        validated = self.validate(configs)

        async with self._lock:
            self.reconfiguring = True
            try:
                await self._disarm_all()
                await self.drain()

                busy = [
                    cluster_id
                    for cluster_id, ctrl in self._controllers.items()
                    if ctrl.state.phase != ClusterPhase.IDLE
                ]
                if busy:
                    logger.error(
                        f"Clusters still busy after drain: {', '.join(busy)}; "
                        f"refusing to reconfigure"
                    )
                    raise ReconfigurationError(
                        f"Clusters still busy after drain: {', '.join(busy)}"
                    )

                self._reconcile(validated.clusters)
                await self._seed_empty_clusters()

                await asyncio.gather(
                    *(self._track(ctrl.check_cluster()) for ctrl in self._controllers.values())
                )

                for ctrl in self._controllers.values():
                    ctrl.arm()
            finally:
                self.reconfiguring = False

        logger.info(f"Reconfigured clusters: {', '.join(self.cluster_ids) or '(none)'}")
        return self.cluster_ids

    def _reconcile(self, configs: List[ClusterConfig]) -> None:
        new_ids = {config.id for config in configs}

        for cluster_id, ctrl in self._controllers.items():
            if cluster_id not in new_ids:
                logger.warning(
                    f"cluster={cluster_id} dropped from configuration; "
                    f"abandoning {len(ctrl.state.pods)} pods"
                )

        controllers: Dict[str, ClusterController] = {}
        for config in configs:
            ctrl = self._controllers.get(config.id)
            if ctrl is not None:
                ctrl.state.config = config
                logger.info(f"cluster={config.id} config updated, keeping {len(ctrl.state.pods)} pods")
            else:
                ctrl = ClusterController(
                    ClusterState(config=config),
                    self.connector,
                    self.hooks,
                    clock=self.clock,
                    spawn=self._track,
                )
                logger.info(f"cluster={config.id} created")
            controllers[config.id] = ctrl

        self._controllers = controllers

    async def _seed_empty_clusters(self) -> None:
        empty = [ctrl for ctrl in self._controllers.values() if not ctrl.state.pods]
        for ctrl in self._controllers.values():
            if ctrl.state.pods:
                ctrl.state.needs_seed = False
        if not empty:
            return

        cluster_ids = [ctrl.cluster_id for ctrl in empty]
        try:
            pods_by_cluster = await self.connector.list_pods(cluster_ids)
        except Exception as e:
            # Controllers retry seeding at the start of their next cycle.
            logger.error(f"Failed to load existing pods for {', '.join(cluster_ids)}: {e}")
            for ctrl in empty:
                ctrl.state.needs_seed = True
            return

        for ctrl in empty:
            ctrl.state.pods = list(pods_by_cluster.get(ctrl.cluster_id, []))
            ctrl.state.needs_seed = False
            logger.info(f"cluster={ctrl.cluster_id} seeded with {len(ctrl.state.pods)} pods")

    async def _disarm_all(self) -> None:
        await asyncio.gather(*(ctrl.disarm() for ctrl in self._controllers.values()))

    # Lifecycle

    async def start(self, configs: ConfigInput) -> List[str]:
        """Load the initial configuration and start all timers."""
        return await self.set_cluster_configs(configs)

    async def stop(self) -> None:
        """Disarm every timer and wait for in-flight cycles to finish."""
        async with self._lock:
            await self._disarm_all()
            await self.drain()
        logger.info("Registry stopped")

    async def run_check(self, cluster_id: str) -> bool:
        """
        Run one cycle for a cluster now.

        Returns:
            True if the cycle ran, False if it was skipped (busy or disabled)

        Raises:
            UnknownClusterError: No such cluster
            ReconfigurationError: A reconfiguration is in progress
        """
        if self.reconfiguring or self._lock.locked():
            raise ReconfigurationError("Reconfiguration in progress")
        ctrl = self.get_controller(cluster_id)
        return bool(await self._track(ctrl.check_cluster()))

    # Reporting

    def summarize(self, cluster_id: str) -> ClusterSummary:
        ctrl = self.get_controller(cluster_id)
        state = ctrl.state
        return ClusterSummary(
            id=state.id,
            enabled=state.config.enabled,
            phase=state.phase.value,
            aggregate_status=aggregate_status(state.pods, state.config.target_count).value,
            target_count=state.config.target_count,
            usable_pod_ids=usable_pod_ids(state.pods),
            pods=[PodSummary(**pod.to_dict()) for pod in state.pods],
        )

    def snapshot(self) -> List[ClusterSummary]:
        return [self.summarize(cluster_id) for cluster_id in self._controllers]
