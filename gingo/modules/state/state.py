"""
Cluster state containers.

A ``ClusterState`` is owned by the registry and handed by reference to the
single controller (and its ops executor) that operates on that cluster.
"""

import inspect
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Union

from gingo.modules.api.models import ClusterConfig
from gingo.modules.pods.models import Pod

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class ClusterPhase(str, Enum):
    """Mutual-exclusion flag for a cluster's check cycle."""

    IDLE = "idle"
    BUSY = "busy"


@dataclass
class ClusterState:
    """
    Live state of one cluster.

    Attributes:
        config: Current (immutable) cluster definition
        phase: BUSY for exactly the duration of one check cycle
        pods: Tracked pods
        needs_seed: True until the pod list was loaded from the backend
    """

    config: ClusterConfig
    phase: ClusterPhase = ClusterPhase.IDLE
    pods: List[Pod] = field(default_factory=list)
    needs_seed: bool = True

    @property
    def id(self) -> str:
        return self.config.id

    def find_pod(self, pod_id: str) -> Optional[Pod]:
        for pod in self.pods:
            if pod.id == pod_id:
                return pod
        return None


HookResult = Union[Any, Awaitable[Any]]


@dataclass
class PodHooks:
    """
    Application callbacks.

    Every hook is called with keyword arguments and may be sync or async:
    - check_pod_health(cluster_config=, pod_id=) -> bool (only True passes;
      a sync probe runs in a worker thread so the timeout still applies)
    - on_pod_list_update(cluster_config=, pod_ids=)
    - after_pod_start(cluster_config=, pod_id=)
    - after_pod_restart(cluster_config=, pod_id=)
    """

    check_pod_health: Callable[..., HookResult]
    on_pod_list_update: Optional[Callable[..., HookResult]] = None
    after_pod_start: Optional[Callable[..., HookResult]] = None
    after_pod_restart: Optional[Callable[..., HookResult]] = None


async def invoke_hook(hook: Optional[Callable[..., HookResult]], **kwargs) -> Any:
    """Call a hook and await its result when it is a coroutine."""
    if hook is None:
        return None
    result = hook(**kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
