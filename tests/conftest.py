"""
Shared pytest fixtures for Gingo tests.

This module provides common fixtures including:
- FakeConnector: Scriptable provisioning backend that records calls
- FakeClock: Manually advanced clock for grace window tests
- HookRecorder: Scriptable health probe and recorded notifications
"""

import asyncio
import os
import sys
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, Dict, List, Optional, Union

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from gingo.modules.api.models import ClusterConfig
from gingo.modules.connector.interfaces import ConnectorError
from gingo.modules.pods.models import Pod, PodStatus
from gingo.modules.state.state import ClusterState, PodHooks


# =============================================================================
# Connector Mocking Infrastructure
# =============================================================================

@dataclass
class ConnectorCall:
    """Record of a connector call made during testing."""
    op: str
    target: Any


class FakeConnector:
    """
    Scriptable connector.

    Usage:
        def test_remove_failure(fake_connector):
            fake_connector.fail("remove", pod_id="p1")
            ...
            assert fake_connector.was_called_with("remove", "p1")
    """

    def __init__(self):
        self.statuses: Dict[str, PodStatus] = {}
        self.existing: Dict[str, List[Pod]] = {}
        self.calls: List[ConnectorCall] = []
        self._failures: Dict[str, Dict[Optional[str], Exception]] = defaultdict(dict)
        self._delays: Dict[str, float] = {}
        self._created = 0
        self.in_flight: Dict[str, int] = defaultdict(int)
        self.max_in_flight: Dict[str, int] = defaultdict(int)

    # Scripting

    def set_status(self, pod_id: str, status: PodStatus) -> "FakeConnector":
        self.statuses[pod_id] = status
        return self

    def add_existing(self, cluster_id: str, *pods: Pod) -> "FakeConnector":
        self.existing.setdefault(cluster_id, []).extend(pods)
        return self

    def fail(self, op: str, pod_id: Optional[str] = None,
             error: Optional[Exception] = None) -> "FakeConnector":
        """Make ``op`` raise (for one pod id, or for every call when None)."""
        self._failures[op][pod_id] = error or ConnectorError(f"{op} failed")
        return self

    def heal(self, op: str) -> "FakeConnector":
        self._failures.pop(op, None)
        return self

    def delay(self, op: str, seconds: float) -> "FakeConnector":
        self._delays[op] = seconds
        return self

    # Inspection

    def calls_for(self, op: str) -> List[Any]:
        return [call.target for call in self.calls if call.op == op]

    def was_called_with(self, op: str, target: Any) -> bool:
        return target in self.calls_for(op)

    # Connector protocol

    async def _enter(self, op: str, target: Any, pod_id: Optional[str] = None) -> None:
        self.calls.append(ConnectorCall(op=op, target=target))
        self.in_flight[op] += 1
        self.max_in_flight[op] = max(self.max_in_flight[op], self.in_flight[op])
        try:
            if op in self._delays:
                await asyncio.sleep(self._delays[op])
            else:
                await asyncio.sleep(0)
        finally:
            self.in_flight[op] -= 1
        failures = self._failures.get(op, {})
        if pod_id in failures:
            raise failures[pod_id]
        if None in failures:
            raise failures[None]

    async def get_status(self, pod: Pod) -> PodStatus:
        await self._enter("get_status", pod.id, pod.id)
        return self.statuses.get(pod.id, PodStatus.GREY)

    async def list_pods(self, cluster_ids: List[str]) -> Dict[str, List[Pod]]:
        await self._enter("list_pods", list(cluster_ids))
        return {cluster_id: list(self.existing.get(cluster_id, [])) for cluster_id in cluster_ids}

    async def create(self, cluster_config: ClusterConfig) -> Pod:
        await self._enter("create", cluster_config.id)
        self._created += 1
        return Pod(
            id=f"{cluster_config.id}-new-{self._created}",
            extra={"params": dict(cluster_config.backend_create_params)},
        )

    async def remove(self, pod: Pod) -> None:
        await self._enter("remove", pod.id, pod.id)

    async def restart(self, pod: Pod) -> None:
        await self._enter("restart", pod.id, pod.id)


# =============================================================================
# Clock and Hooks
# =============================================================================

class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0) -> datetime:
        self.now = self.now + timedelta(minutes=minutes, seconds=seconds)
        return self.now


Verdict = Union[bool, Exception, str]


@dataclass
class HookRecorder:
    """
    Scriptable health probe plus recorded notifications.

    A verdict is True/False, an exception to raise, or "hang" to never answer.
    """
    default: Verdict = True
    verdicts: Dict[str, Verdict] = field(default_factory=dict)
    probed: List[str] = field(default_factory=list)
    pod_list_updates: List[List[str]] = field(default_factory=list)
    started: List[str] = field(default_factory=list)
    restarted: List[str] = field(default_factory=list)

    async def check_pod_health(self, cluster_config: ClusterConfig, pod_id: str) -> bool:
        self.probed.append(pod_id)
        verdict = self.verdicts.get(pod_id, self.default)
        if verdict == "hang":
            await asyncio.sleep(3600)
        if isinstance(verdict, Exception):
            raise verdict
        return verdict

    async def on_pod_list_update(self, cluster_config: ClusterConfig, pod_ids: List[str]) -> None:
        self.pod_list_updates.append(list(pod_ids))

    async def after_pod_start(self, cluster_config: ClusterConfig, pod_id: str) -> None:
        self.started.append(pod_id)

    async def after_pod_restart(self, cluster_config: ClusterConfig, pod_id: str) -> None:
        self.restarted.append(pod_id)

    def hooks(self) -> PodHooks:
        return PodHooks(
            check_pod_health=self.check_pod_health,
            on_pod_list_update=self.on_pod_list_update,
            after_pod_start=self.after_pod_start,
            after_pod_restart=self.after_pod_restart,
        )


# =============================================================================
# Builders
# =============================================================================

def make_config(**overrides) -> ClusterConfig:
    """Cluster config with test-friendly defaults."""
    values = {
        "id": "chat",
        "target_count": 2,
        "check_interval_minutes": 60,
        "check_timeout_seconds": 0.2,
        "healthy_threshold": 2,
        "unhealthy_threshold": 2,
        "restart_attempts_to_drop": 1,
        "start_grace_minutes": 10,
        "restart_grace_minutes": 5,
    }
    values.update(overrides)
    return ClusterConfig(**values)


def make_pods(*statuses: PodStatus, prefix: str = "p") -> List[Pod]:
    """Pods named p1, p2, ... with the given statuses."""
    return [Pod(id=f"{prefix}{i}", status=status) for i, status in enumerate(statuses, 1)]


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def fake_connector():
    return FakeConnector()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def recorder():
    return HookRecorder()


@pytest.fixture
def cluster_config():
    return make_config()


@pytest.fixture
def cluster_state(cluster_config):
    return ClusterState(config=cluster_config, needs_seed=False)
