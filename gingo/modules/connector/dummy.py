"""
In-memory connector for local runs and demos.

Pods live in a process-local list and are attributed to clusters by name
(``<prefix><cluster id>``), the same convention real backends use.
"""

import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Optional

from gingo.modules.api.models import ClusterConfig
from gingo.modules.pods.models import Pod, PodStatus

from .interfaces import ConnectorError

logger = logging.getLogger(__name__)

ADJECTIVES = [
    "amber", "brave", "calm", "dusty", "eager", "fuzzy", "gentle", "hollow",
    "icy", "jolly", "keen", "lucky", "misty", "noble", "odd", "proud",
    "quiet", "rapid", "shy", "tidy", "upbeat", "vivid", "witty", "young",
]

ANIMALS = [
    "badger", "crane", "dingo", "egret", "ferret", "gecko", "heron", "ibis",
    "jackal", "koala", "lemur", "marten", "newt", "otter", "panda", "quail",
    "raven", "stoat", "tapir", "urchin", "vole", "walrus", "yak", "zebra",
]


def generate_pod_id(rng: Optional[random.Random] = None) -> str:
    """Readable random pod id like ``misty-otter-4821``."""
    rng = rng or random
    return f"{rng.choice(ADJECTIVES)}-{rng.choice(ANIMALS)}-{rng.randint(1000, 9999)}"


@dataclass
class DummyPod:
    """Backend-side record of a pod."""

    id: str
    name: str
    status: PodStatus = PodStatus.GREY


class DummyConnector:
    """Connector backed by an in-memory pod table."""

    def __init__(self, name_prefix: str = "gingo-", seed: Optional[int] = None):
        self.name_prefix = name_prefix
        self.pods: Dict[str, DummyPod] = {}
        self._rng = random.Random(seed)

    def add_existing(self, cluster_id: str, pod_id: Optional[str] = None,
                     status: PodStatus = PodStatus.GREY) -> str:
        """Register a pod as if it had been created before this process started."""
        pod_id = pod_id or generate_pod_id(self._rng)
        self.pods[pod_id] = DummyPod(id=pod_id, name=self.name_prefix + cluster_id, status=status)
        return pod_id

    def set_status(self, pod_id: str, status: PodStatus) -> None:
        """Change what the backend reports for a pod."""
        self._get(pod_id).status = status

    def _get(self, pod_id: str) -> DummyPod:
        record = self.pods.get(pod_id)
        if record is None:
            raise ConnectorError(f"Pod not found: {pod_id}")
        return record

    async def get_status(self, pod: Pod) -> PodStatus:
        return self._get(pod.id).status

    async def list_pods(self, cluster_ids: List[str]) -> Dict[str, List[Pod]]:
        result: Dict[str, List[Pod]] = {}
        for cluster_id in cluster_ids:
            name = self.name_prefix + cluster_id
            result[cluster_id] = [
                Pod(id=record.id, status=record.status)
                for record in self.pods.values()
                if record.name == name
            ]
        return result

    async def create(self, cluster_config: ClusterConfig) -> Pod:
        pod_id = generate_pod_id(self._rng)
        while pod_id in self.pods:
            pod_id = generate_pod_id(self._rng)
        self.pods[pod_id] = DummyPod(id=pod_id, name=self.name_prefix + cluster_config.id)
        logger.debug(f"Dummy pod created: {pod_id} for {cluster_config.id}")
        return Pod(id=pod_id, status=PodStatus.STARTING, extra=dict(cluster_config.backend_create_params))

    async def remove(self, pod: Pod) -> None:
        self._get(pod.id)
        del self.pods[pod.id]

    async def restart(self, pod: Pod) -> None:
        self._get(pod.id).status = PodStatus.GREY
