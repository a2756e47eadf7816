"""Connector interfaces following Black Box Design principles."""
from typing import Dict, List, Protocol

from gingo.modules.api.models import ClusterConfig
from gingo.modules.pods.models import Pod, PodStatus


class ConnectorError(Exception):
    """A provisioning backend call failed."""


class UnknownBackendStatusError(ConnectorError):
    """The backend reported a status with no internal mapping."""

    def __init__(self, backend_status: str):
        super().__init__(f"Unmapped backend status: {backend_status!r}")
        self.backend_status = backend_status


class Connector(Protocol):
    """
    Protocol for provisioning backends - allows swappable implementations.

    Every method may raise; none returns a partial success.
    """

    async def get_status(self, pod: Pod) -> PodStatus:
        """
        Query the backend's view of a pod.

        Args:
            pod: Tracked pod

        Returns:
            One of the five internal statuses
        """
        ...

    async def list_pods(self, cluster_ids: List[str]) -> Dict[str, List[Pod]]:
        """
        List existing pods for the given clusters.

        Pods are matched to clusters by the backend's naming convention.

        Returns:
            Mapping of cluster id to its pods (every requested id present)
        """
        ...

    async def create(self, cluster_config: ClusterConfig) -> Pod:
        """
        Create a pod for a cluster.

        Returns:
            New pod carrying the backend id and any ``extra`` needed to restart it
        """
        ...

    async def remove(self, pod: Pod) -> None:
        """Terminate a pod."""
        ...

    async def restart(self, pod: Pod) -> None:
        """Restart a pod using its stored ``extra``."""
        ...
