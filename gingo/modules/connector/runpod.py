"""
RunPod connector.

Talks to the RunPod GraphQL API. Pods belonging to a cluster are named
``<prefix><cluster id>``; the image and disk sizes returned on creation are
kept in ``Pod.extra`` because a restart (``podEditJob``) must resend them.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from gingo.modules.api.models import ClusterConfig
from gingo.modules.pods.models import Pod, PodStatus

from .interfaces import ConnectorError, UnknownBackendStatusError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.runpod.io/graphql"

# https://graphql-spec.runpod.io/#definition-PodStatus
STATUS_MAP: Dict[str, PodStatus] = {
    "CREATED": PodStatus.STARTING,
    "RUNNING": PodStatus.GREY,
    "RESTARTING": PodStatus.RESTARTING,
    "EXITED": PodStatus.UNHEALTHY,
    "PAUSED": PodStatus.UNHEALTHY,
    "DEAD": PodStatus.UNHEALTHY,
    "TERMINATED": PodStatus.UNHEALTHY,
}

RESTART_FIELDS = ("imageName", "containerDiskInGb", "volumeInGb")

POD_QUERY = """
query Pod($input: PodFilter!) {
    pod(input: $input) {
        id
        name
        desiredStatus
        imageName
        containerDiskInGb
        volumeInGb
    }
}
"""

LIST_QUERY = """
query Pods {
    myself {
        pods {
            id
            name
            desiredStatus
            imageName
            containerDiskInGb
            volumeInGb
        }
    }
}
"""

CREATE_MUTATION = """
mutation Create($input: PodFindAndDeployOnDemandInput) {
    podFindAndDeployOnDemand(input: $input) {
        id
        imageName
        containerDiskInGb
        volumeInGb
    }
}
"""

TERMINATE_MUTATION = """
mutation Terminate($input: PodTerminateInput!) {
    podTerminate(input: $input)
}
"""

RESTART_MUTATION = """
mutation Restart($input: PodEditJobInput!) {
    podEditJob(input: $input) {
        id
    }
}
"""


def map_status(desired_status: str) -> PodStatus:
    """Translate a RunPod ``desiredStatus``; unknown values are rejected."""
    try:
        return STATUS_MAP[desired_status]
    except KeyError:
        raise UnknownBackendStatusError(desired_status) from None


def _extra(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {key: payload.get(key) for key in RESTART_FIELDS}


class RunPodConnector:
    """Connector for RunPod on-demand pods."""

    def __init__(
        self,
        api_key: str,
        api_url: str = DEFAULT_API_URL,
        name_prefix: str = "gingo-",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        """
        Initialize RunPod connector.

        Args:
            api_key: RunPod API key
            api_url: GraphQL endpoint
            name_prefix: Pod name prefix used to attribute pods to clusters
            client: Optional shared HTTP client (tests inject a mock transport)
            timeout: Per-request timeout when no client is supplied
        """
        if not api_key:
            raise ValueError("RunPod API key is required")
        self.api_key = api_key
        self.api_url = api_url
        self.name_prefix = name_prefix
        self._client = client
        self._timeout = timeout

    async def _call(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        body = {"query": query, "variables": variables or {}}
        params = {"api_key": self.api_key}
        try:
            if self._client is not None:
                response = await self._client.post(self.api_url, params=params, json=body)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self.api_url, params=params, json=body)
        except httpx.HTTPError as e:
            raise ConnectorError(f"RunPod request failed: {e}") from e

        if response.status_code != 200:
            raise ConnectorError(
                f"RunPod returned {response.status_code} - {response.reason_phrase} - {response.text}"
            )

        payload = response.json()
        if payload.get("errors"):
            messages = "; ".join(err.get("message", "unknown") for err in payload["errors"])
            raise ConnectorError(f"RunPod GraphQL error: {messages}")

        return payload.get("data") or {}

    async def get_status(self, pod: Pod) -> PodStatus:
        data = await self._call(POD_QUERY, {"input": {"podId": pod.id}})
        rp_pod = data.get("pod")
        if not rp_pod:
            raise ConnectorError(f"RunPod pod not found: {pod.id}")
        return map_status(rp_pod.get("desiredStatus"))

    async def list_pods(self, cluster_ids: List[str]) -> Dict[str, List[Pod]]:
        data = await self._call(LIST_QUERY)
        rp_pods = (data.get("myself") or {}).get("pods") or []

        result: Dict[str, List[Pod]] = {}
        for cluster_id in cluster_ids:
            name = self.name_prefix + cluster_id
            result[cluster_id] = [
                Pod(id=rp_pod["id"], status=map_status(rp_pod.get("desiredStatus")), extra=_extra(rp_pod))
                for rp_pod in rp_pods
                if rp_pod.get("name") == name
            ]
        return result

    async def create(self, cluster_config: ClusterConfig) -> Pod:
        pod_input = {"name": self.name_prefix + cluster_config.id, **cluster_config.backend_create_params}
        data = await self._call(CREATE_MUTATION, {"input": pod_input})
        deployed = data.get("podFindAndDeployOnDemand")
        if not deployed or not deployed.get("id"):
            raise ConnectorError(f"RunPod did not deploy a pod for {cluster_config.id}")

        logger.info(f"RunPod pod deployed: {deployed['id']} for {cluster_config.id}")
        return Pod(id=deployed["id"], status=PodStatus.STARTING, extra=_extra(deployed))

    async def remove(self, pod: Pod) -> None:
        await self._call(TERMINATE_MUTATION, {"input": {"podId": pod.id}})

    async def restart(self, pod: Pod) -> None:
        missing = [key for key in RESTART_FIELDS if pod.extra.get(key) is None]
        if missing:
            raise ConnectorError(f"Cannot restart {pod.id}: missing {', '.join(missing)}")
        await self._call(RESTART_MUTATION, {"input": {"podId": pod.id, **_extra(pod.extra)}})
