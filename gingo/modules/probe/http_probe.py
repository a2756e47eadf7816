"""
HTTP health probe.

Default ``check_pod_health`` hook for the service entry point: GETs the
cluster's ``health_check_url`` (with ``{pod_id}`` filled in) and passes on
any 2xx response. The controller bounds the call with the cluster's
``check_timeout_seconds``.
"""

import logging
from typing import Optional

import httpx

from gingo.modules.api.models import ClusterConfig

logger = logging.getLogger(__name__)


class HttpHealthProbe:
    """Callable health probe backed by a shared ``httpx.AsyncClient``."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True)
        return self._client

    async def __call__(self, cluster_config: ClusterConfig, pod_id: str) -> bool:
        if not cluster_config.health_check_url:
            logger.debug(f"cluster={cluster_config.id} has no health_check_url; probe fails")
            return False

        url = cluster_config.health_check_url.format(pod_id=pod_id)
        try:
            response = await self._get_client().get(
                url, timeout=cluster_config.check_timeout_seconds
            )
        except httpx.HTTPError as e:
            logger.debug(f"cluster={cluster_config.id} pod={pod_id} probe error: {e}")
            return False

        return response.is_success

    async def close(self) -> None:
        """Close the HTTP client if this probe created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
