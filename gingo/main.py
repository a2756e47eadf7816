#!/usr/bin/env python3
"""
Gingo - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Initializes the connector and the cluster registry
3. Runs the control API

All business logic is in the modules, following black box principles.
"""

import logging
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Response
from fastapi.responses import JSONResponse

from gingo import __version__
from gingo.logging_config import configure_logging, get_logging_config
from gingo.modules.api import (
    CheckResponse,
    ClusterConfig,
    ClusterConfigSet,
    ClusterSummary,
    ReconfigureResponse,
)
from gingo.modules.config import get_config, load_cluster_configs
from gingo.modules.connector import ConnectorFactory
from gingo.modules.pods import PodStatus
from gingo.modules.probe import HttpHealthProbe
from gingo.modules.registry import ReconfigurationError, Registry, UnknownClusterError
from gingo.modules.state import PodHooks

# Get configuration
config = get_config()

configure_logging(config.get("log_level"))
logger = logging.getLogger(__name__)

# Module instances (initialized at startup)
registry: Optional[Registry] = None
probe: Optional[HttpHealthProbe] = None
pod_lists: Dict[str, List[str]] = {}  # Latest usable pod ids per cluster


async def publish_pod_list(cluster_config: ClusterConfig, pod_ids: List[str]) -> None:
    """Keep the latest usable pod list for consumers polling the API."""
    pod_lists[cluster_config.id] = list(pod_ids)
    logger.info(f"cluster={cluster_config.id} usable pods: {pod_ids}")


async def log_pod_start(cluster_config: ClusterConfig, pod_id: str) -> None:
    logger.info(f"cluster={cluster_config.id} pod={pod_id} started")


async def log_pod_restart(cluster_config: ClusterConfig, pod_id: str) -> None:
    logger.info(f"cluster={cluster_config.id} pod={pod_id} restarted")


def build_hooks(health_probe: HttpHealthProbe) -> PodHooks:
    return PodHooks(
        check_pod_health=health_probe,
        on_pod_list_update=publish_pod_list,
        after_pod_start=log_pod_start,
        after_pod_restart=log_pod_restart,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle - initialize and cleanup resources.
    """
    global registry, probe

    # Startup
    logger.info("Starting Gingo controller...")

    connector = ConnectorFactory.build(config)
    probe = HttpHealthProbe()
    registry = Registry(connector, build_hooks(probe))

    cluster_configs = load_cluster_configs(config.get("clusters_file"))
    await registry.start(cluster_configs)

    logger.info(f"Gingo controller started with clusters: {registry.cluster_ids}")

    yield

    # Shutdown
    logger.info("Shutting down Gingo controller...")
    await registry.stop()
    await probe.close()
    registry = None
    probe = None
    pod_lists.clear()
    logger.info("Gingo controller shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Gingo API",
    description="Gingo - Self-healing pod autoscaler",
    version=__version__,
    lifespan=lifespan,
)


def require_registry() -> Registry:
    if not registry:
        raise HTTPException(503, "Service not initialized")
    return registry


# Cluster Endpoints


@app.get("/clusters", response_model=List[ClusterSummary])
async def list_clusters():
    """
    List every cluster with its pods and aggregate status.

    Returns:
        200: Cluster summaries
    """
    return require_registry().snapshot()


@app.get("/clusters/{cluster_id}", response_model=ClusterSummary)
async def get_cluster(cluster_id: str):
    """
    Get one cluster.

    Returns:
        200: Cluster summary
        404: Cluster not found
    """
    return require_registry().summarize(cluster_id)


@app.get("/clusters/{cluster_id}/pods")
async def get_cluster_pods(cluster_id: str):
    """
    Usable pod ids as last reported after a check cycle.

    Returns:
        200: Pod id list (empty until the first cycle completes)
        404: Cluster not found
    """
    require_registry().get_cluster(cluster_id)
    return {"cluster_id": cluster_id, "pod_ids": pod_lists.get(cluster_id, [])}


@app.put("/clusters", response_model=ReconfigureResponse)
async def reconfigure_clusters(request: ClusterConfigSet):
    """
    Hot-reload the cluster configuration.

    Live pods of clusters present before and after are kept.

    Returns:
        200: Configuration applied
        409: Reconfiguration refused (cluster stuck busy)
        422: Invalid configuration, nothing changed
    """
    cluster_ids = await require_registry().set_cluster_configs(request)
    for cluster_id in list(pod_lists):
        if cluster_id not in cluster_ids:
            del pod_lists[cluster_id]
    return ReconfigureResponse(status="applied", cluster_ids=cluster_ids)


@app.post("/clusters/{cluster_id}/check", response_model=CheckResponse)
async def check_cluster(cluster_id: str):
    """
    Run one check cycle now.

    Returns:
        200: Cycle ran or was skipped (busy/disabled)
        404: Cluster not found
        409: Reconfiguration in progress
    """
    current = require_registry()
    ran = await current.run_check(cluster_id)
    return CheckResponse(cluster_id=cluster_id, ran=ran, cluster=current.summarize(cluster_id))


# Health Check


@app.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns:
        200: Service healthy
        503: Service unhealthy
    """
    if not registry:
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "registry": "not initialized"},
        )

    return {
        "status": "healthy",
        "registry": "initialized",
        "clusters": len(registry.cluster_ids),
        "reconfiguring": registry.reconfiguring,
        "connector": config.get("connector"),
        "version": __version__,
    }


@app.get("/metrics")
async def metrics():
    """
    Prometheus-compatible metrics endpoint.

    Returns pod counts per cluster and status plus target sizes.
    """
    if not registry:
        return Response(content="", status_code=503)

    lines = [
        "# HELP gingo_pods Number of tracked pods by status",
        "# TYPE gingo_pods gauge",
    ]
    for cluster_id, state in registry.clusters.items():
        for status in PodStatus:
            count = sum(1 for pod in state.pods if pod.status == status)
            lines.append(f'gingo_pods{{cluster="{cluster_id}",status="{status.value}"}} {count}')

    lines += [
        "# HELP gingo_target_pods Desired number of usable pods",
        "# TYPE gingo_target_pods gauge",
    ]
    for cluster_id, state in registry.clusters.items():
        lines.append(f'gingo_target_pods{{cluster="{cluster_id}"}} {state.config.target_count}')

    return Response(content="\n".join(lines) + "\n", media_type="text/plain")


# Error handlers


@app.exception_handler(UnknownClusterError)
async def unknown_cluster_handler(request, exc):
    """Handle lookups of clusters that are not configured."""
    return JSONResponse(status_code=404, content={"error": f"Cluster not found: {exc.args[0]}"})


@app.exception_handler(ReconfigurationError)
async def reconfiguration_error_handler(request, exc):
    """Handle refused reconfiguration or checks during reconfiguration."""
    logger.error(f"Reconfiguration error: {exc}")
    return JSONResponse(status_code=409, content={"error": str(exc)})


def run() -> None:
    """Console entry point."""
    uvicorn.run(
        "gingo.main:app",
        host=config.get("host"),
        port=config.get("port"),
        log_level=config.get("log_level").lower(),
        reload=config.get("debug"),
        log_config=get_logging_config(config.get("log_level")),
    )


if __name__ == "__main__":
    run()
