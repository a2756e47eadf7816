"""
Gingo shared data models.

These models define the cluster configuration schema and the structure
of data returned by the control API.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Configuration Models


class ClusterConfig(BaseModel):
    """
    Definition of one cluster.

    Immutable: reconfiguration replaces the whole value. Accepts camelCase
    keys (``targetCount``) as well as snake_case field names.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="forbid",
    )

    id: str = Field(
        ...,
        description="Unique cluster identifier",
        min_length=1,
        max_length=100,
    )
    enabled: bool = Field(default=True, description="Skip check cycles when false")
    target_count: int = Field(..., description="Desired number of usable pods", gt=0)
    check_interval_minutes: float = Field(default=1, description="Minutes between cycles", gt=0)
    check_timeout_seconds: float = Field(default=10, description="Health probe timeout", gt=0)
    healthy_threshold: int = Field(
        default=3, description="Passed rounds in a row to become healthy", gt=0
    )
    unhealthy_threshold: int = Field(
        default=3, description="Failed rounds in a row to become unhealthy", gt=0
    )
    restart_attempts_to_drop: int = Field(
        default=1, description="Restarts allowed before an unhealthy pod is removed", gt=0
    )
    start_grace_minutes: float = Field(
        default=10, description="Failed rounds tolerated after creation", ge=0
    )
    restart_grace_minutes: float = Field(
        default=5, description="Failed rounds tolerated after a restart", ge=0
    )
    backend_create_params: Dict[str, Any] = Field(
        default_factory=dict, description="Passed to the connector verbatim on create"
    )
    health_check_url: Optional[str] = Field(
        None, description="URL template for the HTTP probe, e.g. https://{pod_id}-8000.example/health"
    )

    @field_validator("health_check_url")
    @classmethod
    def validate_health_check_url(cls, v):
        """Ensure the probe URL template can address a pod."""
        if v is None:
            return v
        if "{pod_id}" not in v:
            raise ValueError("health_check_url must contain a {pod_id} placeholder")
        if not v.startswith(("http://", "https://")):
            raise ValueError("health_check_url must be an http(s) URL")
        return v


class ClusterConfigSet(BaseModel):
    """A complete cluster configuration list, as supplied on reconfiguration."""

    clusters: List[ClusterConfig] = Field(default_factory=list)

    @field_validator("clusters")
    @classmethod
    def validate_unique_ids(cls, v):
        """Cluster ids must be unique across the list."""
        seen = set()
        for cluster in v:
            if cluster.id in seen:
                raise ValueError(f"Duplicate cluster id: {cluster.id}")
            seen.add(cluster.id)
        return v


# Response Models (API Output)


class PodSummary(BaseModel):
    """One tracked pod."""

    id: str
    status: str
    healthy_streak: int
    unhealthy_streak: int
    restart_attempts: int
    last_started: Optional[str] = None
    last_restarted: Optional[str] = None
    last_healthy_at: Optional[str] = None
    last_checked_at: Optional[str] = None


class ClusterSummary(BaseModel):
    """Current state of one cluster."""

    id: str
    enabled: bool
    phase: str
    aggregate_status: str
    target_count: int
    usable_pod_ids: List[str]
    pods: List[PodSummary]


class ReconfigureResponse(BaseModel):
    """Result of a hot reload."""

    status: str
    cluster_ids: List[str]


class CheckResponse(BaseModel):
    """Result of a manually triggered check cycle."""

    cluster_id: str
    ran: bool
    cluster: Optional[ClusterSummary] = None
