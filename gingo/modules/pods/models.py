"""
Pod data model.

A pod is one remotely provisioned compute unit tracked by a cluster. Pods
are owned by exactly one cluster and mutated only by the controller and
ops executor operating on that cluster.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class PodStatus(str, Enum):
    """Classification of a single pod."""

    STARTING = "starting"
    RESTARTING = "restarting"
    GREY = "grey"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


@dataclass
class Pod:
    """
    A tracked pod and its health bookkeeping.

    Attributes:
        id: Identifier assigned by the provisioning backend
        status: Current classification
        healthy_streak: Consecutive passed probe rounds
        unhealthy_streak: Consecutive failed probe rounds
        restart_attempts: Restarts since the pod was last healthy
        last_started: When the pod was created by us
        last_restarted: When the pod was last restarted by us
        last_healthy_at: Last passed probe round
        last_checked_at: Last probe round of any outcome
        extra: Backend metadata passed back verbatim on restart
    """

    id: str
    status: PodStatus = PodStatus.GREY
    healthy_streak: int = 0
    unhealthy_streak: int = 0
    restart_attempts: int = 0
    last_started: Optional[datetime] = None
    last_restarted: Optional[datetime] = None
    last_healthy_at: Optional[datetime] = None
    last_checked_at: Optional[datetime] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "id": self.id,
            "status": self.status.value,
            "healthy_streak": self.healthy_streak,
            "unhealthy_streak": self.unhealthy_streak,
            "restart_attempts": self.restart_attempts,
            "last_started": _iso(self.last_started),
            "last_restarted": _iso(self.last_restarted),
            "last_healthy_at": _iso(self.last_healthy_at),
            "last_checked_at": _iso(self.last_checked_at),
        }


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None
