"""
Connector Factory following Black Box Design principles.

This factory:
- Selects the provisioning backend based on configuration
- Wires backend settings into it
- Returns only the Connector interface
"""

import logging

from .dummy import DummyConnector
from .interfaces import Connector
from .runpod import DEFAULT_API_URL, RunPodConnector

logger = logging.getLogger(__name__)

SUPPORTED_CONNECTORS = ("dummy", "runpod")


class ConnectorFactory:
    """Composition root for provisioning backends."""

    @staticmethod
    def build(config) -> Connector:
        """
        Build the configured connector.

        Args:
            config: ConfigModule (or anything with ``get(key, default)``)

        Returns:
            Connector implementation

        Raises:
            ValueError: Unknown connector name or missing backend credentials
        """
        name = (config.get("connector") or "dummy").lower()
        prefix = config.get("pod_name_prefix", "gingo-")

        if name == "dummy":
            logger.info("Using in-memory dummy connector")
            return DummyConnector(name_prefix=prefix)

        if name == "runpod":
            api_key = config.get("runpod_api_key")
            if not api_key:
                raise ValueError(
                    "RUNPOD_API_KEY environment variable is required for the runpod connector"
                )
            logger.info("Using RunPod connector")
            return RunPodConnector(
                api_key=api_key,
                api_url=config.get("runpod_api_url") or DEFAULT_API_URL,
                name_prefix=prefix,
            )

        raise ValueError(
            f"Unknown connector: {name}. Supported: {', '.join(SUPPORTED_CONNECTORS)}"
        )
