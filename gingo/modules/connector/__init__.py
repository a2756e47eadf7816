"""
Connector Module - Black Box Interface

Purpose: Talk to the provisioning backend that owns the pods
Interface: get_status(), list_pods(), create(), remove(), restart()
Hidden: Backend protocol, status mapping, naming convention

Can be replaced with any backend that honours the Connector protocol.
"""

from .dummy import DummyConnector
from .factory import ConnectorFactory
from .interfaces import Connector, ConnectorError, UnknownBackendStatusError
from .runpod import RunPodConnector

__all__ = [
    "Connector",
    "ConnectorError",
    "ConnectorFactory",
    "DummyConnector",
    "RunPodConnector",
    "UnknownBackendStatusError",
]
