"""
Probe Module - Black Box Interface

Purpose: Default application health probe
Interface: HttpHealthProbe(cluster_config=, pod_id=) -> bool
Hidden: HTTP client lifecycle, URL templating

Applications with their own notion of health supply their own probe.
"""

from .http_probe import HttpHealthProbe

__all__ = ["HttpHealthProbe"]
