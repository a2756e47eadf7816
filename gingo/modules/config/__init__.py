"""
Config Module - Black Box Interface

Purpose: Application configuration management
Interface: get_config(), load_cluster_configs()
Hidden: Config sources, validation logic, environment parsing

Process settings come from the environment; cluster definitions come from
a YAML file and can be replaced at runtime through the API.
"""

import os
from typing import Any, Dict, Optional


# Environment variable, default and description for every setting.
# Settings with a None default are optional and may stay unset.
SETTINGS = {
    "host": ("API_HOST", "0.0.0.0", "API server bind address"),
    "port": ("API_PORT", "8080", "API server port"),
    "log_level": ("LOG_LEVEL", "INFO", "Logging level (DEBUG, INFO, WARNING, ERROR)"),
    "debug": ("DEBUG", "false", "Reload the server on code changes"),
    "connector": ("GINGO_CONNECTOR", "dummy", "Provisioning backend (dummy, runpod)"),
    "clusters_file": ("GINGO_CLUSTERS_FILE", "clusters.yaml", "Path to the YAML cluster definitions"),
    "pod_name_prefix": ("GINGO_POD_PREFIX", "gingo-", "Pod name prefix that attributes pods to clusters"),
    "runpod_api_key": ("RUNPOD_API_KEY", None, "RunPod API key (runpod connector only)"),
    "runpod_api_url": ("RUNPOD_API_URL", None, "RunPod GraphQL endpoint override"),
}


class ConfigModule:
    """Configuration management module."""

    def __init__(self, environ: Optional[Dict[str, str]] = None):
        """
        Load settings from the environment.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Raises:
            ValueError: A setting with a default was set to an empty value
        """
        self._config = self._load(os.environ if environ is None else environ)

    @staticmethod
    def _load(environ) -> Dict[str, Any]:
        config: Dict[str, Any] = {}
        empty = []
        for key, (var, default, _) in SETTINGS.items():
            value = environ.get(var, default)
            if default is not None and value in (None, ""):
                empty.append(var)
            config[key] = value

        if empty:
            raise ValueError(
                f"Empty configuration values: {', '.join(empty)}. "
                f"Unset them to use the defaults or provide a value."
            )

        config["port"] = int(config["port"])
        config["debug"] = str(config["debug"]).lower() == "true"
        config["connector"] = config["connector"].lower()
        return config

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self._config.get(key, default)


# Singleton instance
_instance = None


def get_config() -> ConfigModule:
    """Get the configuration module singleton."""
    global _instance
    if _instance is None:
        _instance = ConfigModule()
    return _instance


# Public cluster definitions loader interface
from .clusters import load_cluster_configs

__all__ = ["get_config", "ConfigModule", "SETTINGS", "load_cluster_configs"]
