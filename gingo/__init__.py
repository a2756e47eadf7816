"""
Gingo - Self-Healing Pod Autoscaler

Keeps named pools ("clusters") of remotely provisioned pods at a target
size of usable pods by probing health, classifying pods and issuing
add/remove/restart actions against a pluggable provisioning backend.

Architecture:
- Each module is self-contained with clear interfaces
- Backends are replaceable behind the connector port
- Cluster state is owned by the registry and handed to one controller
- All communication through defined interfaces

Modules:
- pods: Pod model and per-pod health state machine
- connector: Provisioning backend port and implementations
- policy: Cluster aggregate status and remediation selection
- ops: Error-isolated add/remove/restart execution
- controller: Timer-driven check-and-remediate cycle per cluster
- registry: Cluster set ownership and hot reconfiguration
- probe: Default HTTP health probe
- api: Configuration schema and API models
- config: Process configuration
"""

__version__ = "1.0.0"
