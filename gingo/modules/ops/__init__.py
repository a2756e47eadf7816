"""
Ops Module - Black Box Interface

Purpose: Execute provisioning actions for one cluster
Interface: add_pod(), remove_pod(), restart_pod(), scale_up(), scale_down(), bulk_op()
Hidden: Concurrency fan-out, per-action error isolation, hook dispatch

A failed action leaves the pod list untouched so the next cycle retries.
"""

from .ops import BulkOp, OpsExecutor

__all__ = ["BulkOp", "OpsExecutor"]
