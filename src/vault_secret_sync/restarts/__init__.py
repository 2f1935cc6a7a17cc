"""Restart propagation subpackage.

This package contains the reference checks that find the consumers of a
secret and the trigger that rolls their pods.
"""

from vault_secret_sync.restarts.applying import restart_workload
from vault_secret_sync.restarts.resolving import (
    matching_mechanisms,
    references_by_annotation,
    references_by_env,
    references_by_env_from,
    references_by_volume,
    resolve_restart_targets,
    workload_ref,
)

__all__ = [
    # resolving
    "references_by_annotation",
    "references_by_env",
    "references_by_env_from",
    "references_by_volume",
    "matching_mechanisms",
    "resolve_restart_targets",
    "workload_ref",
    # applying
    "restart_workload",
]
