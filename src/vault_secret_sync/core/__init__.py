"""Core subpackage.

This package contains the sync cycle, the workload-driven secret
provisioning and the polling driver that runs them.
"""

from vault_secret_sync.core.driver import PollDriver
from vault_secret_sync.core.provisioning import provision_workload_secrets
from vault_secret_sync.core.synchronizer import SecretSynchronizer

__all__ = [
    "PollDriver",
    "SecretSynchronizer",
    "provision_workload_secrets",
]
