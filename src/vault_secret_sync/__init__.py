"""vault-secret-sync: keep Kubernetes secrets in sync with a vault.

This package periodically pulls the vault items referenced by managed
secrets, rewrites the secrets whose item version changed, and rolls the
Deployments that consume them.

Example usage:
    from vault_secret_sync import Cluster, SecretSynchronizer, VaultClient

    cluster = Cluster(select_context=False)
    with VaultClient("http://vault-connect:8080", token) as vault:
        report = SecretSynchronizer(cluster, vault).synchronize()
"""

__version__ = "0.1.0"

from vault_secret_sync.cli import cli
from vault_secret_sync.cluster import Cluster
from vault_secret_sync.config import Settings
from vault_secret_sync.core.driver import PollDriver
from vault_secret_sync.core.synchronizer import SecretSynchronizer
from vault_secret_sync.exceptions import (
    ClusterConnectionError,
    ConfigurationError,
    ConflictError,
    FetchError,
    ItemNotFoundError,
    ItemPathError,
    UnauthorizedError,
    UnknownSyncError,
    VaultSyncError,
    VaultUnavailableError,
)
from vault_secret_sync.vault import VaultClient

__all__ = [
    # Version
    "__version__",
    # Main CLI
    "cli",
    # Classes
    "Cluster",
    "PollDriver",
    "SecretSynchronizer",
    "Settings",
    "VaultClient",
    # Exceptions
    "VaultSyncError",
    "ClusterConnectionError",
    "ConfigurationError",
    "ConflictError",
    "FetchError",
    "ItemNotFoundError",
    "ItemPathError",
    "UnauthorizedError",
    "UnknownSyncError",
    "VaultUnavailableError",
]
