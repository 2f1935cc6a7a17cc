"""Custom exceptions for vault-secret-sync.

This module defines the exception hierarchy used throughout the operator.
Library exceptions (kubernetes, urllib3, requests) are translated into these
at the cluster and vault boundaries.
"""


class VaultSyncError(Exception):
    """Base exception for all vault-secret-sync errors.

    All custom exceptions in this package inherit from this class,
    allowing callers to catch all operator errors with a single
    except clause if desired.
    """

    pass


class ClusterConnectionError(VaultSyncError):
    """Raised when connection to the Kubernetes cluster fails.

    This can occur when:
    - The kubeconfig is invalid or missing
    - The cluster is unreachable while listing the objects that seed a cycle
    - The service account is not allowed to list secrets
    """

    pass


class FetchError(VaultSyncError):
    """Raised when a vault item cannot be fetched.

    Attributes:
        vault_id: The vault the item was requested from.
        item_id: The requested item.

    """

    def __init__(self, message: str, *, vault_id: str = "", item_id: str = "") -> None:
        super().__init__(message)
        self.vault_id = vault_id
        self.item_id = item_id


class ItemNotFoundError(FetchError):
    """Raised when the item or its vault no longer exists."""

    pass


class UnauthorizedError(FetchError):
    """Raised when the vault rejects the access token."""

    pass


class VaultUnavailableError(FetchError):
    """Raised when the vault cannot be reached or answers unexpectedly.

    This can occur when:
    - The connection is refused or times out
    - The server answers with a 5xx status
    - The response body is not a valid item document
    """

    pass


class ItemPathError(VaultSyncError):
    """Raised when an item-path annotation is not 'vaults/<vault>/items/<item>'."""

    pass


class ConflictError(VaultSyncError):
    """Raised when a cluster write is rejected because the object changed.

    The write is retried on the next poll cycle, never in-process.
    """

    pass


class UnknownSyncError(VaultSyncError):
    """Raised for unclassified failures of a single secret or workload."""

    pass


class ConfigurationError(VaultSyncError):
    """Raised when the operator settings are invalid or incomplete."""

    pass
