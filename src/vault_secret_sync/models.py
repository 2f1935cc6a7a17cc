"""Data models for vault-secret-sync.

This module provides type-safe data structures for vault items, item
locators, workload identities and per-cycle sync results.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple


@dataclass(frozen=True, slots=True)
class ItemField:
    """A single labelled value of a vault item.

    Attributes:
        label: The field label, used as the secret data key.
        value: The field value.

    """

    label: str
    value: str


@dataclass(frozen=True, slots=True)
class Item:
    """The current state of a vault item.

    Attributes:
        id: The item ID.
        vault_id: The ID of the vault holding the item.
        version: Version counter, bumped by the vault on every change.
        fields: Ordered item fields. Labels may repeat.

    """

    id: str
    vault_id: str
    version: int
    fields: tuple[ItemField, ...] = ()

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Item":
        """Build an Item from a vault API response document.

        Accepts both the nested ``{"vault": {"id": ...}}`` form and a flat
        ``vaultId`` key.

        Args:
            payload: The decoded JSON document.

        Returns:
            The parsed Item.

        Raises:
            ValueError: If required keys are missing or have the wrong type.

        """
        if not isinstance(payload, dict):
            raise ValueError("Item document must be a JSON object")

        vault = payload.get("vault")
        vault_id = vault.get("id") if isinstance(vault, dict) else payload.get("vaultId", payload.get("vaultID"))
        item_id = payload.get("id")
        if not item_id or not vault_id:
            raise ValueError("Item document is missing 'id' or vault id")

        try:
            version = int(payload.get("version"))
        except (TypeError, ValueError) as err:
            raise ValueError(f"Item {item_id} has an invalid version: {payload.get('version')!r}") from err

        fields = tuple(
            ItemField(label=str(raw.get("label") or ""), value="" if raw.get("value") is None else str(raw["value"]))
            for raw in payload.get("fields") or []
            if isinstance(raw, dict)
        )
        return cls(id=str(item_id), vault_id=str(vault_id), version=version, fields=fields)

    @property
    def path(self) -> "ItemPath":
        """The item-path locator of this item."""
        return ItemPath(vault_id=self.vault_id, item_id=self.id)


class ItemPath(NamedTuple):
    """Locator of a vault item, ``vaults/<vault_id>/items/<item_id>``.

    Attributes:
        vault_id: The vault ID.
        item_id: The item ID.

    """

    vault_id: str
    item_id: str

    def __str__(self) -> str:
        return f"vaults/{self.vault_id}/items/{self.item_id}"


class WorkloadRef(NamedTuple):
    """Identity of a workload, used to deduplicate restarts."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class SyncStatus(str, Enum):
    """Outcome of one managed secret in a sync cycle.

    Inherits from str so outcomes print and compare as plain strings.
    """

    UPDATED = "updated"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class SecretResult:
    """Outcome of one managed secret.

    Attributes:
        namespace: The secret namespace.
        name: The secret name.
        status: What happened to the secret.
        error: The error that caused a skip or failure, if any.

    """

    namespace: str
    name: str
    status: SyncStatus
    error: Exception | None = None


@dataclass(slots=True)
class SyncReport:
    """Everything a single sync cycle did.

    Attributes:
        results: Per-secret outcomes, in listing order.
        restarted: Workloads whose restart trigger was written.
        restart_failures: Workloads whose restart failed, with the error.
        requeued: (namespace, name) of updated secrets marked stale again
            so the next cycle retries their restarts.

    """

    results: list[SecretResult] = field(default_factory=list)
    restarted: list[WorkloadRef] = field(default_factory=list)
    restart_failures: dict[WorkloadRef, Exception] = field(default_factory=dict)
    requeued: list[tuple[str, str]] = field(default_factory=list)

    def with_status(self, status: SyncStatus) -> list[SecretResult]:
        """Return the results that ended with the given status."""
        return [result for result in self.results if result.status is status]

    @property
    def updated(self) -> list[SecretResult]:
        """Secrets rewritten in this cycle."""
        return self.with_status(SyncStatus.UPDATED)

    def summary(self) -> dict[str, str]:
        """Return label -> count pairs for the summary panel."""
        return {
            "Secrets examined": str(len(self.results)),
            "Updated": str(len(self.updated)),
            "Unchanged": str(len(self.with_status(SyncStatus.UNCHANGED))),
            "Skipped": str(len(self.with_status(SyncStatus.SKIPPED))),
            "Failed": str(len(self.with_status(SyncStatus.FAILED))),
            "Cancelled": str(len(self.with_status(SyncStatus.CANCELLED))),
            "Workloads restarted": str(len(self.restarted)),
            "Restart failures": str(len(self.restart_failures)),
            "Requeued for restart": str(len(self.requeued)),
        }
