"""Secret synchronization cycle.

This module provides the SecretSynchronizer class. One call to
``synchronize`` lists every managed secret, brings each one up to date
with its vault item, and restarts the workloads consuming the secrets
that were rewritten.

Each secret is an independent unit of work: a malformed item path, a
missing item or a write conflict is reported for that secret and the
cycle moves on. Only the listing that seeds the cycle is fatal.
"""

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from threading import Event
from typing import Any

from icecream import ic

from vault_secret_sync import console
from vault_secret_sync.annotations import ITEM_PATH_ANNOTATION, VERSION_ANNOTATION
from vault_secret_sync.exceptions import (
    ClusterConnectionError,
    ConflictError,
    FetchError,
    ItemNotFoundError,
    ItemPathError,
    UnknownSyncError,
    VaultSyncError,
)
from vault_secret_sync.models import SecretResult, SyncReport, SyncStatus, WorkloadRef
from vault_secret_sync.restarts.applying import restart_workload
from vault_secret_sync.restarts.resolving import resolve_restart_targets, workload_ref
from vault_secret_sync.secrets.building import build_secret, encode_secret_data
from vault_secret_sync.secrets.parsing import parse_item_path, restart_enabled


class SecretSynchronizer:
    """Keeps managed secrets in line with their vault items.

    The synchronizer holds no state between cycles; everything it needs
    is read back from the cluster on every call.

    Attributes:
        cluster: Cluster used for all Kubernetes reads and writes.
        fetcher: Object with a ``fetch(vault_id, item_id)`` method.
        namespaces: Namespaces to scan, or None for the whole cluster.
        auto_restart: Default for restart propagation when a secret
            does not override it.
        workers: Number of secrets processed in parallel.

    """

    def __init__(
        self,
        cluster: Any,
        fetcher: Any,
        *,
        namespaces: list[str] | None = None,
        auto_restart: bool = True,
        workers: int = 4,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the synchronizer.

        Args:
            cluster: Cluster used for all Kubernetes reads and writes.
            fetcher: Vault item fetcher.
            namespaces: Namespaces to scan, or None for the whole cluster.
            auto_restart: Default for restart propagation.
            workers: Number of secrets processed in parallel.
            clock: Source of restart trigger times, defaults to UTC now.

        """
        self.cluster = cluster
        self.fetcher = fetcher
        self.namespaces: list[str] | None = namespaces
        self.auto_restart: bool = auto_restart
        self.workers: int = max(1, workers)
        self._clock = clock

    def synchronize(self, stop_event: Event | None = None) -> SyncReport:
        """Run one synchronization cycle.

        Secrets not yet started when ``stop_event`` is set are reported as
        cancelled. Restarts for secrets already rewritten are still
        propagated, since the next cycle will see them as up to date.
        An updated secret whose consumers could not all be restarted gets
        its previous version annotation back, so the next cycle rewrites
        it and retries the restarts.

        Args:
            stop_event: Optional event signalling a shutdown request.

        Returns:
            The report of what the cycle did.

        Raises:
            ClusterConnectionError: If the managed secrets cannot be listed.

        """
        secrets = self.cluster.list_managed_secrets(self.namespaces)
        console.action(f"Synchronizing {console.highlight(str(len(secrets)))} managed secret(s)")
        previous_versions = {
            (secret.metadata.namespace, secret.metadata.name): (secret.metadata.annotations or {}).get(
                VERSION_ANNOTATION
            )
            for secret in secrets
        }

        report = SyncReport()
        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="secret-sync") as executor:
            futures = [executor.submit(self._sync_secret, secret, stop_event) for secret in secrets]
            report.results.extend(future.result() for future in futures)

        by_key = {(secret.metadata.namespace, secret.metadata.name): secret for secret in secrets}
        updated = [by_key[(result.namespace, result.name)] for result in report.updated]
        if updated:
            pending = self._propagate_restarts(updated, report)
            for namespace, name in sorted(pending):
                self._requeue(namespace, name, previous_versions[(namespace, name)], report)

        console.success(
            f"Sync cycle finished: {len(report.updated)} updated, "
            f"{len(report.restarted)} deployment(s) restarted"
        )
        return report

    def _sync_secret(self, secret: Any, stop_event: Event | None) -> SecretResult:
        """Bring one secret up to date, containing any failure to this secret."""
        namespace, name = secret.metadata.namespace, secret.metadata.name
        qualified = console.highlight(f"{namespace}/{name}")

        if stop_event is not None and stop_event.is_set():
            return SecretResult(namespace, name, SyncStatus.CANCELLED)

        try:
            status = self._update_if_stale(secret)
        except ItemPathError as e:
            console.error(f"Skipping secret {qualified}: {e}")
            return SecretResult(namespace, name, SyncStatus.FAILED, e)
        except ItemNotFoundError as e:
            console.warning(f"Item for secret {qualified} no longer exists: {e}")
            return SecretResult(namespace, name, SyncStatus.SKIPPED, e)
        except FetchError as e:
            console.error(f"Failed to fetch item for secret {qualified}: {e}")
            return SecretResult(namespace, name, SyncStatus.SKIPPED, e)
        except ConflictError as e:
            console.warning(f"Secret {qualified} not updated: {e}")
            return SecretResult(namespace, name, SyncStatus.FAILED, e)
        except VaultSyncError as e:
            console.error(f"Failed to update secret {qualified}: {e}")
            return SecretResult(namespace, name, SyncStatus.FAILED, e)
        except Exception as e:
            wrapped = UnknownSyncError(f"Unexpected error for secret {namespace}/{name}: {e!r}")
            wrapped.__cause__ = e
            console.error(str(wrapped))
            return SecretResult(namespace, name, SyncStatus.FAILED, wrapped)

        return SecretResult(namespace, name, status)

    def _update_if_stale(self, secret: Any) -> SyncStatus:
        """Rewrite the secret when its version annotation differs from the item's."""
        annotations: dict[str, str] = dict(secret.metadata.annotations or {})
        path = parse_item_path(annotations.get(ITEM_PATH_ANNOTATION))
        item = self.fetcher.fetch(path.vault_id, path.item_id)

        current_version = annotations.get(VERSION_ANNOTATION)
        ic(secret.metadata.name, str(path), current_version, item.version)
        # Any mismatch is stale, including a lower vault version after a rollback
        if current_version == str(item.version):
            return SyncStatus.UNCHANGED

        data, built = build_secret(item)
        annotations[VERSION_ANNOTATION] = built[VERSION_ANNOTATION]
        secret.metadata.annotations = annotations
        secret.data = encode_secret_data(data)
        self.cluster.replace_secret(secret)

        console.success(
            f"Updated secret {console.highlight(f'{secret.metadata.namespace}/{secret.metadata.name}')} "
            f"to version {item.version}"
        )
        return SyncStatus.UPDATED

    def _propagate_restarts(self, updated: list[Any], report: SyncReport) -> set[tuple[str, str]]:
        """Restart every workload consuming an updated secret, once per cycle.

        Returns:
            (namespace, name) of the updated secrets whose consumers could
            not all be restarted.

        """
        targets: dict[WorkloadRef, Any] = {}
        sources: dict[WorkloadRef, list[tuple[str, str]]] = {}
        pending: set[tuple[str, str]] = set()
        workloads_by_namespace: dict[str, list[Any] | None] = {}

        for secret in updated:
            namespace, name = secret.metadata.namespace, secret.metadata.name
            secret_default = restart_enabled(secret.metadata.annotations, self.auto_restart, owner=f"{namespace}/{name}")

            if namespace not in workloads_by_namespace:
                try:
                    workloads_by_namespace[namespace] = self.cluster.list_workloads(namespace)
                except ClusterConnectionError as e:
                    console.error(f"Cannot resolve consumers in namespace {console.highlight(namespace)}: {e}")
                    workloads_by_namespace[namespace] = None

            workloads = workloads_by_namespace[namespace]
            if workloads is None:
                pending.add((namespace, name))
                continue

            for workload in resolve_restart_targets(name, workloads):
                ref = workload_ref(workload)
                if restart_enabled(workload.metadata.annotations, secret_default, owner=str(ref)):
                    targets.setdefault(ref, workload)
                    sources.setdefault(ref, []).append((namespace, name))
                else:
                    console.step(f"Restart of {console.highlight(str(ref))} disabled by annotation")

        ic([str(ref) for ref in targets])
        for ref, workload in targets.items():
            try:
                restart_workload(self.cluster, workload, now=self._clock() if self._clock else None)
            except VaultSyncError as e:
                console.error(f"Failed to restart deployment {console.highlight(str(ref))}: {e}")
                report.restart_failures[ref] = e
            except Exception as e:
                wrapped = UnknownSyncError(f"Unexpected error restarting deployment {ref}: {e!r}")
                wrapped.__cause__ = e
                console.error(str(wrapped))
                report.restart_failures[ref] = wrapped
            else:
                report.restarted.append(ref)
                continue
            pending.update(sources[ref])

        return pending

    def _requeue(self, namespace: str, name: str, previous_version: str | None, report: SyncReport) -> None:
        """Put back the version annotation a secret had before this cycle.

        The next cycle then sees the secret as stale again, rewrites it and
        retries the restarts that failed in this one.
        """
        qualified = console.highlight(f"{namespace}/{name}")
        try:
            secret = self.cluster.get_secret(name, namespace)
            if secret is None:
                return
            annotations = dict(secret.metadata.annotations or {})
            if previous_version is None:
                annotations.pop(VERSION_ANNOTATION, None)
            else:
                annotations[VERSION_ANNOTATION] = previous_version
            secret.metadata.annotations = annotations
            self.cluster.replace_secret(secret)
        except Exception as e:
            console.error(f"Restarts for secret {qualified} will not be retried: {e}")
            return

        console.warning(f"Secret {qualified} requeued, its consumers are restarted on the next cycle")
        report.requeued.append((namespace, name))
