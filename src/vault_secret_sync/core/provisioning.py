"""Secret provisioning from workload annotations.

A Deployment carrying both the item-path and item-name annotations, on
its own metadata or on its pod template, declares that it is backed by a
managed secret. This module creates such secrets when they do not exist
yet. Creating a secret never restarts anything; only later updates do.
"""

from typing import Any

from icecream import ic
from kubernetes import client

from vault_secret_sync import console
from vault_secret_sync.annotations import ITEM_NAME_ANNOTATION, ITEM_PATH_ANNOTATION
from vault_secret_sync.exceptions import UnknownSyncError, VaultSyncError
from vault_secret_sync.restarts.resolving import workload_ref
from vault_secret_sync.secrets.building import new_managed_secret
from vault_secret_sync.secrets.parsing import parse_item_path


def _declared_secret(workload: Any) -> tuple[str, str] | None:
    """Return (item_path, secret_name) declared by a workload, if any."""
    template = workload.spec.template if workload.spec else None
    annotations: dict[str, str] = {}
    if template is not None and template.metadata is not None:
        annotations.update(template.metadata.annotations or {})
    annotations.update(workload.metadata.annotations or {})

    item_path = annotations.get(ITEM_PATH_ANNOTATION)
    secret_name = annotations.get(ITEM_NAME_ANNOTATION)
    if not item_path or not secret_name:
        return None
    return item_path, secret_name


def _owner_reference(workload: Any) -> client.V1OwnerReference | None:
    if not workload.metadata.uid:
        return None
    return client.V1OwnerReference(
        api_version="apps/v1",
        kind="Deployment",
        name=workload.metadata.name,
        uid=workload.metadata.uid,
    )


def provision_workload_secrets(cluster: Any, fetcher: Any, namespaces: list[str] | None) -> list[client.V1Secret]:
    """Create missing secrets declared by workload annotations.

    Args:
        cluster: Cluster used for all Kubernetes reads and writes.
        fetcher: Vault item fetcher.
        namespaces: Namespaces to scan, or None for the whole cluster.

    Returns:
        The secrets created.

    Raises:
        ClusterConnectionError: If the Deployments cannot be listed.

    """
    if namespaces is None:
        workloads = cluster.list_workloads(None)
    else:
        workloads = [workload for namespace in namespaces for workload in cluster.list_workloads(namespace)]

    created: list[client.V1Secret] = []
    for workload in workloads:
        declared = _declared_secret(workload)
        if declared is None:
            continue

        item_path, secret_name = declared
        namespace = workload.metadata.namespace
        ref = workload_ref(workload)
        ic(str(ref), item_path, secret_name)

        try:
            if cluster.get_secret(secret_name, namespace) is not None:
                continue
            path = parse_item_path(item_path)
            item = fetcher.fetch(path.vault_id, path.item_id)
            secret = cluster.create_secret(
                new_managed_secret(secret_name, namespace, item, owner=_owner_reference(workload))
            )
        except VaultSyncError as e:
            console.error(f"Failed to provision secret {secret_name!r} for deployment {console.highlight(str(ref))}: {e}")
            continue
        except Exception as e:
            wrapped = UnknownSyncError(f"Unexpected error provisioning secret {namespace}/{secret_name}: {e!r}")
            wrapped.__cause__ = e
            console.error(str(wrapped))
            continue

        console.success(f"Created secret {console.highlight(f'{namespace}/{secret_name}')} for deployment {ref}")
        created.append(secret)

    return created
