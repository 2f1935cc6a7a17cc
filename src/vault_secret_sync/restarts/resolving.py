"""Restart target resolution.

This module decides which workloads consume a secret. A workload is a
consumer if any of four independent checks matches:

- its metadata or pod template carries the item-name annotation for the secret
- a container environment entry reads a key of the secret
- a container pulls the whole secret through envFrom
- a pod volume is backed by the secret

Every check is evaluated for every workload so debug output shows all
the ways a workload is bound, even though one match is enough.
"""

from collections.abc import Callable, Iterable, Iterator
from typing import Any

from icecream import ic

from vault_secret_sync.annotations import ITEM_NAME_ANNOTATION
from vault_secret_sync.models import WorkloadRef


def workload_ref(workload: Any) -> WorkloadRef:
    """Return the identity of a workload."""
    return WorkloadRef(namespace=workload.metadata.namespace, name=workload.metadata.name)


def _pod_spec(workload: Any) -> Any:
    template = workload.spec.template if workload.spec else None
    return template.spec if template else None


def _containers(workload: Any) -> Iterator[Any]:
    pod_spec = _pod_spec(workload)
    if pod_spec is None:
        return
    yield from pod_spec.init_containers or []
    yield from pod_spec.containers or []


def references_by_annotation(workload: Any, secret_name: str) -> bool:
    """Check the item-name annotation on the workload or its pod template."""
    template = workload.spec.template if workload.spec else None
    template_annotations = (template.metadata.annotations if template and template.metadata else None) or {}
    workload_annotations = workload.metadata.annotations or {}
    return secret_name in (
        template_annotations.get(ITEM_NAME_ANNOTATION),
        workload_annotations.get(ITEM_NAME_ANNOTATION),
    )


def references_by_env(workload: Any, secret_name: str) -> bool:
    """Check env[].valueFrom.secretKeyRef of every container."""
    found = False
    for container in _containers(workload):
        for env in container.env or []:
            key_ref = env.value_from.secret_key_ref if env.value_from else None
            if key_ref is not None and key_ref.name == secret_name:
                found = True
    return found


def references_by_env_from(workload: Any, secret_name: str) -> bool:
    """Check envFrom[].secretRef of every container."""
    found = False
    for container in _containers(workload):
        for env_from in container.env_from or []:
            if env_from.secret_ref is not None and env_from.secret_ref.name == secret_name:
                found = True
    return found


def references_by_volume(workload: Any, secret_name: str) -> bool:
    """Check volumes[].secret.secretName of the pod template."""
    pod_spec = _pod_spec(workload)
    found = False
    for volume in (pod_spec.volumes if pod_spec else None) or []:
        if volume.secret is not None and volume.secret.secret_name == secret_name:
            found = True
    return found


REFERENCE_CHECKS: dict[str, Callable[[Any, str], bool]] = {
    "annotation": references_by_annotation,
    "env": references_by_env,
    "envFrom": references_by_env_from,
    "volume": references_by_volume,
}


def matching_mechanisms(workload: Any, secret_name: str) -> list[str]:
    """Return the names of all checks under which the workload references the secret."""
    return [name for name, check in REFERENCE_CHECKS.items() if check(workload, secret_name)]


def resolve_restart_targets(secret_name: str, workloads: Iterable[Any]) -> list[Any]:
    """Find the workloads that consume a secret.

    Args:
        secret_name: Name of the secret that changed.
        workloads: Candidate workloads, normally all Deployments in the
            secret's namespace.

    Returns:
        Matching workloads, each at most once, in input order.

    """
    matched: dict[WorkloadRef, Any] = {}
    for workload in workloads:
        mechanisms = matching_mechanisms(workload, secret_name)
        if not mechanisms:
            continue
        ref = workload_ref(workload)
        ic(secret_name, str(ref), mechanisms)
        matched.setdefault(ref, workload)
    return list(matched.values())
