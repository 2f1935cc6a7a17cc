"""Restart trigger application.

Restarting a workload means rewriting the restart annotation on its pod
template. The pod template hash changes and the Deployment controller
performs its own rolling update.
"""

from datetime import datetime, timezone
from typing import Any

from vault_secret_sync import console
from vault_secret_sync.annotations import RESTART_ANNOTATION
from vault_secret_sync.restarts.resolving import workload_ref


def restart_workload(cluster: Any, workload: Any, now: datetime | None = None) -> str:
    """Write a fresh restart trigger on a workload's pod template.

    Only the pod template annotation is patched; the rest of the spec is
    left untouched.

    Args:
        cluster: Cluster used to patch the workload.
        workload: The V1Deployment to restart.
        now: Trigger time, defaults to the current UTC time.

    Returns:
        The trigger value written.

    Raises:
        ConflictError: If the workload changed since it was listed.
        UnknownSyncError: If the patch failed for any other reason.

    """
    trigger = (now or datetime.now(timezone.utc)).isoformat()
    cluster.patch_workload_template_annotations(workload, {RESTART_ANNOTATION: trigger})
    console.success(f"Restarted deployment {console.highlight(str(workload_ref(workload)))}")
    return trigger
