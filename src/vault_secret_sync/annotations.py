"""Annotation keys recognized by the operator.

The keys form a stable contract with the workloads and secrets in the
cluster; changing any of them orphans existing managed secrets.
"""

ANNOTATION_PREFIX = "vaultsync.io"

# Locator of the source item: vaults/<vaultId>/items/<itemId>
ITEM_PATH_ANNOTATION = f"{ANNOTATION_PREFIX}/item-path"
# Name of the secret a workload declares it is backed by
ITEM_NAME_ANNOTATION = f"{ANNOTATION_PREFIX}/item-name"
# Decimal string of the last synced item version
VERSION_ANNOTATION = f"{ANNOTATION_PREFIX}/version"
# Pod template marker rewritten to roll a workload's pods
RESTART_ANNOTATION = f"{ANNOTATION_PREFIX}/last-restarted"
# Per-secret or per-workload override of restart propagation
RESTART_DEPLOYMENTS_ANNOTATION = f"{ANNOTATION_PREFIX}/restart-deployments"

_TRUE_VALUES = frozenset({"true", "yes", "1", "on"})
_FALSE_VALUES = frozenset({"false", "no", "0", "off"})


def parse_bool_annotation(value: str | None) -> bool | None:
    """Parse a boolean-valued annotation or setting.

    Args:
        value: The raw string, or None when the annotation is absent.

    Returns:
        True or False for recognized values, None for absent or
        unrecognized ones.

    """
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    return None
