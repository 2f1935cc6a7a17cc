"""Managed secret annotation parsing.

This module provides functions for reading the control annotations that
mark a secret as vault-derived.
"""

import re
from typing import Any

from vault_secret_sync import console
from vault_secret_sync.annotations import ITEM_PATH_ANNOTATION, RESTART_DEPLOYMENTS_ANNOTATION, parse_bool_annotation
from vault_secret_sync.exceptions import ItemPathError
from vault_secret_sync.models import ItemPath

_ITEM_PATH_PATTERN = re.compile(r"^vaults/(?P<vault_id>[^/\s]+)/items/(?P<item_id>[^/\s]+)$")
_DOT_SEGMENTS = {".", ".."}


def parse_item_path(value: str | None) -> ItemPath:
    """Parse an item-path annotation value.

    Args:
        value: The annotation value, expected as 'vaults/<vault>/items/<item>'.

    Returns:
        The parsed ItemPath.

    Raises:
        ItemPathError: If the value is empty or malformed.

    """
    if not value:
        raise ItemPathError("Item path is empty")

    match = _ITEM_PATH_PATTERN.match(value.strip())
    if match is None:
        raise ItemPathError(f"Malformed item path '{value}', expected 'vaults/<vaultId>/items/<itemId>'")

    if match["vault_id"] in _DOT_SEGMENTS or match["item_id"] in _DOT_SEGMENTS:
        raise ItemPathError(f"Malformed item path '{value}', identifiers must not be '.' or '..'")

    return ItemPath(vault_id=match["vault_id"], item_id=match["item_id"])


def is_managed_secret(secret: Any) -> bool:
    """Return True if the secret carries the item-path annotation.

    Args:
        secret: A V1Secret (or any object with metadata.annotations).

    """
    metadata = getattr(secret, "metadata", None)
    annotations = getattr(metadata, "annotations", None) or {}
    return ITEM_PATH_ANNOTATION in annotations


def restart_enabled(annotations: dict[str, str] | None, default: bool, *, owner: str = "") -> bool:
    """Resolve the restart-deployments override against a default.

    Args:
        annotations: Annotations of the secret or workload, may be None.
        default: The value to use when the annotation is absent or invalid.
        owner: 'namespace/name' of the annotated object, for warnings.

    Returns:
        Whether restart propagation is enabled.

    """
    raw = (annotations or {}).get(RESTART_DEPLOYMENTS_ANNOTATION)
    parsed = parse_bool_annotation(raw)
    if parsed is None:
        if raw is not None:
            console.warning(
                f"Ignoring invalid {RESTART_DEPLOYMENTS_ANNOTATION}={raw!r} on {console.highlight(owner)}"
            )
        return default
    return parsed
