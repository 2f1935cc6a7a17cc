"""Managed secret construction.

This module turns a vault item into the data and annotations of a
managed secret. Everything here is pure: a given item always yields
the same result.
"""

import base64
from collections.abc import Iterable

from kubernetes import client

from vault_secret_sync.annotations import ITEM_PATH_ANNOTATION, VERSION_ANNOTATION
from vault_secret_sync.models import Item, ItemField

_OPAQUE = "Opaque"


def encode_secret_data(data: dict[str, bytes]) -> dict[str, str]:
    """Base64-encode secret data for the Kubernetes API."""
    return {key: base64.b64encode(value).decode("ascii") for key, value in data.items()}


def decode_secret_data(data: dict[str, str] | None) -> dict[str, bytes]:
    """Decode base64 secret data as returned by the Kubernetes API."""
    return {key: base64.b64decode(value) for key, value in (data or {}).items()}


def flatten_fields(fields: Iterable[ItemField]) -> dict[str, bytes]:
    """Flatten item fields into a secret data mapping.

    Fields with an empty label are skipped. When labels repeat, the last
    field wins.

    Args:
        fields: The item fields in vault order.

    Returns:
        Mapping of label to UTF-8 encoded value.

    """
    data: dict[str, bytes] = {}
    for item_field in fields:
        if not item_field.label:
            continue
        data[item_field.label] = item_field.value.encode("utf-8")
    return data


def build_secret(item: Item) -> tuple[dict[str, bytes], dict[str, str]]:
    """Compute the data and control annotations for an item.

    Args:
        item: The fetched vault item.

    Returns:
        A (data, annotations) tuple. Annotations carry the item path and
        the item version as a decimal string.

    """
    annotations = {
        ITEM_PATH_ANNOTATION: str(item.path),
        VERSION_ANNOTATION: str(item.version),
    }
    return flatten_fields(item.fields), annotations


def new_managed_secret(name: str, namespace: str, item: Item, owner: client.V1OwnerReference | None = None) -> client.V1Secret:
    """Build a new managed secret object for an item.

    Args:
        name: Name of the secret.
        namespace: Namespace of the secret.
        item: The fetched vault item.
        owner: Optional owner reference, so the secret is garbage collected
            with its owner.

    Returns:
        An unsaved V1Secret with base64 encoded data.

    """
    data, annotations = build_secret(item)
    return client.V1Secret(
        api_version="v1",
        kind="Secret",
        type=_OPAQUE,
        metadata=client.V1ObjectMeta(
            name=name,
            namespace=namespace,
            annotations=annotations,
            owner_references=[owner] if owner is not None else None,
        ),
        data=encode_secret_data(data),
    )
