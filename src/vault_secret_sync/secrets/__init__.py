"""Managed secrets subpackage.

This package contains modules for parsing the control annotations of
managed secrets and for building secret contents from vault items.
"""

from vault_secret_sync.secrets.building import (
    build_secret,
    decode_secret_data,
    encode_secret_data,
    flatten_fields,
    new_managed_secret,
)
from vault_secret_sync.secrets.parsing import is_managed_secret, parse_item_path, restart_enabled

__all__ = [
    # building
    "build_secret",
    "flatten_fields",
    "new_managed_secret",
    "encode_secret_data",
    "decode_secret_data",
    # parsing
    "parse_item_path",
    "is_managed_secret",
    "restart_enabled",
]
